"""
Pricing core application package.

Modules of interest:
- document: Tagged-union document tree with typed accessors.
- versioning: Syntax version detection and the migration ladder.
- parser: Phase-ordered parsing into a PricingManager.
- models: Immutable Feature, UsageLimit, Plan, AddOn and PricingManager.
- expressions: Restricted formula compiler and interpreter.
- entitlements: Snapshot evaluation, serialization and diffing.
"""
