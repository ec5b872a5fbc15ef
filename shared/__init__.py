"""
Shared utilities for the pricing access core.

This package aggregates common building blocks consumed by every
component of service_pricing:

- config: Core configuration via pydantic-settings
- logging: Structured logging with request correlation
- errors: Canonical parse-time and evaluation-time error types

Do not import from service_pricing into shared/.
"""
