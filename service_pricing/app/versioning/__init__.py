"""
Schema versioning package.

- version: Version ordering, supported versions and field windows.
- migrations: Ordered ladder of pure vN -> vN+1 document steps.
- resolver: Version detection and migration to the canonical version.
- temporal: Date and instant normalization helpers.
"""

from .version import (
    CANONICAL_VERSION,
    OLDEST_VERSION,
    SUPPORTED_VERSIONS,
    V1_0,
    V1_1,
    V2_0,
    Version,
)
from .resolver import ResolvedDocument, VersionResolver

__all__ = [
    "CANONICAL_VERSION",
    "OLDEST_VERSION",
    "SUPPORTED_VERSIONS",
    "V1_0",
    "V1_1",
    "V2_0",
    "Version",
    "ResolvedDocument",
    "VersionResolver",
]
