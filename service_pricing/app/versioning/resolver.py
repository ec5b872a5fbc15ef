"""
Schema version resolver.

Detects the syntax version a document declares and walks it up the
migration ladder, one step at a time, until the canonical version.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from shared.errors import ConfigStructureError, VersionError
from shared.logging import get_logger
from ..document import kind_name
from .migrations import MIGRATION_LADDER
from .version import (
    CANONICAL_VERSION,
    OLDEST_VERSION,
    V2_0,
    Version,
    check_field_windows,
    ensure_supported,
)


@dataclass(frozen=True)
class ResolvedDocument:
    """Canonical document plus the version it was declared with."""
    document: Dict[str, Any]
    declared_version: Version
    version: Version


class VersionResolver:
    """Detects and migrates document syntax versions."""

    def __init__(self):
        self.logger = get_logger("pricing.versioning")

    def detect_version(self, document: Mapping[str, Any]) -> Version:
        """Return the declared version; an untagged document is the oldest version."""
        if not isinstance(document, Mapping):
            raise ConfigStructureError("document", "mapping", kind_name(document))

        if document.get("syntaxVersion") is not None:
            version = ensure_supported(Version.parse(document["syntaxVersion"], "syntaxVersion"))
            if version < V2_0:
                raise VersionError(
                    f'"syntaxVersion" cannot declare version {version}; '
                    f'version 1.x documents declare it with "version"',
                    {"field": "syntaxVersion", "version": str(version)},
                )
            return version

        if document.get("version") is not None:
            version = ensure_supported(Version.parse(document["version"], "version"))
            if version >= V2_0:
                raise VersionError(
                    f'Version {version} must be declared with "syntaxVersion"',
                    {"field": "version", "version": str(version)},
                )
            return version

        return OLDEST_VERSION

    def resolve(self, document: Mapping[str, Any]) -> ResolvedDocument:
        """Migrate ``document`` to the canonical version."""
        declared = self.detect_version(document)

        current: Dict[str, Any] = dict(document)
        version = declared
        for source, target, step in MIGRATION_LADDER:
            if version != source:
                continue
            current = step(current)
            self.logger.debug(
                "Document migrated",
                from_version=str(source),
                to_version=str(target)
            )
            version = target

        check_field_windows(current, version)

        if declared != CANONICAL_VERSION:
            self.logger.info(
                "Legacy document resolved",
                declared_version=str(declared),
                version=str(version)
            )

        return ResolvedDocument(document=current, declared_version=declared, version=version)
