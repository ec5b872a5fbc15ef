"""
Syntax versions of the pricing document.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from shared.errors import VersionError

VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)$")


@dataclass(frozen=True, order=True)
class Version:
    """Ordered (major, minor) pair."""
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, raw: Any, key: str = "version") -> "Version":
        """Read a version tag given either as text ("1.1") or as a float (1.1)."""
        if isinstance(raw, float):
            text = repr(raw)
        elif isinstance(raw, str):
            text = raw.strip()
        else:
            text = None

        match = VERSION_PATTERN.match(text) if text is not None else None
        if match is None:
            raise VersionError(
                f'"{key}" value \'{raw}\' is not a valid major.minor version',
                {"field": key, "value": str(raw)},
            )
        return cls(int(match.group(1)), int(match.group(2)))


V1_0 = Version(1, 0)
V1_1 = Version(1, 1)
V2_0 = Version(2, 0)

SUPPORTED_VERSIONS: Tuple[Version, ...] = (V1_0, V1_1, V2_0)
OLDEST_VERSION = SUPPORTED_VERSIONS[0]
CANONICAL_VERSION = SUPPORTED_VERSIONS[-1]

# Inclusive version window in which each top-level field may appear.
# A field outside its window marks a document mixing legacy and new syntax.
FIELD_WINDOWS: Dict[str, Tuple[Version, Optional[Version]]] = {
    "day": (V1_0, V1_0),
    "month": (V1_0, V1_0),
    "year": (V1_0, V1_0),
    "createdAt": (V1_1, None),
}


def ensure_supported(version: Version) -> Version:
    if version not in SUPPORTED_VERSIONS:
        supported = ", ".join(str(v) for v in SUPPORTED_VERSIONS)
        raise VersionError(
            f"Version {version} is not supported (supported: {supported})",
            {"version": str(version)},
        )
    return version


def check_field_windows(document: Mapping[str, Any], version: Version) -> None:
    """Reject fields that do not belong to ``version``."""
    offending = []
    for field, (first, last) in FIELD_WINDOWS.items():
        if field not in document:
            continue
        if version < first or (last is not None and version > last):
            offending.append(field)

    if offending:
        raise VersionError(
            f"Mixed-version fields: {', '.join(offending)} cannot be used in a version {version} document",
            {"fields": offending, "version": str(version)},
        )
