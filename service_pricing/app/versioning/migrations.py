"""
Forward migration ladder for pricing documents.

Each step is a pure function taking a document of one syntax version and
returning a new document of the next one. Steps never mutate their input
and copy every field they do not own unchanged.
"""

from datetime import date
from typing import Any, Callable, Dict, Mapping, Tuple

from shared.errors import InvalidValueError, MissingRequiredFieldError, TypeMismatchError
from ..document import kind_name
from .temporal import normalize_date, normalize_instant
from .version import V1_0, V1_1, V2_0, Version, check_field_windows

Document = Dict[str, Any]
Migration = Callable[[Mapping[str, Any]], Document]

LEGACY_DATE_FIELDS = ("day", "month", "year")


def _positive_int(document: Mapping[str, Any], field: str) -> int:
    value = document.get(field)
    if value is None:
        raise MissingRequiredFieldError(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeMismatchError(field, kind_name(value), "a positive integer")
    if value <= 0:
        raise InvalidValueError(field, f'"{field}" value {value} must be a positive integer')
    return value


def migrate_v1_0_to_v1_1(document: Mapping[str, Any]) -> Document:
    """Replace day/month/year with a single ``createdAt`` date."""
    check_field_windows(document, V1_0)

    day = _positive_int(document, "day")
    month = _positive_int(document, "month")
    year = _positive_int(document, "year")
    try:
        created_at = date(year, month, day)
    except (ValueError, OverflowError):
        raise InvalidValueError(
            "day",
            f'"day", "month" and "year" ({year}-{month}-{day}) do not form a valid calendar date',
        ) from None

    migrated = {key: value for key, value in document.items() if key not in LEGACY_DATE_FIELDS}
    migrated["version"] = str(V1_1)
    migrated["createdAt"] = created_at.isoformat()
    return migrated


def migrate_v1_1_to_v2_0(document: Mapping[str, Any]) -> Document:
    """Normalize temporal fields and move the tag to ``syntaxVersion``."""
    check_field_windows(document, V1_1)

    if document.get("createdAt") is None:
        raise MissingRequiredFieldError("createdAt")

    migrated = {"syntaxVersion": str(V2_0)}
    migrated.update((key, value) for key, value in document.items() if key != "version")
    migrated["createdAt"] = normalize_date(document["createdAt"], "createdAt")
    for bound in ("starts", "ends"):
        if document.get(bound) is not None:
            migrated[bound] = normalize_instant(document[bound], bound)
    return migrated


# Ordered: (from, to, step)
MIGRATION_LADDER: Tuple[Tuple[Version, Version, Migration], ...] = (
    (V1_0, V1_1, migrate_v1_0_to_v1_1),
    (V1_1, V2_0, migrate_v1_1_to_v2_0),
)
