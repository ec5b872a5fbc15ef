"""
Date and instant normalization shared by the migration ladder and the parser.
"""

from datetime import date, datetime, timezone
from typing import Any

from shared.errors import InvalidValueError, TypeMismatchError
from ..document import kind_name

INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

DATE_SHAPE = "an ISO-8601 date"
INSTANT_SHAPE = "an ISO-8601 instant"


def _from_iso(text: str) -> datetime:
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def normalize_date(value: Any, field: str) -> str:
    """Accept a date, a date-time or their ISO text; return ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            return _from_iso(value.strip()).date().isoformat()
        except ValueError:
            pass
    raise TypeMismatchError(field, kind_name(value), DATE_SHAPE)


def normalize_instant(value: Any, field: str) -> str:
    """Accept a date, a date-time or their ISO text; return a UTC instant.

    Date-only values become midnight UTC and naive date-times are taken
    as UTC. Sub-second precision is dropped.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            moment = _from_iso(value.strip())
        except ValueError:
            raise TypeMismatchError(field, kind_name(value), INSTANT_SHAPE) from None
    else:
        raise TypeMismatchError(field, kind_name(value), INSTANT_SHAPE)

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _to_utc(moment, field).strftime(INSTANT_FORMAT)


def _to_utc(moment: datetime, field: str) -> datetime:
    try:
        return moment.astimezone(timezone.utc)
    except OverflowError:
        raise InvalidValueError(
            field, f'"{field}" value {moment.isoformat()} is outside the representable range'
        ) from None


def parse_canonical_date(text: str, field: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise TypeMismatchError(field, "text", DATE_SHAPE) from None


def parse_canonical_instant(text: str, field: str) -> datetime:
    """Parse an instant; an offset is mandatory in canonical documents."""
    try:
        moment = _from_iso(text)
    except ValueError:
        raise TypeMismatchError(field, "text", INSTANT_SHAPE) from None
    if moment.tzinfo is None:
        raise TypeMismatchError(field, "text without offset", INSTANT_SHAPE)
    return _to_utc(moment, field)
