from __future__ import annotations

from datetime import datetime
from typing import Any

from .errors import InvalidInputError
from .time_utils import parse_iso_datetime


# Upper bound for any price or bid, in minor currency units
MAX_AMOUNT = 999_999_999


def parse_positive_int(value: Any, field: str, *, message: str | None = None) -> int:
    """
    Coerce a JSON value to a positive integer amount (minor currency units).

    Accepts ints, integral floats (100.0) and plain digit strings. Rejects
    booleans, fractional values, scientific notation and anything <= 0.
    """
    error = message or f"{field} must be a positive integer"

    if value is None or isinstance(value, bool):
        raise InvalidInputError(error)

    if isinstance(value, int):
        amount = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidInputError(error)
        amount = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e5") and decimals (e.g., "12.5")
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise InvalidInputError(error)
        try:
            amount = int(stripped)
        except ValueError:
            raise InvalidInputError(error)
    else:
        raise InvalidInputError(error)

    if amount <= 0:
        raise InvalidInputError(error)
    if amount > MAX_AMOUNT:
        raise InvalidInputError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def parse_optional_positive_int(value: Any, field: str, *, default: int | None) -> int | None:
    """Like parse_positive_int, but None and "" fall back to `default`."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return parse_positive_int(value, field)


def parse_required_datetime(value: Any, field: str) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be an ISO-8601 datetime")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise InvalidInputError(f"{field} must be an ISO-8601 datetime")
    if dt is None:
        raise InvalidInputError(f"{field} must be an ISO-8601 datetime")
    return dt


def require_fields(payload: dict, fields: list[str]) -> None:
    """Raise InvalidInputError naming every field that is missing or blank."""
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")


def parse_id_list(value: Any, field: str = "listingIds") -> list[str]:
    """listingIds must be a JSON array of non-empty ids."""
    if not isinstance(value, list):
        raise InvalidInputError(f"Missing or invalid parameter: {field} (should be an array)")
    ids = []
    for item in value:
        if not isinstance(item, (str, int)) or isinstance(item, bool) or str(item).strip() == "":
            raise InvalidInputError(f"{field} must contain only non-empty ids")
        ids.append(str(item).strip())
    return ids
