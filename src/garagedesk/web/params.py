from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

from flask import request

from ..domain import has_places
from ..errors import ValidationError


def _invalid(field: str, message: str) -> ValidationError:
    return ValidationError(message, errors=[{"field": field, "message": message}])


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def to_int(value, field: str, *, required: bool = True, min_value: int | None = None) -> int | None:
    if value is None or value == "":
        if required:
            raise _invalid(field, f"{field} is required")
        return None
    if isinstance(value, bool):
        raise _invalid(field, f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise _invalid(field, f"{field} must be an integer") from None
    if isinstance(value, float) and value != number:
        raise _invalid(field, f"{field} must be an integer")
    if min_value is not None and number < min_value:
        raise _invalid(field, f"{field} must be at least {min_value}")
    return number


def to_decimal(
    value,
    field: str,
    *,
    default: Decimal | None = None,
    min_value: Decimal | None = None,
    max_value: Decimal | None = None,
    places: int | None = 2,
) -> Decimal | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise _invalid(field, f"{field} must be a number")
    try:
        # str() first so JSON floats like 0.1 keep their written value
        number = Decimal(str(value))
    except InvalidOperation:
        raise _invalid(field, f"{field} must be a number") from None
    if not number.is_finite():
        raise _invalid(field, f"{field} must be a number")
    if places is not None and not has_places(number, places):
        raise _invalid(field, f"{field} must have at most {places} decimal places")
    if min_value is not None and number < min_value:
        raise _invalid(field, f"{field} must be at least {min_value}")
    if max_value is not None and number > max_value:
        raise _invalid(field, f"{field} must not exceed {max_value}")
    return number


def to_str(value, field: str, *, required: bool = False, max_len: int | None = None) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise _invalid(field, f"{field} is required")
        return None
    if not isinstance(value, str):
        raise _invalid(field, f"{field} must be a string")
    value = value.strip()
    if max_len is not None and len(value) > max_len:
        raise _invalid(field, f"{field} must not exceed {max_len} characters")
    return value


def to_password(value, field: str = "password") -> str:
    """Like ``to_str(required=True)`` but keeps surrounding whitespace."""
    if value is None or value == "":
        raise _invalid(field, f"{field} is required")
    if not isinstance(value, str):
        raise _invalid(field, f"{field} must be a string")
    return value


def to_date(value, field: str) -> date | None:
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise _invalid(field, f"{field} must be a date (YYYY-MM-DD)") from None


def to_choice(value, field: str, choices: tuple[str, ...], *, default: str | None = None) -> str | None:
    if value is None or value == "":
        return default
    if value not in choices:
        raise _invalid(field, f"{field} must be one of: {', '.join(choices)}")
    return value


def query_flag(name: str) -> bool:
    return request.args.get(name, "").lower() == "true"
