"""
Request parsing helpers shared by the route modules.

Shape checks only; business rules stay in the services.
"""

from __future__ import annotations

from flask import request

from .errors import ValidationError
from .time_utils import parse_iso_datetime

MAX_PAGE_SIZE = 100


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} required",
            details={"missing": missing},
        )


def parse_int(value, field: str, *, minimum: int | None = None) -> int:
    """Strict integer: rejects bools, floats and decimal strings."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        result = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def optional_int(value, field: str) -> int | None:
    if value in (None, ""):
        return None
    return parse_int(value, field)


def parse_datetime(value, field: str):
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def pagination_args(default_limit: int = 20) -> tuple[int, int]:
    page = parse_int(request.args.get("page", 1), "page", minimum=1)
    limit = parse_int(request.args.get("limit", default_limit), "limit", minimum=1)
    return page, min(limit, MAX_PAGE_SIZE)


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
