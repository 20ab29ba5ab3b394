from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime

from flask import jsonify
from flask.json.provider import DefaultJSONProvider

from ..config import BusinessConfig
from ..errors import ValidationError


class GarageJSONProvider(DefaultJSONProvider):
    """ISO-8601 dates; Decimals stay strings so money is never rounded by float."""

    sort_keys = False

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def success_response(status_code: int = 200, message: str = "Success", data=None):
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status_code


def error_body(message: str, errors: list[dict] | None = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


@dataclass(frozen=True)
class Page:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(args, business: BusinessConfig) -> Page:
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", business.default_page_size))
    except ValueError as e:
        raise ValidationError("page and limit must be integers") from e
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    return Page(page=page, limit=min(limit, business.max_page_size))


def build_pagination_response(data: list, page: Page, total: int) -> dict:
    total_pages = math.ceil(total / page.limit) if total else 0
    return {
        "success": True,
        "data": data,
        "pagination": {
            "currentPage": page.page,
            "totalPages": total_pages,
            "totalItems": total,
            "itemsPerPage": page.limit,
            "hasNextPage": page.page < total_pages,
            "hasPrevPage": page.page > 1,
        },
    }
