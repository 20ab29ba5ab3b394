from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, jsonify, request

from ...domain import PartUpdate
from ...errors import NotFoundError, ValidationError
from ..context import get_config, get_db, get_services
from ..params import json_body, query_flag, to_choice, to_decimal, to_int, to_str
from ..responses import build_pagination_response, get_pagination, success_response

parts_bp = Blueprint("parts", __name__, url_prefix="/api/parts")

STOCK_OPERATIONS = ("add", "subtract")


@parts_bp.get("")
def list_parts():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.part_repo.list_page(
            conn,
            search=request.args.get("search"),
            low_stock=query_flag("low_stock"),
            limit=page.limit,
            offset=page.offset,
        )
    return jsonify(build_pagination_response(rows, page, total))


@parts_bp.get("/alerts/low-stock")
def low_stock_parts():
    with get_db().session() as conn:
        rows = get_services().repos.part_repo.list_low_stock(conn)
    return success_response(200, "Low stock parts retrieved successfully", {"parts": rows, "count": len(rows)})


@parts_bp.get("/<int:part_id>")
def get_part(part_id: int):
    with get_db().session() as conn:
        part = get_services().repos.part_repo.get(conn, part_id)
    if part is None:
        raise NotFoundError("Part not found")
    return success_response(200, "Part retrieved successfully", {"part": part})


@parts_bp.post("")
def create_part():
    body = json_body()
    price = to_decimal(body.get("price"), "price", min_value=Decimal("0"))
    if price is None:
        raise ValidationError("price is required")
    with get_db().transaction() as conn:
        part = get_services().repos.part_repo.create(
            conn,
            name=to_str(body.get("name"), "name", required=True, max_len=200),
            part_number=to_str(body.get("part_number"), "part_number", max_len=50),
            price=price,
            stock_quantity=to_int(body.get("stock_quantity", 0), "stock_quantity", min_value=0),
            reorder_level=to_int(
                body.get("reorder_level", get_config().business.default_reorder_level), "reorder_level", min_value=0
            ),
        )
    return success_response(201, "Part created successfully", {"part": part})


@parts_bp.put("/<int:part_id>")
def update_part(part_id: int):
    body = json_body()
    if "stock_quantity" in body:
        raise ValidationError("Stock is changed through PATCH /api/parts/<id>/stock")
    update = PartUpdate(
        name=to_str(body.get("name"), "name", max_len=200),
        part_number=to_str(body.get("part_number"), "part_number", max_len=50),
        price=to_decimal(body.get("price"), "price", min_value=Decimal("0")),
        reorder_level=to_int(body.get("reorder_level"), "reorder_level", required=False, min_value=0),
    )
    if not update.changes():
        raise ValidationError("No valid fields to update")
    with get_db().transaction() as conn:
        part = get_services().repos.part_repo.update(conn, part_id, update)
    if part is None:
        raise NotFoundError("Part not found")
    return success_response(200, "Part updated successfully", {"part": part})


@parts_bp.patch("/<int:part_id>/stock")
def adjust_part_stock(part_id: int):
    body = json_body()
    quantity = to_int(body.get("quantity"), "quantity", min_value=1)
    operation = to_choice(body.get("operation"), "operation", STOCK_OPERATIONS, default="add")
    delta = quantity if operation == "add" else -quantity
    with get_db().transaction() as conn:
        part = get_services().ledger.adjust_stock(conn, part_id=part_id, delta=delta)
    message = "Stock added successfully" if operation == "add" else "Stock subtracted successfully"
    return success_response(200, message, {"part": part})


@parts_bp.delete("/<int:part_id>")
def delete_part(part_id: int):
    repo = get_services().repos.part_repo
    with get_db().transaction() as conn:
        if repo.is_used(conn, part_id):
            raise ValidationError("Cannot delete part that has been used in service records")
        deleted = repo.delete(conn, part_id)
    if not deleted:
        raise NotFoundError("Part not found")
    return success_response(200, "Part deleted successfully")
