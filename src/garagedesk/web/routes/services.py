from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, jsonify, request

from ...domain import SERVICE_STATUSES, PartLine, ServiceUpdate
from ...errors import ValidationError
from ..context import get_config, get_db, get_services
from ..params import json_body, to_choice, to_date, to_decimal, to_int, to_str
from ..responses import build_pagination_response, get_pagination, success_response

services_bp = Blueprint("services", __name__, url_prefix="/api/services")

ZERO = Decimal("0")


def _labor_cost(body: dict) -> Decimal | None:
    # "labour_cost" is what the frontend sends; "labor_cost" is the column name
    raw = body.get("labor_cost", body.get("labour_cost"))
    return to_decimal(raw, "labor_cost", min_value=ZERO)


def parse_part_line(item, prefix: str = "") -> PartLine:
    """One part line; ``prefix`` locates it in field errors (e.g. ``parts[2].``)."""
    if not isinstance(item, dict):
        raise ValidationError(f"{prefix.rstrip('.') or 'part'} must be an object")
    unit_price = to_decimal(item.get("unit_price"), f"{prefix}unit_price", min_value=ZERO)
    if unit_price is None:
        field = f"{prefix}unit_price"
        raise ValidationError(f"{field} is required", errors=[{"field": field, "message": f"{field} is required"}])
    return PartLine(
        part_id=to_int(item.get("part_id"), f"{prefix}part_id", min_value=1),
        quantity=to_int(item.get("quantity"), f"{prefix}quantity", min_value=1),
        unit_price=unit_price,
    )


def parse_part_lines(items) -> list[PartLine]:
    if not isinstance(items, list):
        raise ValidationError("parts must be a list")
    return [parse_part_line(item, f"parts[{i}].") for i, item in enumerate(items)]


@services_bp.get("")
def list_services():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.service_repo.list_page(
            conn,
            search=request.args.get("search"),
            status=to_choice(request.args.get("status"), "status", SERVICE_STATUSES),
            vehicle_id=to_int(request.args.get("vehicle_id"), "vehicle_id", required=False),
            limit=page.limit,
            offset=page.offset,
        )
    return jsonify(build_pagination_response(rows, page, total))


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    with get_db().session() as conn:
        service = get_services().service_records.get_service(conn, service_id)
    return success_response(200, "Service fetched successfully", service)


@services_bp.post("")
def create_service():
    body = json_body()
    vehicle_id = to_int(body.get("vehicle_id"), "vehicle_id", min_value=1)
    parts = parse_part_lines(body.get("parts") or [])
    with get_db().transaction() as conn:
        service = get_services().service_records.create_service(
            conn,
            vehicle_id=vehicle_id,
            labor_cost=_labor_cost(body) or ZERO,
            parts=parts,
            description=to_str(body.get("description"), "description"),
            status=to_choice(body.get("status"), "status", SERVICE_STATUSES, default="pending"),
            notes=to_str(body.get("notes"), "notes"),
            service_date=to_date(body.get("service_date"), "service_date"),
        )
    return success_response(201, "Service record created successfully", service)


@services_bp.put("/<int:service_id>")
def update_service(service_id: int):
    body = json_body()
    update = ServiceUpdate(
        description=to_str(body.get("description"), "description"),
        labor_cost=_labor_cost(body),
        status=to_choice(body.get("status"), "status", SERVICE_STATUSES),
        notes=to_str(body.get("notes"), "notes"),
        service_date=to_date(body.get("service_date"), "service_date"),
    )
    with get_db().transaction() as conn:
        service = get_services().service_records.update_service(conn, service_id, update)
    return success_response(200, "Service updated successfully", service)


@services_bp.post("/<int:service_id>/parts")
def add_part(service_id: int):
    body = json_body()
    line = parse_part_line(body)
    with get_db().transaction() as conn:
        result = get_services().service_records.add_part_to_service(
            conn,
            service_id=service_id,
            part_id=line.part_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
    return success_response(201, "Part added to service successfully", result)


@services_bp.delete("/<int:service_id>")
def delete_service(service_id: int):
    with get_db().transaction() as conn:
        service = get_services().service_records.delete_service(conn, service_id)
    return success_response(200, "Service deleted successfully", service)
