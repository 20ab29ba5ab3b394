from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...domain import VehicleUpdate
from ...errors import NotFoundError, ValidationError
from ..context import get_config, get_db, get_services
from ..params import json_body, to_int, to_str
from ..responses import build_pagination_response, get_pagination, success_response
from .clients import parse_new_vehicles

vehicles_bp = Blueprint("vehicles", __name__, url_prefix="/api/vehicles")


@vehicles_bp.get("")
def list_vehicles():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.vehicle_repo.list_page(
            conn,
            search=request.args.get("search"),
            organization_id=to_int(request.args.get("organization_id"), "organization_id", required=False),
            client_id=to_int(request.args.get("client_id"), "client_id", required=False),
            limit=page.limit,
            offset=page.offset,
        )
    return jsonify(build_pagination_response(rows, page, total))


@vehicles_bp.get("/<int:vehicle_id>")
def get_vehicle(vehicle_id: int):
    with get_db().session() as conn:
        vehicle = get_services().repos.vehicle_repo.get(conn, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle not found")
    return success_response(200, "Vehicle retrieved successfully", {"vehicle": vehicle})


@vehicles_bp.get("/<int:vehicle_id>/services")
def vehicle_services(vehicle_id: int):
    page = get_pagination(request.args, get_config().business)
    repos = get_services().repos
    with get_db().session() as conn:
        if not repos.vehicle_repo.exists(conn, vehicle_id):
            raise NotFoundError("Vehicle not found")
        rows, total = repos.service_repo.list_page(conn, vehicle_id=vehicle_id, limit=page.limit, offset=page.offset)
    return jsonify(build_pagination_response(rows, page, total))


@vehicles_bp.post("")
def create_vehicle():
    body = json_body()
    [vehicle] = parse_new_vehicles([body])
    with get_db().transaction() as conn:
        created = get_services().customers.create_vehicle(
            conn,
            vehicle,
            organization_id=to_int(body.get("organization_id"), "organization_id", required=False, min_value=1),
            client_id=to_int(body.get("client_id"), "client_id", required=False, min_value=1),
        )
    return success_response(201, "Vehicle created successfully", {"vehicle": created})


@vehicles_bp.put("/<int:vehicle_id>")
def update_vehicle(vehicle_id: int):
    body = json_body()
    update = VehicleUpdate(
        registration_number=to_str(body.get("registration_number"), "registration_number", max_len=20),
        make_model=to_str(body.get("make_model"), "make_model", max_len=100),
        vehicle_type=to_str(body.get("vehicle_type"), "vehicle_type", max_len=50),
        year=to_int(body.get("year"), "year", required=False, min_value=1900),
        color=to_str(body.get("color"), "color", max_len=30),
        vin=to_str(body.get("vin"), "vin", max_len=50),
    )
    if not update.changes():
        raise ValidationError("No valid fields to update")
    with get_db().transaction() as conn:
        vehicle = get_services().repos.vehicle_repo.update(conn, vehicle_id, update)
    if vehicle is None:
        raise NotFoundError("Vehicle not found")
    return success_response(200, "Vehicle updated successfully", {"vehicle": vehicle})


@vehicles_bp.delete("/<int:vehicle_id>")
def delete_vehicle(vehicle_id: int):
    with get_db().transaction() as conn:
        get_services().customers.delete_vehicle(conn, vehicle_id)
    return success_response(200, "Vehicle deleted successfully")
