from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...domain import ClientUpdate, NewVehicle
from ...errors import NotFoundError, ValidationError
from ..context import get_config, get_db, get_services
from ..params import json_body, to_int, to_str
from ..responses import build_pagination_response, get_pagination, success_response

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def parse_new_vehicles(items) -> list[NewVehicle]:
    if not isinstance(items, list):
        raise ValidationError("vehicles must be a list")
    vehicles = []
    for v in items:
        if not isinstance(v, dict):
            raise ValidationError("Each vehicle must be an object")
        vehicles.append(
            NewVehicle(
                # camelCase keys come from the signup wizard in the frontend
                registration_number=to_str(
                    v.get("registration_number") or v.get("regNo"), "registration_number", required=True, max_len=20
                ),
                make_model=to_str(v.get("make_model") or v.get("makeModel"), "make_model", required=True, max_len=100),
                vehicle_type=to_str(v.get("vehicle_type") or v.get("vehicleType"), "vehicle_type", max_len=50),
                year=to_int(v.get("year"), "year", required=False, min_value=1900),
                color=to_str(v.get("color"), "color", max_len=30),
                vin=to_str(v.get("vin"), "vin", max_len=50),
            )
        )
    return vehicles


@clients_bp.get("")
def list_clients():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.client_repo.list_page(
            conn, search=request.args.get("search"), limit=page.limit, offset=page.offset
        )
    return jsonify(build_pagination_response(rows, page, total))


@clients_bp.get("/<int:client_id>")
def get_client(client_id: int):
    with get_db().session() as conn:
        client = get_services().repos.client_repo.get(conn, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return success_response(200, "Client retrieved successfully", {"client": client})


@clients_bp.get("/<int:client_id>/vehicles")
def client_vehicles(client_id: int):
    page = get_pagination(request.args, get_config().business)
    repos = get_services().repos
    with get_db().session() as conn:
        if not repos.client_repo.exists(conn, client_id):
            raise NotFoundError("Client not found")
        rows, total = repos.vehicle_repo.list_page(conn, client_id=client_id, limit=page.limit, offset=page.offset)
    return jsonify(build_pagination_response(rows, page, total))


@clients_bp.get("/<int:client_id>/services")
def client_services(client_id: int):
    page = get_pagination(request.args, get_config().business)
    repos = get_services().repos
    with get_db().session() as conn:
        if not repos.client_repo.exists(conn, client_id):
            raise NotFoundError("Client not found")
        rows, total = repos.service_repo.list_page(conn, client_id=client_id, limit=page.limit, offset=page.offset)
    return jsonify(build_pagination_response(rows, page, total))


@clients_bp.post("")
def create_client():
    body = json_body()
    with get_db().transaction() as conn:
        client = get_services().repos.client_repo.create(
            conn,
            name=to_str(body.get("name"), "name", required=True, max_len=100),
            email=to_str(body.get("email"), "email", max_len=255),
            phone=to_str(body.get("phone"), "phone", required=True, max_len=30),
            address=to_str(body.get("address"), "address", max_len=500),
        )
    return success_response(201, "Client created successfully", {"client": client})


@clients_bp.post("/with-vehicles")
def create_client_with_vehicles():
    body = json_body()
    with get_db().transaction() as conn:
        result = get_services().customers.create_client_with_vehicles(
            conn,
            name=to_str(body.get("name") or body.get("clientName"), "name", required=True, max_len=100),
            phone=to_str(body.get("phone"), "phone", max_len=30),
            email=to_str(body.get("email"), "email", max_len=255),
            address=to_str(body.get("address"), "address", max_len=500),
            vehicles=parse_new_vehicles(body.get("vehicles") or []),
        )
    return success_response(201, "Client and vehicles created successfully", result)


@clients_bp.put("/<int:client_id>")
def update_client(client_id: int):
    body = json_body()
    update = ClientUpdate(
        name=to_str(body.get("name"), "name", max_len=100),
        email=to_str(body.get("email"), "email", max_len=255),
        phone=to_str(body.get("phone"), "phone", max_len=30),
        address=to_str(body.get("address"), "address", max_len=500),
    )
    if not update.changes():
        raise ValidationError("No valid fields to update")
    with get_db().transaction() as conn:
        client = get_services().repos.client_repo.update(conn, client_id, update)
    if client is None:
        raise NotFoundError("Client not found")
    return success_response(200, "Client updated successfully", {"client": client})


@clients_bp.delete("/<int:client_id>")
def delete_client(client_id: int):
    with get_db().transaction() as conn:
        deleted = get_services().repos.client_repo.delete(conn, client_id)
    if not deleted:
        raise NotFoundError("Client not found")
    return success_response(200, "Client deleted successfully")
