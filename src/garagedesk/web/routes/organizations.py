from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...domain import OrganizationUpdate
from ...errors import NotFoundError, ValidationError
from ..context import get_config, get_db, get_services
from ..params import json_body, to_str
from ..responses import build_pagination_response, get_pagination, success_response
from .clients import parse_new_vehicles

organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/organizations")


@organizations_bp.get("")
def list_organizations():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.organization_repo.list_page(
            conn, search=request.args.get("search"), limit=page.limit, offset=page.offset
        )
    return jsonify(build_pagination_response(rows, page, total))


@organizations_bp.get("/<int:organization_id>")
def get_organization(organization_id: int):
    with get_db().session() as conn:
        organization = get_services().repos.organization_repo.get(conn, organization_id)
    if organization is None:
        raise NotFoundError("Organization not found")
    return success_response(200, "Organization retrieved successfully", {"organization": organization})


@organizations_bp.get("/<int:organization_id>/vehicles")
def organization_vehicles(organization_id: int):
    page = get_pagination(request.args, get_config().business)
    repos = get_services().repos
    with get_db().session() as conn:
        if not repos.organization_repo.exists(conn, organization_id):
            raise NotFoundError("Organization not found")
        rows, total = repos.vehicle_repo.list_page(
            conn, organization_id=organization_id, limit=page.limit, offset=page.offset
        )
    return jsonify(build_pagination_response(rows, page, total))


@organizations_bp.post("")
def create_organization():
    body = json_body()
    with get_db().transaction() as conn:
        organization = get_services().repos.organization_repo.create(
            conn,
            name=to_str(body.get("name"), "name", required=True, max_len=200),
            contact_person=to_str(body.get("contact_person"), "contact_person", max_len=100),
            email=to_str(body.get("email"), "email", max_len=255),
            phone=to_str(body.get("phone"), "phone", max_len=30),
            address=to_str(body.get("address"), "address", max_len=500),
        )
    return success_response(201, "Organization created successfully", {"organization": organization})


@organizations_bp.post("/with-vehicles")
def create_organization_with_vehicles():
    body = json_body()
    with get_db().transaction() as conn:
        result = get_services().customers.create_organization_with_vehicles(
            conn,
            name=to_str(body.get("name") or body.get("organizationName"), "name", required=True, max_len=200),
            contact_person=to_str(
                body.get("contact_person") or body.get("contactPerson"), "contact_person", max_len=100
            ),
            phone=to_str(body.get("phone"), "phone", max_len=30),
            email=to_str(body.get("email"), "email", max_len=255),
            address=to_str(body.get("address"), "address", max_len=500),
            vehicles=parse_new_vehicles(body.get("vehicles") or []),
        )
    return success_response(201, "Organization and vehicles created successfully", result)


@organizations_bp.put("/<int:organization_id>")
def update_organization(organization_id: int):
    body = json_body()
    update = OrganizationUpdate(
        name=to_str(body.get("name"), "name", max_len=200),
        contact_person=to_str(body.get("contact_person"), "contact_person", max_len=100),
        email=to_str(body.get("email"), "email", max_len=255),
        phone=to_str(body.get("phone"), "phone", max_len=30),
        address=to_str(body.get("address"), "address", max_len=500),
    )
    if not update.changes():
        raise ValidationError("No valid fields to update")
    with get_db().transaction() as conn:
        organization = get_services().repos.organization_repo.update(conn, organization_id, update)
    if organization is None:
        raise NotFoundError("Organization not found")
    return success_response(200, "Organization updated successfully", {"organization": organization})


@organizations_bp.delete("/<int:organization_id>")
def delete_organization(organization_id: int):
    with get_db().transaction() as conn:
        deleted = get_services().repos.organization_repo.delete(conn, organization_id)
    if not deleted:
        raise NotFoundError("Organization not found")
    return success_response(200, "Organization deleted successfully")
