from __future__ import annotations

import logging

from flask import Flask, g, request

from ..errors import AuthError, ForbiddenError
from .context import get_services

log = logging.getLogger(__name__)

ANY_ROLE = ("admin", "mechanic", "receptionist")
ADMIN = ("admin",)
FRONT_DESK = ("admin", "receptionist")
WORKSHOP = ("admin", "mechanic")

PUBLIC_ENDPOINTS = frozenset({"system.index", "system.health", "auth.signup", "auth.login"})

# endpoint -> roles allowed to call it
POLICY: dict[str, tuple[str, ...]] = {
    "auth.me": ANY_ROLE,
    "auth.change_password": ANY_ROLE,
    "auth.create_user": ADMIN,
    "clients.list_clients": ANY_ROLE,
    "clients.get_client": ANY_ROLE,
    "clients.client_vehicles": ANY_ROLE,
    "clients.client_services": ANY_ROLE,
    "clients.create_client": FRONT_DESK,
    "clients.create_client_with_vehicles": FRONT_DESK,
    "clients.update_client": FRONT_DESK,
    "clients.delete_client": ADMIN,
    "organizations.list_organizations": ANY_ROLE,
    "organizations.get_organization": ANY_ROLE,
    "organizations.organization_vehicles": ANY_ROLE,
    "organizations.create_organization": FRONT_DESK,
    "organizations.create_organization_with_vehicles": FRONT_DESK,
    "organizations.update_organization": FRONT_DESK,
    "organizations.delete_organization": ADMIN,
    "vehicles.list_vehicles": ANY_ROLE,
    "vehicles.get_vehicle": ANY_ROLE,
    "vehicles.vehicle_services": ANY_ROLE,
    "vehicles.create_vehicle": FRONT_DESK,
    "vehicles.update_vehicle": FRONT_DESK,
    "vehicles.delete_vehicle": ADMIN,
    "parts.list_parts": ANY_ROLE,
    "parts.low_stock_parts": ANY_ROLE,
    "parts.get_part": ANY_ROLE,
    "parts.create_part": WORKSHOP,
    "parts.update_part": WORKSHOP,
    "parts.adjust_part_stock": WORKSHOP,
    "parts.delete_part": ADMIN,
    "services.list_services": ANY_ROLE,
    "services.get_service": ANY_ROLE,
    "services.create_service": ANY_ROLE,
    "services.update_service": WORKSHOP,
    "services.add_part": WORKSHOP,
    "services.delete_service": ADMIN,
    "invoices.list_invoices": ANY_ROLE,
    "invoices.get_invoice": ANY_ROLE,
    "invoices.revenue_stats": ADMIN,
    "invoices.create_invoice": FRONT_DESK,
    "invoices.update_invoice": FRONT_DESK,
    "invoices.mark_paid": FRONT_DESK,
    "invoices.delete_invoice": ADMIN,
    "reports.summary": ADMIN,
}


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Access token required")
    return token.strip()


def authorize_request() -> None:
    endpoint = request.endpoint
    # unknown routes fall through to the 404 handler
    if endpoint is None or endpoint in PUBLIC_ENDPOINTS or endpoint == "static":
        return

    g.user = get_services().auth.decode_token(_bearer_token())

    allowed = POLICY.get(endpoint)
    if allowed is None or g.user["role"] not in allowed:
        log.warning("Denied %s to user #%s (%s)", endpoint, g.user["id"], g.user["role"])
        raise ForbiddenError("You do not have permission to perform this action")


def register_policy(app: Flask) -> None:
    app.before_request(authorize_request)
