from __future__ import annotations

from flask import Blueprint

from ...domain import ROLES
from ..context import current_user, get_db, get_services
from ..params import json_body, to_choice, to_password, to_str
from ..responses import success_response

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _full_name(body: dict) -> str:
    # older clients send "fullname"
    return to_str(body.get("full_name") or body.get("fullname"), "full_name", required=True)


@auth_bp.post("/signup")
def signup():
    body = json_body()
    with get_db().transaction() as conn:
        result = get_services().auth.signup(
            conn,
            full_name=_full_name(body),
            email=to_str(body.get("email"), "email", required=True),
            password=to_password(body.get("password")),
        )
    return success_response(201, "User registered successfully", result)


@auth_bp.post("/users")
def create_user():
    body = json_body()
    with get_db().transaction() as conn:
        user = get_services().auth.create_user(
            conn,
            full_name=_full_name(body),
            email=to_str(body.get("email"), "email", required=True),
            password=to_password(body.get("password")),
            role=to_choice(body.get("role"), "role", ROLES, default="receptionist"),
        )
    return success_response(201, "User created successfully", {"user": user})


@auth_bp.post("/login")
def login():
    body = json_body()
    with get_db().session() as conn:
        result = get_services().auth.login(
            conn,
            email=to_str(body.get("email"), "email", required=True),
            password=to_password(body.get("password")),
        )
    return success_response(200, "Login successful", result)


@auth_bp.get("/me")
def me():
    with get_db().session() as conn:
        user = get_services().auth.me(conn, current_user()["id"])
    return success_response(200, "User profile retrieved successfully", {"user": user})


@auth_bp.put("/password")
def change_password():
    body = json_body()
    with get_db().transaction() as conn:
        get_services().auth.change_password(
            conn,
            user_id=current_user()["id"],
            current_password=to_password(body.get("currentPassword"), "currentPassword"),
            new_password=to_password(body.get("newPassword"), "newPassword"),
        )
    return success_response(200, "Password updated successfully")
