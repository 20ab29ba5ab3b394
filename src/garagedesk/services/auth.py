from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from psycopg import Connection
from werkzeug.security import check_password_hash, generate_password_hash

from ..config import AuthConfig
from ..domain import ROLES
from ..errors import AuthError, NotFoundError, ValidationError
from ..repositories.user_repo import UserRepository

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def check_password_policy(password: str) -> None:
    if not isinstance(password, str):
        raise ValidationError("Password must be a string")
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not PASSWORD_RE.match(password):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )


class AuthService:
    def __init__(self, *, user_repo: UserRepository, cfg: AuthConfig) -> None:
        self.user_repo = user_repo
        self.cfg = cfg

    def issue_token(self, user: dict) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user["id"]),
            "email": user["email"],
            "role": user["role"],
            "iat": now,
            "exp": now + timedelta(hours=self.cfg.jwt_expiration_hours),
        }
        return jwt.encode(claims, self.cfg.jwt_secret, algorithm=self.cfg.jwt_algorithm)

    def decode_token(self, token: str) -> dict:
        """Return ``{id, email, role}`` for a valid bearer token."""
        try:
            claims = jwt.decode(token, self.cfg.jwt_secret, algorithms=[self.cfg.jwt_algorithm])
        except JWTError as e:
            raise AuthError("Invalid or expired token") from e

        role = claims.get("role")
        if role not in ROLES or not claims.get("sub"):
            raise AuthError("Invalid or expired token")
        return {"id": int(claims["sub"]), "email": claims.get("email"), "role": role}

    def signup(self, conn: Connection, *, full_name: str, email: str, password: str) -> dict:
        """Self-service registration. Always creates a receptionist."""
        user = self.create_user(conn, full_name=full_name, email=email, password=password, role="receptionist")
        return {"user": user, "token": self.issue_token(user)}

    def create_user(self, conn: Connection, *, full_name: str, email: str, password: str, role: str) -> dict:
        full_name = (full_name or "").strip()
        email = (email or "").strip().lower()
        if not 2 <= len(full_name) <= 100:
            raise ValidationError("Full name must be between 2 and 100 characters")
        if not EMAIL_RE.match(email):
            raise ValidationError("Please provide a valid email address")
        if role not in ROLES:
            raise ValidationError("Role must be admin, mechanic, or receptionist")
        check_password_policy(password)

        user = self.user_repo.create(
            conn,
            full_name=full_name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
        )
        log.info("User #%s registered with role %s", user["id"], role)
        return user

    def login(self, conn: Connection, *, email: str, password: str) -> dict:
        if not isinstance(password, str):
            raise AuthError("Invalid email or password")
        user = self.user_repo.get_with_hash(conn, email=(email or "").strip().lower())
        if user is None or not check_password_hash(user.pop("password_hash"), password or ""):
            raise AuthError("Invalid email or password")
        return {"user": user, "token": self.issue_token(user)}

    def me(self, conn: Connection, user_id: int) -> dict:
        user = self.user_repo.get(conn, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def change_password(self, conn: Connection, *, user_id: int, current_password: str, new_password: str) -> None:
        user = self.user_repo.get_with_hash(conn, user_id=user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not isinstance(current_password, str) or not check_password_hash(user["password_hash"], current_password):
            raise AuthError("Current password is incorrect")
        check_password_policy(new_password)
        self.user_repo.set_password(conn, user_id=user_id, password_hash=generate_password_hash(new_password))
        log.info("Password changed for user #%s", user_id)

    def seed_admin(self, conn: Connection, *, full_name: str, email: str, password: str) -> dict:
        check_password_policy(password)
        return self.user_repo.upsert_admin(
            conn,
            full_name=full_name,
            email=email.strip().lower(),
            password_hash=generate_password_hash(password),
        )
