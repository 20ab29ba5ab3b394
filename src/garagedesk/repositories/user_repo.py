from __future__ import annotations

from psycopg import Connection
from psycopg.errors import UniqueViolation

from ..db import fetch_one
from ..errors import ConflictError

USER_COLUMNS = "id, full_name, email, role, created_at"


class UserRepository:
    def create(self, conn: Connection, *, full_name: str, email: str, password_hash: str, role: str) -> dict:
        try:
            cur = conn.execute(
                f"""
                INSERT INTO users(full_name, email, password_hash, role)
                VALUES (%s, %s, %s, %s)
                RETURNING {USER_COLUMNS};
                """,
                (full_name, email, password_hash, role),
            )
        except UniqueViolation as e:
            raise ConflictError("User with this email already exists") from e
        return fetch_one(cur)

    def get(self, conn: Connection, user_id: int) -> dict | None:
        cur = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s;", (user_id,))
        return fetch_one(cur)

    def get_with_hash(self, conn: Connection, *, email: str | None = None, user_id: int | None = None) -> dict | None:
        if email is not None:
            cur = conn.execute(f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE email = %s;", (email,))
        else:
            cur = conn.execute(f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE id = %s;", (user_id,))
        return fetch_one(cur)

    def set_password(self, conn: Connection, *, user_id: int, password_hash: str) -> None:
        conn.execute(
            "UPDATE users SET password_hash = %s, updated_at = now() WHERE id = %s;",
            (password_hash, user_id),
        )

    def upsert_admin(self, conn: Connection, *, full_name: str, email: str, password_hash: str) -> dict:
        cur = conn.execute(
            f"""
            INSERT INTO users(full_name, email, password_hash, role)
            VALUES (%s, %s, %s, 'admin')
            ON CONFLICT (email) DO UPDATE SET
              full_name = EXCLUDED.full_name,
              password_hash = EXCLUDED.password_hash,
              role = 'admin',
              updated_at = now()
            RETURNING {USER_COLUMNS};
            """,
            (full_name, email, password_hash),
        )
        return fetch_one(cur)
