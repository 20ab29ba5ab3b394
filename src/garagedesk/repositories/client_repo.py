from __future__ import annotations

from psycopg import Connection
from psycopg.errors import ForeignKeyViolation, UniqueViolation

from ..db import fetch_all, fetch_one
from ..domain import ClientUpdate
from ..errors import ConflictError, ValidationError
from ._sql import update_returning


class ClientRepository:
    def create(
        self,
        conn: Connection,
        *,
        name: str,
        email: str | None,
        phone: str | None,
        address: str | None,
    ) -> dict:
        try:
            cur = conn.execute(
                """
                INSERT INTO clients(name, email, phone, address)
                VALUES (%s, %s, %s, %s)
                RETURNING *;
                """,
                (name, email, phone, address),
            )
        except UniqueViolation as e:
            raise ConflictError("Client with this phone number already exists") from e
        return fetch_one(cur)

    def exists(self, conn: Connection, client_id: int) -> bool:
        cur = conn.execute("SELECT EXISTS(SELECT 1 FROM clients WHERE id = %s);", (client_id,))
        return bool(cur.fetchone()[0])

    def get(self, conn: Connection, client_id: int) -> dict | None:
        cur = conn.execute("SELECT * FROM clients WHERE id = %s;", (client_id,))
        return fetch_one(cur)

    def update(self, conn: Connection, client_id: int, changes: ClientUpdate) -> dict | None:
        try:
            return update_returning(conn, "clients", client_id, changes.changes())
        except UniqueViolation as e:
            raise ConflictError("Another client with this phone number already exists") from e

    def delete(self, conn: Connection, client_id: int) -> bool:
        try:
            cur = conn.execute("DELETE FROM clients WHERE id = %s RETURNING id;", (client_id,))
        except ForeignKeyViolation as e:
            raise ValidationError("Cannot delete client whose vehicles have service records") from e
        return cur.fetchone() is not None

    def list_page(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        where = ""
        params: list = []
        if search:
            where = " WHERE c.name ILIKE %s OR c.phone ILIKE %s OR c.email ILIKE %s"
            params = [f"%{search}%"] * 3

        cur = conn.execute(
            """
            SELECT c.*, COUNT(v.id) AS vehicle_count
            FROM clients c
            LEFT JOIN vehicles v ON v.client_id = c.id
            """ + where + """
            GROUP BY c.id
            ORDER BY c.name ASC
            LIMIT %s OFFSET %s;
            """,
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute("SELECT COUNT(*) FROM clients c" + where + ";", params).fetchone()[0]
        return rows, int(total)
