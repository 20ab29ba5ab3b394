from __future__ import annotations

from psycopg import Connection
from psycopg.errors import ForeignKeyViolation, UniqueViolation

from ..db import fetch_all, fetch_one
from ..domain import OrganizationUpdate
from ..errors import ConflictError, ValidationError
from ._sql import update_returning


class OrganizationRepository:
    def create(
        self,
        conn: Connection,
        *,
        name: str,
        contact_person: str | None,
        email: str | None,
        phone: str | None,
        address: str | None,
    ) -> dict:
        try:
            cur = conn.execute(
                """
                INSERT INTO organizations(name, contact_person, email, phone, address)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING *;
                """,
                (name, contact_person, email, phone, address),
            )
        except UniqueViolation as e:
            raise ConflictError("Organization with this phone number already exists") from e
        return fetch_one(cur)

    def exists(self, conn: Connection, organization_id: int) -> bool:
        cur = conn.execute("SELECT EXISTS(SELECT 1 FROM organizations WHERE id = %s);", (organization_id,))
        return bool(cur.fetchone()[0])

    def get(self, conn: Connection, organization_id: int) -> dict | None:
        cur = conn.execute("SELECT * FROM organizations WHERE id = %s;", (organization_id,))
        return fetch_one(cur)

    def update(self, conn: Connection, organization_id: int, changes: OrganizationUpdate) -> dict | None:
        try:
            return update_returning(conn, "organizations", organization_id, changes.changes())
        except UniqueViolation as e:
            raise ConflictError("Another organization with this phone number already exists") from e

    def delete(self, conn: Connection, organization_id: int) -> bool:
        try:
            cur = conn.execute("DELETE FROM organizations WHERE id = %s RETURNING id;", (organization_id,))
        except ForeignKeyViolation as e:
            raise ValidationError("Cannot delete organization whose vehicles have service records") from e
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
            where = " WHERE o.name ILIKE %s OR o.contact_person ILIKE %s OR o.email ILIKE %s"
            params = [f"%{search}%"] * 3

        cur = conn.execute(
            """
            SELECT o.*, COUNT(v.id) AS vehicle_count
            FROM organizations o
            LEFT JOIN vehicles v ON v.organization_id = o.id
            """ + where + """
            GROUP BY o.id
            ORDER BY o.name ASC
            LIMIT %s OFFSET %s;
            """,
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute("SELECT COUNT(*) FROM organizations o" + where + ";", params).fetchone()[0]
        return rows, int(total)
