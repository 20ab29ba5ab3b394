from __future__ import annotations

from psycopg import Connection
from psycopg.errors import UniqueViolation

from ..db import fetch_all, fetch_one
from ..domain import VehicleUpdate
from ..errors import ConflictError
from ._sql import update_returning, where_clause

VEHICLE_SELECT = """
    SELECT v.*, o.name AS organization_name, c.name AS client_name
    FROM vehicles v
    LEFT JOIN organizations o ON o.id = v.organization_id
    LEFT JOIN clients c ON c.id = v.client_id
"""


class VehicleRepository:
    def create(
        self,
        conn: Connection,
        *,
        registration_number: str,
        make_model: str,
        vehicle_type: str | None = None,
        year: int | None = None,
        color: str | None = None,
        vin: str | None = None,
        organization_id: int | None = None,
        client_id: int | None = None,
    ) -> dict:
        try:
            cur = conn.execute(
                """
                INSERT INTO vehicles(
                    registration_number, make_model, vehicle_type, year,
                    color, vin, organization_id, client_id
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *;
                """,
                (registration_number, make_model, vehicle_type, year, color, vin, organization_id, client_id),
            )
        except UniqueViolation as e:
            raise ConflictError(f"Vehicle with registration {registration_number} already exists") from e
        return fetch_one(cur)

    def exists(self, conn: Connection, vehicle_id: int) -> bool:
        cur = conn.execute("SELECT EXISTS(SELECT 1 FROM vehicles WHERE id = %s);", (vehicle_id,))
        return bool(cur.fetchone()[0])

    def get(self, conn: Connection, vehicle_id: int) -> dict | None:
        cur = conn.execute(VEHICLE_SELECT + " WHERE v.id = %s;", (vehicle_id,))
        return fetch_one(cur)

    def update(self, conn: Connection, vehicle_id: int, changes: VehicleUpdate) -> dict | None:
        try:
            return update_returning(conn, "vehicles", vehicle_id, changes.changes())
        except UniqueViolation as e:
            raise ConflictError("Another vehicle with this registration number already exists") from e

    def delete(self, conn: Connection, vehicle_id: int) -> bool:
        cur = conn.execute("DELETE FROM vehicles WHERE id = %s RETURNING id;", (vehicle_id,))
        return cur.fetchone() is not None

    def has_services(self, conn: Connection, vehicle_id: int) -> bool:
        cur = conn.execute(
            "SELECT EXISTS(SELECT 1 FROM service_records WHERE vehicle_id = %s);",
            (vehicle_id,),
        )
        return bool(cur.fetchone()[0])

    def list_page(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        organization_id: int | None = None,
        client_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        conditions: list[str] = []
        params: list = []
        if search:
            conditions.append("(v.registration_number ILIKE %s OR v.make_model ILIKE %s OR v.vin ILIKE %s)")
            params += [f"%{search}%"] * 3
        if organization_id is not None:
            conditions.append("v.organization_id = %s")
            params.append(organization_id)
        if client_id is not None:
            conditions.append("v.client_id = %s")
            params.append(client_id)
        where = where_clause(conditions)

        cur = conn.execute(
            VEHICLE_SELECT + where + " ORDER BY v.created_at DESC LIMIT %s OFFSET %s;",
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute(f"SELECT COUNT(*) FROM vehicles v{where};", params).fetchone()[0]
        return rows, int(total)
