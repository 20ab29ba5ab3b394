from __future__ import annotations

from datetime import date
from decimal import Decimal

from psycopg import Connection

from ..db import fetch_all, fetch_one
from ._sql import update_returning, where_clause

SERVICE_SELECT = """
    SELECT s.id, s.vehicle_id, s.service_date, s.description, s.labor_cost,
           s.parts_total, s.total_amount, s.status, s.notes, s.created_at,
           v.registration_number, v.make_model,
           COALESCE(o.name, c.name) AS owner_name
    FROM service_records s
    JOIN vehicles v ON v.id = s.vehicle_id
    LEFT JOIN organizations o ON o.id = v.organization_id
    LEFT JOIN clients c ON c.id = v.client_id
"""


class ServiceRecordRepository:
    def create(
        self,
        conn: Connection,
        *,
        vehicle_id: int,
        description: str | None,
        labor_cost: Decimal,
        parts_total: Decimal,
        total_amount: Decimal,
        status: str,
        notes: str | None,
        service_date: date | None = None,
    ) -> dict:
        cur = conn.execute(
            """
            INSERT INTO service_records(
                vehicle_id, service_date, description, labor_cost,
                parts_total, total_amount, status, notes
            )
            VALUES (%s, COALESCE(%s, CURRENT_DATE), %s, %s, %s, %s, %s, %s)
            RETURNING *;
            """,
            (vehicle_id, service_date, description, labor_cost, parts_total, total_amount, status, notes),
        )
        return fetch_one(cur)

    def get(self, conn: Connection, service_id: int) -> dict | None:
        cur = conn.execute(SERVICE_SELECT + " WHERE s.id = %s;", (service_id,))
        return fetch_one(cur)

    def get_for_update(self, conn: Connection, service_id: int) -> dict | None:
        cur = conn.execute(
            "SELECT * FROM service_records WHERE id = %s FOR UPDATE;",
            (service_id,),
        )
        return fetch_one(cur)

    def update(self, conn: Connection, service_id: int, changes: dict) -> dict | None:
        return update_returning(conn, "service_records", service_id, changes)

    def set_parts_total(self, conn: Connection, *, service_id: int, parts_total: Decimal) -> dict:
        cur = conn.execute(
            """
            UPDATE service_records
            SET parts_total = %s,
                total_amount = labor_cost + %s
            WHERE id = %s
            RETURNING *;
            """,
            (parts_total, parts_total, service_id),
        )
        return fetch_one(cur)

    def delete(self, conn: Connection, service_id: int) -> dict | None:
        cur = conn.execute("DELETE FROM service_records WHERE id = %s RETURNING *;", (service_id,))
        return fetch_one(cur)

    def list_page(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        status: str | None = None,
        vehicle_id: int | None = None,
        client_id: int | None = None,
        organization_id: int | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        conditions: list[str] = []
        params: list = []
        if search:
            conditions.append("(v.registration_number ILIKE %s OR s.description ILIKE %s)")
            params += [f"%{search}%", f"%{search}%"]
        if status:
            conditions.append("s.status = %s")
            params.append(status)
        if vehicle_id is not None:
            conditions.append("s.vehicle_id = %s")
            params.append(vehicle_id)
        if client_id is not None:
            conditions.append("v.client_id = %s")
            params.append(client_id)
        if organization_id is not None:
            conditions.append("v.organization_id = %s")
            params.append(organization_id)
        where = where_clause(conditions)

        cur = conn.execute(
            SERVICE_SELECT + where + " ORDER BY s.service_date DESC, s.id DESC LIMIT %s OFFSET %s;",
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute(
            "SELECT COUNT(*) FROM service_records s JOIN vehicles v ON v.id = s.vehicle_id" + where + ";",
            params,
        ).fetchone()[0]
        return rows, int(total)
