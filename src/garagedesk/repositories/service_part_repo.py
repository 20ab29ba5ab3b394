from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..db import fetch_all, fetch_one


class ServicePartRepository:
    def add(
        self,
        conn: Connection,
        *,
        service_id: int,
        part_id: int,
        quantity: int,
        unit_price: Decimal,
    ) -> dict:
        cur = conn.execute(
            """
            INSERT INTO service_parts(service_id, part_id, quantity, unit_price, subtotal)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id, service_id, part_id, quantity, unit_price, subtotal;
            """,
            (service_id, part_id, quantity, unit_price, quantity * unit_price),
        )
        return fetch_one(cur)

    def list_for_service(self, conn: Connection, service_id: int) -> list[dict]:
        cur = conn.execute(
            """
            SELECT sp.id, sp.service_id, sp.part_id, p.name AS part_name, p.part_number,
                   sp.quantity, sp.unit_price, sp.subtotal
            FROM service_parts sp
            JOIN parts p ON p.id = sp.part_id
            WHERE sp.service_id = %s
            ORDER BY sp.id;
            """,
            (service_id,),
        )
        return fetch_all(cur)

    def sum_for_service(self, conn: Connection, service_id: int) -> Decimal:
        cur = conn.execute(
            "SELECT COALESCE(SUM(quantity * unit_price), 0) FROM service_parts WHERE service_id = %s;",
            (service_id,),
        )
        return Decimal(cur.fetchone()[0])
