from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..db import fetch_all, fetch_one


class InvoiceItemRepository:
    def add(
        self,
        conn: Connection,
        *,
        invoice_id: int,
        part_id: int,
        quantity: int,
        unit_price: Decimal,
        total_price: Decimal,
    ) -> dict:
        cur = conn.execute(
            """
            INSERT INTO invoice_items(invoice_id, part_id, quantity, unit_price, total_price)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *;
            """,
            (invoice_id, part_id, quantity, unit_price, total_price),
        )
        return fetch_one(cur)

    def list_for_invoice(self, conn: Connection, invoice_id: int) -> list[dict]:
        cur = conn.execute(
            """
            SELECT ii.*, p.name AS part_name, p.part_number
            FROM invoice_items ii
            JOIN parts p ON p.id = ii.part_id
            WHERE ii.invoice_id = %s
            ORDER BY ii.id;
            """,
            (invoice_id,),
        )
        return fetch_all(cur)
