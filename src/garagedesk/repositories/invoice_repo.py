from __future__ import annotations

from datetime import date
from decimal import Decimal

from psycopg import Connection
from psycopg.errors import UniqueViolation

from ..db import fetch_all, fetch_one
from ..errors import ConflictError
from ._sql import update_returning, where_clause

INVOICE_SELECT = """
    SELECT i.*,
           s.description AS service_description, s.labor_cost, s.service_date,
           v.registration_number, v.make_model,
           COALESCE(o.name, c.name) AS customer_name
    FROM invoices i
    JOIN service_records s ON s.id = i.service_record_id
    JOIN vehicles v ON v.id = s.vehicle_id
    LEFT JOIN organizations o ON o.id = v.organization_id
    LEFT JOIN clients c ON c.id = v.client_id
"""


class InvoiceRepository:
    def create(
        self,
        conn: Connection,
        *,
        service_record_id: int,
        subtotal: Decimal,
        discount: Decimal,
        tax_rate: Decimal,
        tax_amount: Decimal,
        total_amount: Decimal,
        payment_method: str | None,
    ) -> dict:
        try:
            cur = conn.execute(
                """
                INSERT INTO invoices(
                    service_record_id, subtotal, discount, tax_rate,
                    tax_amount, total_amount, payment_method
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING *;
                """,
                (service_record_id, subtotal, discount, tax_rate, tax_amount, total_amount, payment_method),
            )
        except UniqueViolation as e:
            raise ConflictError("Invoice already exists for this service record") from e
        return fetch_one(cur)

    def assign_number(self, conn: Connection, *, invoice_id: int, invoice_number: str) -> dict:
        cur = conn.execute(
            "UPDATE invoices SET invoice_number = %s WHERE id = %s RETURNING *;",
            (invoice_number, invoice_id),
        )
        return fetch_one(cur)

    def get(self, conn: Connection, invoice_id: int) -> dict | None:
        cur = conn.execute(INVOICE_SELECT + " WHERE i.id = %s;", (invoice_id,))
        return fetch_one(cur)

    def get_for_update(self, conn: Connection, invoice_id: int) -> dict | None:
        cur = conn.execute("SELECT * FROM invoices WHERE id = %s FOR UPDATE;", (invoice_id,))
        return fetch_one(cur)

    def exists_for_service(self, conn: Connection, service_record_id: int) -> bool:
        cur = conn.execute(
            "SELECT EXISTS(SELECT 1 FROM invoices WHERE service_record_id = %s);",
            (service_record_id,),
        )
        return bool(cur.fetchone()[0])

    def mark_paid(self, conn: Connection, *, invoice_id: int, payment_method: str | None) -> dict | None:
        cur = conn.execute(
            """
            UPDATE invoices
            SET payment_status = 'paid',
                payment_date = now(),
                payment_method = COALESCE(%s, payment_method)
            WHERE id = %s
            RETURNING *;
            """,
            (payment_method, invoice_id),
        )
        return fetch_one(cur)

    def update(self, conn: Connection, invoice_id: int, changes: dict, *, stamp_payment: bool = False) -> dict | None:
        row = update_returning(conn, "invoices", invoice_id, changes)
        if row is not None and stamp_payment:
            cur = conn.execute(
                "UPDATE invoices SET payment_date = now() WHERE id = %s RETURNING *;",
                (invoice_id,),
            )
            row = fetch_one(cur)
        return row

    def delete(self, conn: Connection, invoice_id: int) -> bool:
        cur = conn.execute("DELETE FROM invoices WHERE id = %s RETURNING id;", (invoice_id,))
        return cur.fetchone() is not None

    def list_page(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        payment_status: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        conditions: list[str] = []
        params: list = []
        if search:
            conditions.append("(i.invoice_number ILIKE %s OR v.registration_number ILIKE %s)")
            params += [f"%{search}%", f"%{search}%"]
        if payment_status:
            conditions.append("i.payment_status = %s")
            params.append(payment_status)
        if start_date:
            conditions.append("i.issue_date::date >= %s")
            params.append(start_date)
        if end_date:
            conditions.append("i.issue_date::date <= %s")
            params.append(end_date)
        where = where_clause(conditions)

        cur = conn.execute(
            INVOICE_SELECT + where + " ORDER BY i.issue_date DESC LIMIT %s OFFSET %s;",
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute(
            """
            SELECT COUNT(*) FROM invoices i
            JOIN service_records s ON s.id = i.service_record_id
            JOIN vehicles v ON v.id = s.vehicle_id
            """ + where + ";",
            params,
        ).fetchone()[0]
        return rows, int(total)

    def monthly_revenue(self, conn: Connection, *, year: int, month: int | None = None) -> list[dict]:
        query = "SELECT * FROM monthly_revenue WHERE year = %s"
        params: list = [year]
        if month is not None:
            query += " AND month = %s"
            params.append(month)
        cur = conn.execute(query + " ORDER BY month;", params)
        return fetch_all(cur)
