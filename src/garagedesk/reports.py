from __future__ import annotations

from datetime import datetime

from psycopg import Connection

from .db import fetch_all, fetch_one


def revenue_report(conn: Connection, date_from: datetime, date_to: datetime) -> dict:
    # services and their invoices created in the window; labor and parts come from the service side
    cur = conn.execute(
        """
        SELECT
          COUNT(DISTINCT s.id) AS services_count,
          COUNT(DISTINCT i.id) AS invoices_count,
          COALESCE(SUM(i.total_amount), 0) AS invoiced_sum,
          COALESCE(SUM(i.total_amount) FILTER (WHERE i.payment_status = 'paid'), 0) AS collected_sum,
          COALESCE(SUM(s.labor_cost), 0) AS labor_sum,
          COALESCE(SUM(s.parts_total), 0) AS parts_sum
        FROM service_records s
        LEFT JOIN invoices i ON i.service_record_id = s.id
        WHERE s.created_at >= %s AND s.created_at < %s;
        """,
        (date_from, date_to),
    )
    return fetch_one(cur)


def top_parts(conn: Connection, limit: int = 10) -> list[dict]:
    cur = conn.execute(
        """
        SELECT
          pr.id,
          pr.part_number,
          pr.name,
          SUM(sp.quantity) AS total_qty,
          SUM(sp.subtotal) AS total_value
        FROM service_parts sp
        JOIN parts pr ON pr.id = sp.part_id
        GROUP BY pr.id, pr.part_number, pr.name
        ORDER BY total_qty DESC
        LIMIT %s;
        """,
        (limit,),
    )
    return fetch_all(cur)
