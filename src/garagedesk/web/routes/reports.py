from __future__ import annotations

from datetime import datetime, timedelta

from flask import Blueprint, request

from ... import reports
from ..context import get_db
from ..params import to_int
from ..responses import success_response

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
def summary():
    days = to_int(request.args.get("days"), "days", required=False, min_value=1) or 30
    date_to = datetime.now()
    date_from = date_to - timedelta(days=days)
    with get_db().session() as conn:
        revenue = reports.revenue_report(conn, date_from, date_to)
        parts = reports.top_parts(conn, limit=10)
    return success_response(
        200,
        "Report generated successfully",
        {"from": date_from, "to": date_to, "revenue": revenue, "top_parts": parts},
    )
