from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import Blueprint, jsonify, request

from ...domain import PAYMENT_METHODS, PAYMENT_STATUSES, InvoiceUpdate
from ..context import get_config, get_db, get_services
from ..params import json_body, to_choice, to_date, to_decimal, to_int
from ..responses import build_pagination_response, get_pagination, success_response

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@invoices_bp.get("")
def list_invoices():
    page = get_pagination(request.args, get_config().business)
    with get_db().session() as conn:
        rows, total = get_services().repos.invoice_repo.list_page(
            conn,
            search=request.args.get("search"),
            payment_status=to_choice(request.args.get("payment_status"), "payment_status", PAYMENT_STATUSES),
            start_date=to_date(request.args.get("start_date"), "start_date"),
            end_date=to_date(request.args.get("end_date"), "end_date"),
            limit=page.limit,
            offset=page.offset,
        )
    return jsonify(build_pagination_response(rows, page, total))


@invoices_bp.get("/stats/revenue")
def revenue_stats():
    year = to_int(request.args.get("year"), "year", required=False, min_value=2000) or date.today().year
    month = to_int(request.args.get("month"), "month", required=False)
    with get_db().session() as conn:
        rows = get_services().invoices.revenue(conn, year=year, month=month)
    return success_response(200, "Revenue statistics retrieved successfully", {"year": year, "months": rows})


@invoices_bp.get("/<int:invoice_id>")
def get_invoice(invoice_id: int):
    with get_db().session() as conn:
        invoice = get_services().invoices.get_invoice(conn, invoice_id)
    return success_response(200, "Invoice retrieved successfully", {"invoice": invoice})


@invoices_bp.post("")
def create_invoice():
    body = json_body()
    business = get_config().business
    with get_db().transaction() as conn:
        invoice = get_services().invoices.create_invoice(
            conn,
            service_record_id=to_int(body.get("service_record_id"), "service_record_id", min_value=1),
            discount=to_decimal(body.get("discount"), "discount", default=ZERO, min_value=ZERO, max_value=HUNDRED),
            tax_rate=to_decimal(
                body.get("tax_rate"), "tax_rate", default=business.default_tax_rate, min_value=ZERO, max_value=HUNDRED
            ),
            payment_method=to_choice(body.get("payment_method"), "payment_method", PAYMENT_METHODS),
        )
    return success_response(201, "Invoice created successfully", {"invoice": invoice})


@invoices_bp.put("/<int:invoice_id>")
def update_invoice(invoice_id: int):
    body = json_body()
    update = InvoiceUpdate(
        payment_status=to_choice(body.get("payment_status"), "payment_status", PAYMENT_STATUSES),
        payment_method=to_choice(body.get("payment_method"), "payment_method", PAYMENT_METHODS),
        discount=to_decimal(body.get("discount"), "discount", min_value=ZERO, max_value=HUNDRED),
        tax_rate=to_decimal(body.get("tax_rate"), "tax_rate", min_value=ZERO, max_value=HUNDRED),
    )
    with get_db().transaction() as conn:
        invoice = get_services().invoices.update_invoice(conn, invoice_id, update)
    return success_response(200, "Invoice updated successfully", {"invoice": invoice})


@invoices_bp.patch("/<int:invoice_id>/pay")
def mark_paid(invoice_id: int):
    body = json_body()
    with get_db().transaction() as conn:
        invoice = get_services().invoices.mark_paid(
            conn,
            invoice_id=invoice_id,
            payment_method=to_choice(body.get("payment_method"), "payment_method", PAYMENT_METHODS),
        )
    return success_response(200, "Invoice marked as paid", {"invoice": invoice})


@invoices_bp.delete("/<int:invoice_id>")
def delete_invoice(invoice_id: int):
    with get_db().transaction() as conn:
        get_services().invoices.delete_invoice(conn, invoice_id)
    return success_response(200, "Invoice deleted successfully")
