from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from psycopg import Connection

from ..domain import PAYMENT_METHODS, PAYMENT_STATUSES, InvoiceTotals, InvoiceUpdate, has_places
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..repositories.invoice_item_repo import InvoiceItemRepository
from ..repositories.invoice_repo import InvoiceRepository
from ..repositories.service_part_repo import ServicePartRepository
from ..repositories.service_repo import ServiceRecordRepository

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _check_percentage(name: str, value: Decimal) -> None:
    if not (Decimal("0") <= value <= HUNDRED):
        raise ValidationError(f"{name} must be between 0 and 100")
    if not has_places(value):
        raise ValidationError(f"{name} must have at most 2 decimal places")


def _check_payment_method(method: str | None) -> None:
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method. Use one of: {', '.join(PAYMENT_METHODS)}")


def compute_invoice_totals(
    labor_cost: Decimal,
    parts_cost: Decimal,
    discount_pct: Decimal,
    tax_rate_pct: Decimal,
) -> InvoiceTotals:
    """Subtotal, discount and tax for an invoice, rounded half-up to cents.

    Percentages are literal values: ``16`` means 16%. Tax applies to the
    discounted subtotal.
    """
    subtotal = labor_cost + parts_cost
    discount_amount = _money(subtotal * discount_pct / HUNDRED)
    after_discount = subtotal - discount_amount
    tax_amount = _money(after_discount * tax_rate_pct / HUNDRED)
    return InvoiceTotals(
        subtotal=_money(subtotal),
        discount_amount=discount_amount,
        after_discount=_money(after_discount),
        tax_amount=tax_amount,
        total_amount=_money(after_discount + tax_amount),
    )


def invoice_number(invoice_id: int, issued: datetime) -> str:
    return f"INV-{issued.year}-{invoice_id:06d}"


class InvoiceService:
    def __init__(
        self,
        *,
        service_repo: ServiceRecordRepository,
        service_part_repo: ServicePartRepository,
        invoice_repo: InvoiceRepository,
        invoice_item_repo: InvoiceItemRepository,
    ) -> None:
        self.service_repo = service_repo
        self.service_part_repo = service_part_repo
        self.invoice_repo = invoice_repo
        self.invoice_item_repo = invoice_item_repo

    def create_invoice(
        self,
        conn: Connection,
        *,
        service_record_id: int,
        discount: Decimal = Decimal("0"),
        tax_rate: Decimal = Decimal("16"),
        payment_method: str | None = None,
    ) -> dict:
        _check_percentage("Discount", discount)
        _check_percentage("Tax rate", tax_rate)
        _check_payment_method(payment_method)

        # the service row lock serializes concurrent invoice attempts
        service = self.service_repo.get_for_update(conn, service_record_id)
        if service is None:
            raise NotFoundError("Service record not found")
        if service["status"] != "completed":
            raise InvalidStateError("Cannot create invoice for incomplete service")
        if self.invoice_repo.exists_for_service(conn, service_record_id):
            raise ConflictError("Invoice already exists for this service record")

        usages = self.service_part_repo.list_for_service(conn, service_record_id)
        parts_cost = sum(
            (int(u["quantity"]) * Decimal(u["unit_price"]) for u in usages),
            Decimal("0"),
        )
        totals = compute_invoice_totals(Decimal(service["labor_cost"]), parts_cost, discount, tax_rate)

        invoice = self.invoice_repo.create(
            conn,
            service_record_id=service_record_id,
            subtotal=totals.subtotal,
            discount=discount,
            tax_rate=tax_rate,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            payment_method=payment_method,
        )
        invoice = self.invoice_repo.assign_number(
            conn,
            invoice_id=int(invoice["id"]),
            invoice_number=invoice_number(int(invoice["id"]), invoice["issue_date"]),
        )

        items = [
            self.invoice_item_repo.add(
                conn,
                invoice_id=int(invoice["id"]),
                part_id=int(u["part_id"]),
                quantity=int(u["quantity"]),
                unit_price=Decimal(u["unit_price"]),
                total_price=_money(int(u["quantity"]) * Decimal(u["unit_price"])),
            )
            for u in usages
        ]

        log.info(
            "Invoice %s created for service #%s: subtotal %s, discount %s%%, tax %s, total %s",
            invoice["invoice_number"],
            service_record_id,
            totals.subtotal,
            discount,
            totals.tax_amount,
            totals.total_amount,
        )
        invoice["items"] = items
        return invoice

    def mark_paid(self, conn: Connection, *, invoice_id: int, payment_method: str | None = None) -> dict:
        _check_payment_method(payment_method)
        invoice = self.invoice_repo.mark_paid(conn, invoice_id=invoice_id, payment_method=payment_method)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        log.info("Invoice #%s marked paid (%s)", invoice_id, invoice["payment_method"])
        return invoice

    def get_invoice(self, conn: Connection, invoice_id: int) -> dict:
        invoice = self.invoice_repo.get(conn, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        invoice["items"] = self.invoice_item_repo.list_for_invoice(conn, invoice_id)
        return invoice

    def update_invoice(self, conn: Connection, invoice_id: int, update: InvoiceUpdate) -> dict:
        changes = update.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        current = self.invoice_repo.get_for_update(conn, invoice_id)
        if current is None:
            raise NotFoundError("Invoice not found")

        if "payment_status" in changes and changes["payment_status"] not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {changes['payment_status']}")
        _check_payment_method(changes.get("payment_method"))

        if "discount" in changes or "tax_rate" in changes:
            if current["payment_status"] == "paid":
                raise InvalidStateError("Cannot change discount or tax on a paid invoice")
            discount = changes.get("discount", Decimal(current["discount"]))
            tax_rate = changes.get("tax_rate", Decimal(current["tax_rate"]))
            _check_percentage("Discount", discount)
            _check_percentage("Tax rate", tax_rate)
            # subtotal is frozen at creation; only the percentages are re-applied
            totals = compute_invoice_totals(Decimal(current["subtotal"]), Decimal("0"), discount, tax_rate)
            changes["tax_amount"] = totals.tax_amount
            changes["total_amount"] = totals.total_amount

        stamp_payment = changes.get("payment_status") == "paid" and current["payment_status"] != "paid"
        return self.invoice_repo.update(conn, invoice_id, changes, stamp_payment=stamp_payment)

    def delete_invoice(self, conn: Connection, invoice_id: int) -> None:
        if not self.invoice_repo.delete(conn, invoice_id):
            raise NotFoundError("Invoice not found")

    def revenue(self, conn: Connection, *, year: int, month: int | None = None) -> list[dict]:
        if month is not None and not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12")
        return self.invoice_repo.monthly_revenue(conn, year=year, month=month)
