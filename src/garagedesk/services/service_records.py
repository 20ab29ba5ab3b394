from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from psycopg import Connection

from ..domain import SERVICE_STATUSES, SERVICE_TRANSITIONS, PartLine, ServiceUpdate, has_places
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..repositories.invoice_repo import InvoiceRepository
from ..repositories.service_part_repo import ServicePartRepository
from ..repositories.service_repo import ServiceRecordRepository
from ..repositories.vehicle_repo import VehicleRepository
from .inventory_ledger import InventoryLedger

log = logging.getLogger(__name__)


def _check_line(quantity: int, unit_price: Decimal) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Part quantity must be a positive integer.")
    if unit_price < 0:
        raise ValidationError("Unit price cannot be negative.")
    if not has_places(unit_price):
        raise ValidationError("Unit price must have at most 2 decimal places.")


def _check_labor_cost(labor_cost: Decimal) -> None:
    if labor_cost < 0:
        raise ValidationError("Labor cost cannot be negative.")
    if not has_places(labor_cost):
        raise ValidationError("Labor cost must have at most 2 decimal places.")


class ServiceRecordService:
    def __init__(
        self,
        *,
        vehicle_repo: VehicleRepository,
        service_repo: ServiceRecordRepository,
        service_part_repo: ServicePartRepository,
        invoice_repo: InvoiceRepository,
        ledger: InventoryLedger,
    ) -> None:
        self.vehicle_repo = vehicle_repo
        self.service_repo = service_repo
        self.service_part_repo = service_part_repo
        self.invoice_repo = invoice_repo
        self.ledger = ledger

    def create_service(
        self,
        conn: Connection,
        *,
        vehicle_id: int,
        labor_cost: Decimal,
        parts: list[PartLine],
        description: str | None = None,
        status: str = "pending",
        notes: str | None = None,
        service_date: date | None = None,
    ) -> dict:
        """Create a service record and consume its parts.

        Must run inside ``Db.transaction()``: any failure (unknown part,
        short stock) leaves no service, no usage rows and no stock change.
        """
        _check_labor_cost(labor_cost)
        if status not in SERVICE_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        for p in parts:
            _check_line(p.quantity, p.unit_price)

        if not self.vehicle_repo.exists(conn, vehicle_id):
            raise NotFoundError("Vehicle not found")

        parts_total = sum((p.subtotal for p in parts), Decimal("0"))
        total_amount = labor_cost + parts_total

        service = self.service_repo.create(
            conn,
            vehicle_id=vehicle_id,
            description=description,
            labor_cost=labor_cost,
            parts_total=parts_total,
            total_amount=total_amount,
            status=status,
            notes=notes,
            service_date=service_date,
        )

        for p in parts:
            self._consume_line(conn, service_id=int(service["id"]), line=p)

        log.info(
            "Service #%s created for vehicle #%s: %d part line(s), total %s",
            service["id"],
            vehicle_id,
            len(parts),
            total_amount,
        )
        return service

    def add_part_to_service(
        self,
        conn: Connection,
        *,
        service_id: int,
        part_id: int,
        quantity: int,
        unit_price: Decimal,
    ) -> dict:
        _check_line(quantity, unit_price)

        if self.service_repo.get_for_update(conn, service_id) is None:
            raise NotFoundError("Service not found")

        line = PartLine(part_id=part_id, quantity=quantity, unit_price=unit_price)
        usage = self._consume_line(conn, service_id=service_id, line=line)

        parts_total = self.service_part_repo.sum_for_service(conn, service_id)
        service = self.service_repo.set_parts_total(conn, service_id=service_id, parts_total=parts_total)
        log.info("Part #%s x%d added to service #%s, parts total now %s", part_id, quantity, service_id, parts_total)
        return {"service": service, "part": usage}

    def _consume_line(self, conn: Connection, *, service_id: int, line: PartLine) -> dict:
        part = self.ledger.lock_part(conn, line.part_id)
        self.ledger.ensure_available(part, line.quantity)
        usage = self.service_part_repo.add(
            conn,
            service_id=service_id,
            part_id=line.part_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        self.ledger.adjust_stock(conn, part_id=line.part_id, delta=-line.quantity)
        return usage

    def get_service(self, conn: Connection, service_id: int) -> dict:
        service = self.service_repo.get(conn, service_id)
        if service is None:
            raise NotFoundError("Service record not found")
        service["parts"] = self.service_part_repo.list_for_service(conn, service_id)
        return service

    def update_service(self, conn: Connection, service_id: int, update: ServiceUpdate) -> dict:
        changes = update.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        current = self.service_repo.get_for_update(conn, service_id)
        if current is None:
            raise NotFoundError("Service not found")

        new_status = changes.get("status")
        if new_status is not None and new_status != current["status"]:
            if new_status not in SERVICE_STATUSES:
                raise ValidationError(f"Invalid status: {new_status}")
            if new_status not in SERVICE_TRANSITIONS[current["status"]]:
                raise InvalidStateError(f"Cannot move service from {current['status']} to {new_status}")

        if "labor_cost" in changes:
            _check_labor_cost(changes["labor_cost"])
            changes["total_amount"] = changes["labor_cost"] + Decimal(current["parts_total"])

        return self.service_repo.update(conn, service_id, changes)

    def delete_service(self, conn: Connection, service_id: int) -> dict:
        """Delete an uninvoiced service, returning its parts to stock."""
        if self.service_repo.get_for_update(conn, service_id) is None:
            raise NotFoundError("Service not found")
        if self.invoice_repo.exists_for_service(conn, service_id):
            raise ConflictError("Cannot delete a service that has been invoiced")

        for usage in self.service_part_repo.list_for_service(conn, service_id):
            self.ledger.adjust_stock(conn, part_id=int(usage["part_id"]), delta=int(usage["quantity"]))

        return self.service_repo.delete(conn, service_id)
