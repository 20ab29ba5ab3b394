from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Literal, Optional

Role = Literal["admin", "mechanic", "receptionist"]
ServiceStatus = Literal["pending", "in_progress", "completed"]
PaymentStatus = Literal["unpaid", "paid", "partially_paid"]

ROLES: tuple[str, ...] = ("admin", "mechanic", "receptionist")
SERVICE_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")
PAYMENT_STATUSES: tuple[str, ...] = ("unpaid", "paid", "partially_paid")
PAYMENT_METHODS: tuple[str, ...] = ("cash", "card", "mpesa", "bank_transfer", "cheque")

# status -> statuses it may move to
SERVICE_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("in_progress", "completed"),
    "in_progress": ("completed",),
    "completed": (),
}


def has_places(value: Decimal, places: int = 2) -> bool:
    """True when a finite ``value`` fits in ``places`` fractional digits."""
    return value.normalize().as_tuple().exponent >= -places


@dataclass(frozen=True)
class PartLine:
    part_id: int
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class NewVehicle:
    registration_number: str
    make_model: str
    vehicle_type: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    vin: Optional[str] = None


class FieldUpdate:
    """Fixed set of optional columns; ``None`` means "leave unchanged"."""

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class ClientUpdate(FieldUpdate):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class OrganizationUpdate(FieldUpdate):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class VehicleUpdate(FieldUpdate):
    registration_number: Optional[str] = None
    make_model: Optional[str] = None
    vehicle_type: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    vin: Optional[str] = None


@dataclass(frozen=True)
class PartUpdate(FieldUpdate):
    name: Optional[str] = None
    part_number: Optional[str] = None
    price: Optional[Decimal] = None
    reorder_level: Optional[int] = None


@dataclass(frozen=True)
class ServiceUpdate(FieldUpdate):
    description: Optional[str] = None
    labor_cost: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    service_date: Optional[date] = None


@dataclass(frozen=True)
class InvoiceUpdate(FieldUpdate):
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    discount: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
