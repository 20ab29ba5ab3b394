from __future__ import annotations

from decimal import Decimal

import pytest

from garagedesk.domain import PartLine, ServiceUpdate
from garagedesk.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


def _create(db, services, vehicle_id, parts, labor="1000.00", status="pending"):
    with db.transaction() as conn:
        return services.service_records.create_service(
            conn, vehicle_id=vehicle_id, labor_cost=Decimal(labor), parts=parts, status=status
        )


def test_create_service_snapshots_prices_and_consumes_stock(db, services, store, vehicle_id, make_part):
    filter_id = make_part(name="Oil filter", stock=10, price="500.00")
    oil_id = make_part(name="Engine oil", stock=20, price="900.00")

    service = _create(
        db,
        services,
        vehicle_id,
        [
            PartLine(part_id=filter_id, quantity=2, unit_price=Decimal("450.00")),
            PartLine(part_id=oil_id, quantity=4, unit_price=Decimal("900.00")),
        ],
        labor="1500.00",
    )

    assert service["parts_total"] == Decimal("4500.00")
    assert service["total_amount"] == Decimal("6000.00")
    assert store.tables["parts"][filter_id]["stock_quantity"] == 8
    assert store.tables["parts"][oil_id]["stock_quantity"] == 16

    usages = store.rows("service_parts")
    assert [(u["part_id"], u["quantity"], u["unit_price"]) for u in usages] == [
        (filter_id, 2, Decimal("450.00")),
        (oil_id, 4, Decimal("900.00")),
    ]
    # caller's price is kept even though the catalogue says 500
    assert usages[0]["subtotal"] == Decimal("900.00")


def test_create_service_without_parts(db, services, vehicle_id):
    service = _create(db, services, vehicle_id, [], labor="750.00")
    assert service["parts_total"] == Decimal("0")
    assert service["total_amount"] == Decimal("750.00")
    assert service["status"] == "pending"


def test_short_stock_rolls_back_everything(db, services, store, vehicle_id, make_part):
    plenty_id = make_part(name="Spark plug", stock=10)
    short_id = make_part(name="Brake pad", stock=5)

    with pytest.raises(InsufficientStockError):
        _create(
            db,
            services,
            vehicle_id,
            [
                PartLine(part_id=plenty_id, quantity=3, unit_price=Decimal("100.00")),
                PartLine(part_id=short_id, quantity=6, unit_price=Decimal("200.00")),
            ],
        )

    assert store.tables["parts"][plenty_id]["stock_quantity"] == 10
    assert store.tables["parts"][short_id]["stock_quantity"] == 5
    assert store.rows("service_records") == []
    assert store.rows("service_parts") == []
    assert db.rollbacks == 1


def test_lines_are_locked_in_request_order(db, services, store, vehicle_id, make_part):
    a = make_part(name="A", stock=5)
    b = make_part(name="B", stock=5)
    _create(
        db,
        services,
        vehicle_id,
        [
            PartLine(part_id=b, quantity=1, unit_price=Decimal("1")),
            PartLine(part_id=a, quantity=1, unit_price=Decimal("1")),
        ],
    )
    part_locks = [row_id for table, row_id in store.locks if table == "parts"]
    assert part_locks[0] == b
    assert part_locks.index(a) > part_locks.index(b)


def test_unknown_part_rolls_back(db, services, store, vehicle_id, make_part):
    part_id = make_part(stock=5)
    with pytest.raises(NotFoundError):
        _create(
            db,
            services,
            vehicle_id,
            [
                PartLine(part_id=part_id, quantity=1, unit_price=Decimal("10")),
                PartLine(part_id=404, quantity=1, unit_price=Decimal("10")),
            ],
        )
    assert store.tables["parts"][part_id]["stock_quantity"] == 5
    assert store.rows("service_records") == []


def test_unknown_vehicle(db, services):
    with pytest.raises(NotFoundError, match="Vehicle not found"):
        _create(db, services, 12345, [])


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_is_rejected(db, services, store, vehicle_id, make_part, quantity):
    part_id = make_part(stock=5)
    with pytest.raises(ValidationError):
        _create(db, services, vehicle_id, [PartLine(part_id=part_id, quantity=quantity, unit_price=Decimal("1"))])
    assert store.rows("service_records") == []


def test_negative_labor_is_rejected(db, services, vehicle_id):
    with pytest.raises(ValidationError):
        _create(db, services, vehicle_id, [], labor="-1")


def test_sub_cent_amounts_are_rejected(db, services, store, vehicle_id, make_part):
    part_id = make_part(stock=5)
    with pytest.raises(ValidationError, match="decimal places"):
        _create(db, services, vehicle_id, [PartLine(part_id=part_id, quantity=3, unit_price=Decimal("10.005"))])
    with pytest.raises(ValidationError, match="decimal places"):
        _create(db, services, vehicle_id, [], labor="0.005")
    assert store.rows("service_records") == []
    assert store.tables["parts"][part_id]["stock_quantity"] == 5

    service = _create(db, services, vehicle_id, [], labor="10.50")
    with db.transaction() as conn:
        with pytest.raises(ValidationError, match="decimal places"):
            services.service_records.add_part_to_service(
                conn, service_id=service["id"], part_id=part_id, quantity=1, unit_price=Decimal("1.001")
            )
        with pytest.raises(ValidationError, match="decimal places"):
            services.service_records.update_service(conn, service["id"], ServiceUpdate(labor_cost=Decimal("1.999")))
    assert store.tables["parts"][part_id]["stock_quantity"] == 5


def test_add_part_recomputes_totals_from_usage_rows(db, services, store, vehicle_id, make_part):
    part_id = make_part(stock=10, price="300.00")
    service = _create(db, services, vehicle_id, [], labor="1000.00")

    for _ in range(2):
        with db.transaction() as conn:
            result = services.service_records.add_part_to_service(
                conn, service_id=service["id"], part_id=part_id, quantity=2, unit_price=Decimal("250.00")
            )

    assert result["part"]["subtotal"] == Decimal("500.00")
    assert result["service"]["parts_total"] == Decimal("1000.00")
    assert result["service"]["total_amount"] == Decimal("2000.00")
    assert store.tables["parts"][part_id]["stock_quantity"] == 6
    assert len(store.rows("service_parts")) == 2


def test_add_part_short_stock_changes_nothing(db, services, store, vehicle_id, make_part):
    part_id = make_part(stock=1)
    service = _create(db, services, vehicle_id, [])

    with pytest.raises(InsufficientStockError):
        with db.transaction() as conn:
            services.service_records.add_part_to_service(
                conn, service_id=service["id"], part_id=part_id, quantity=2, unit_price=Decimal("10")
            )

    assert store.tables["parts"][part_id]["stock_quantity"] == 1
    assert store.tables["service_records"][service["id"]]["parts_total"] == Decimal("0")


def test_add_part_to_missing_service(db, services, make_part):
    part_id = make_part(stock=5)
    with pytest.raises(NotFoundError, match="Service not found"):
        with db.transaction() as conn:
            services.service_records.add_part_to_service(
                conn, service_id=77, part_id=part_id, quantity=1, unit_price=Decimal("10")
            )


def test_get_service_includes_parts(db, services, vehicle_id, make_part):
    part_id = make_part(name="Air filter", stock=5)
    service = _create(db, services, vehicle_id, [PartLine(part_id=part_id, quantity=1, unit_price=Decimal("80"))])
    with db.session() as conn:
        fetched = services.service_records.get_service(conn, service["id"])
    assert fetched["registration_number"] == "KCA 123A"
    assert fetched["owner_name"] == "Jane Wanjiku"
    assert [p["part_name"] for p in fetched["parts"]] == ["Air filter"]


def test_status_moves_forward_only(db, services, vehicle_id):
    service = _create(db, services, vehicle_id, [])
    with db.transaction() as conn:
        updated = services.service_records.update_service(conn, service["id"], ServiceUpdate(status="in_progress"))
    assert updated["status"] == "in_progress"

    with pytest.raises(InvalidStateError):
        with db.transaction() as conn:
            services.service_records.update_service(conn, service["id"], ServiceUpdate(status="pending"))

    with db.transaction() as conn:
        services.service_records.update_service(conn, service["id"], ServiceUpdate(status="completed"))
    with pytest.raises(InvalidStateError):
        with db.transaction() as conn:
            services.service_records.update_service(conn, service["id"], ServiceUpdate(status="in_progress"))


def test_labor_change_recomputes_total(db, services, vehicle_id, make_part):
    part_id = make_part(stock=5)
    service = _create(
        db, services, vehicle_id, [PartLine(part_id=part_id, quantity=1, unit_price=Decimal("200"))], labor="100"
    )
    with db.transaction() as conn:
        updated = services.service_records.update_service(
            conn, service["id"], ServiceUpdate(labor_cost=Decimal("300"))
        )
    assert updated["total_amount"] == Decimal("500")


def test_empty_update_is_rejected(db, services, vehicle_id):
    service = _create(db, services, vehicle_id, [])
    with pytest.raises(ValidationError, match="No valid fields"):
        with db.transaction() as conn:
            services.service_records.update_service(conn, service["id"], ServiceUpdate())


def test_delete_service_returns_parts_to_stock(db, services, store, vehicle_id, make_part):
    part_id = make_part(stock=5)
    service = _create(db, services, vehicle_id, [PartLine(part_id=part_id, quantity=3, unit_price=Decimal("10"))])
    assert store.tables["parts"][part_id]["stock_quantity"] == 2

    with db.transaction() as conn:
        services.service_records.delete_service(conn, service["id"])

    assert store.tables["parts"][part_id]["stock_quantity"] == 5
    assert store.rows("service_records") == []
    assert store.rows("service_parts") == []


def test_invoiced_service_cannot_be_deleted(db, services, vehicle_id):
    service = _create(db, services, vehicle_id, [], status="completed")
    with db.transaction() as conn:
        services.invoices.create_invoice(conn, service_record_id=service["id"])
    with pytest.raises(ConflictError):
        with db.transaction() as conn:
            services.service_records.delete_service(conn, service["id"])
