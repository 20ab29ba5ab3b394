from __future__ import annotations

import pytest

from garagedesk.errors import InsufficientStockError, NotFoundError


def test_adjust_stock_adds_and_subtracts(db, services, store, make_part):
    part_id = make_part(stock=10)

    with db.transaction() as conn:
        part = services.ledger.adjust_stock(conn, part_id=part_id, delta=-4)
    assert part["stock_quantity"] == 6

    with db.transaction() as conn:
        part = services.ledger.adjust_stock(conn, part_id=part_id, delta=7)
    assert part["stock_quantity"] == 13
    assert store.tables["parts"][part_id]["stock_quantity"] == 13


def test_adjust_stock_locks_the_row(db, services, store, make_part):
    part_id = make_part(stock=3)
    with db.transaction() as conn:
        services.ledger.adjust_stock(conn, part_id=part_id, delta=-1)
    assert store.locks == [("parts", part_id)]


def test_insufficient_stock_leaves_quantity_untouched(db, services, store, make_part):
    part_id = make_part(name="Brake pad", stock=5)

    with pytest.raises(InsufficientStockError) as exc:
        with db.transaction() as conn:
            services.ledger.adjust_stock(conn, part_id=part_id, delta=-6)

    assert exc.value.status_code == 400
    assert exc.value.message == "Insufficient stock for part 'Brake pad'. Available: 5, requested: 6"
    assert store.tables["parts"][part_id]["stock_quantity"] == 5


def test_draining_to_zero_is_allowed(db, services, make_part):
    part_id = make_part(stock=2)
    with db.transaction() as conn:
        part = services.ledger.adjust_stock(conn, part_id=part_id, delta=-2)
    assert part["stock_quantity"] == 0


def test_unknown_part(db, services):
    with pytest.raises(NotFoundError, match="Part with ID 99 not found"):
        with db.transaction() as conn:
            services.ledger.adjust_stock(conn, part_id=99, delta=1)
