from __future__ import annotations

import logging

from psycopg import Connection

from ..errors import InsufficientStockError, NotFoundError
from ..repositories.part_repo import PartRepository

log = logging.getLogger(__name__)


class InventoryLedger:
    """The only writer of ``parts.stock_quantity``.

    Every read that decides a decrement is taken with ``FOR UPDATE`` and the
    lock is held until the caller's transaction ends, so callers must pass a
    connection obtained from ``Db.transaction()``.
    """

    def __init__(self, *, part_repo: PartRepository) -> None:
        self.part_repo = part_repo

    def lock_part(self, conn: Connection, part_id: int) -> dict:
        part = self.part_repo.get_for_update(conn, part_id)
        if part is None:
            raise NotFoundError(f"Part with ID {part_id} not found")
        return part

    @staticmethod
    def ensure_available(part: dict, quantity: int) -> None:
        available = int(part["stock_quantity"])
        if available < quantity:
            raise InsufficientStockError(part["name"], available, quantity)

    def adjust_stock(self, conn: Connection, *, part_id: int, delta: int) -> dict:
        part = self.lock_part(conn, part_id)
        if delta < 0:
            self.ensure_available(part, -delta)

        new_quantity = int(part["stock_quantity"]) + delta
        updated = self.part_repo.set_stock(conn, part_id=part_id, stock_quantity=new_quantity)
        log.info(
            "Stock adjusted part_id=%s delta=%+d %s -> %s",
            part_id,
            delta,
            part["stock_quantity"],
            new_quantity,
        )
        return updated
