from __future__ import annotations

from decimal import Decimal

from psycopg import Connection
from psycopg.errors import UniqueViolation

from ..db import fetch_all, fetch_one
from ..domain import PartUpdate
from ..errors import ConflictError
from ._sql import update_returning, where_clause

PART_COLUMNS = "id, name, part_number, price, stock_quantity, reorder_level, created_at"


class PartRepository:
    def create(
        self,
        conn: Connection,
        *,
        name: str,
        part_number: str | None,
        price: Decimal,
        stock_quantity: int,
        reorder_level: int,
    ) -> dict:
        try:
            cur = conn.execute(
                f"""
                INSERT INTO parts(name, part_number, price, stock_quantity, reorder_level)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {PART_COLUMNS};
                """,
                (name, part_number, price, stock_quantity, reorder_level),
            )
        except UniqueViolation as e:
            raise ConflictError("Part with this part number already exists") from e
        return fetch_one(cur)

    def upsert_by_part_number(
        self,
        conn: Connection,
        *,
        part_number: str,
        name: str,
        price: Decimal,
        stock_quantity: int,
        reorder_level: int,
    ) -> dict:
        # stock_quantity only applies on insert
        cur = conn.execute(
            f"""
            INSERT INTO parts(name, part_number, price, stock_quantity, reorder_level)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (part_number) DO UPDATE
              SET name = EXCLUDED.name,
                  price = EXCLUDED.price,
                  reorder_level = EXCLUDED.reorder_level
            RETURNING {PART_COLUMNS};
            """,
            (name, part_number, price, stock_quantity, reorder_level),
        )
        return fetch_one(cur)

    def get(self, conn: Connection, part_id: int) -> dict | None:
        cur = conn.execute(f"SELECT {PART_COLUMNS} FROM parts WHERE id = %s;", (part_id,))
        return fetch_one(cur)

    def get_for_update(self, conn: Connection, part_id: int) -> dict | None:
        cur = conn.execute(
            f"SELECT {PART_COLUMNS} FROM parts WHERE id = %s FOR UPDATE;",
            (part_id,),
        )
        return fetch_one(cur)

    def set_stock(self, conn: Connection, *, part_id: int, stock_quantity: int) -> dict:
        cur = conn.execute(
            f"""
            UPDATE parts SET stock_quantity = %s
            WHERE id = %s
            RETURNING {PART_COLUMNS};
            """,
            (stock_quantity, part_id),
        )
        return fetch_one(cur)

    def update(self, conn: Connection, part_id: int, changes: PartUpdate) -> dict | None:
        try:
            return update_returning(conn, "parts", part_id, changes.changes())
        except UniqueViolation as e:
            raise ConflictError("Another part with this part number already exists") from e

    def delete(self, conn: Connection, part_id: int) -> bool:
        cur = conn.execute("DELETE FROM parts WHERE id = %s RETURNING id;", (part_id,))
        return cur.fetchone() is not None

    def is_used(self, conn: Connection, part_id: int) -> bool:
        cur = conn.execute(
            "SELECT EXISTS(SELECT 1 FROM service_parts WHERE part_id = %s);",
            (part_id,),
        )
        return bool(cur.fetchone()[0])

    def list_page(
        self,
        conn: Connection,
        *,
        search: str | None = None,
        low_stock: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        conditions: list[str] = []
        params: list = []
        if search:
            conditions.append("(name ILIKE %s OR part_number ILIKE %s)")
            params += [f"%{search}%", f"%{search}%"]
        if low_stock:
            conditions.append("stock_quantity <= reorder_level")
        where = where_clause(conditions)

        cur = conn.execute(
            f"SELECT {PART_COLUMNS} FROM parts{where} ORDER BY name ASC LIMIT %s OFFSET %s;",
            (*params, limit, offset),
        )
        rows = fetch_all(cur)
        total = conn.execute(f"SELECT COUNT(*) FROM parts{where};", params).fetchone()[0]
        return rows, int(total)

    def list_low_stock(self, conn: Connection) -> list[dict]:
        cur = conn.execute("SELECT * FROM low_stock_parts ORDER BY stock_quantity ASC;")
        return fetch_all(cur)
