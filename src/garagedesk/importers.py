from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path

from psycopg import Connection

from .domain import has_places
from .repositories.client_repo import ClientRepository
from .repositories.part_repo import PartRepository

log = logging.getLogger(__name__)


class ImportFileError(Exception):
    pass


def import_clients_csv(conn: Connection, path: str | Path, client_repo: ClientRepository) -> int:
    p = Path(path)
    if not p.exists():
        raise ImportFileError(f"File not found: {p}")

    count = 0
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        required = {"name", "phone", "email", "address"}
        if not required.issubset(set(reader.fieldnames or [])):
            raise ImportFileError(f"CSV must contain columns: {sorted(required)}")

        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                continue
            client_repo.create(
                conn,
                name=name,
                phone=(row.get("phone") or "").strip() or None,
                email=(row.get("email") or "").strip() or None,
                address=(row.get("address") or "").strip() or None,
            )
            count += 1
    log.info("Imported %d clients from %s", count, p)
    return count


def import_parts_json(
    conn: Connection, path: str | Path, part_repo: PartRepository, *, default_reorder_level: int = 5
) -> int:
    """Upsert a parts catalogue keyed by part number.

    Stock is only taken from the file for new parts; existing parts keep their
    ledger-managed quantity.
    """
    p = Path(path)
    if not p.exists():
        raise ImportFileError(f"File not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ImportFileError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ImportFileError("JSON must be a list of objects")

    count = 0
    for i, obj in enumerate(data):
        if not isinstance(obj, dict):
            continue
        part_number = str(obj.get("part_number", "")).strip()
        name = str(obj.get("name", "")).strip()
        if not part_number or not name:
            continue
        try:
            price = Decimal(str(obj.get("price", 0)))
            stock_quantity = int(obj.get("stock_quantity", 0))
            reorder_level = int(obj.get("reorder_level", default_reorder_level))
        except (InvalidOperation, TypeError, ValueError) as e:
            raise ImportFileError(f"Entry {i} ({part_number}) has invalid numbers") from e
        if not price.is_finite() or not has_places(price):
            raise ImportFileError(f"Entry {i} ({part_number}) has an invalid price")
        if price < 0 or stock_quantity < 0 or reorder_level < 0:
            raise ImportFileError(f"Entry {i} ({part_number}) has negative values")

        part_repo.upsert_by_part_number(
            conn,
            part_number=part_number,
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            reorder_level=reorder_level,
        )
        count += 1
    log.info("Imported %d parts from %s", count, p)
    return count
