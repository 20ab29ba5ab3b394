from __future__ import annotations

from psycopg import Connection, sql

from ..db import fetch_one


def update_returning(conn: Connection, table: str, row_id: int, changes: dict) -> dict | None:
    """UPDATE ``table`` SET <changes> WHERE id = row_id RETURNING *.

    Column names come from the fixed update dataclasses in ``domain``.
    """
    assignments = sql.SQL(", ").join(
        sql.SQL("{} = {}").format(sql.Identifier(col), sql.Placeholder()) for col in changes
    )
    query = sql.SQL("UPDATE {} SET {} WHERE id = %s RETURNING *;").format(
        sql.Identifier(table), assignments
    )
    cur = conn.execute(query, (*changes.values(), row_id))
    return fetch_one(cur)


def where_clause(conditions: list[str]) -> str:
    return (" WHERE " + " AND ".join(conditions)) if conditions else ""
