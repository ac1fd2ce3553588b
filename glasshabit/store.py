from __future__ import annotations

import uuid

from .db import DBConn, is_duplicate_key
from .errors import Conflict, NotFound, ValidationFailed
from .registry import Collection, columns, from_row, to_row


class RecordStore:
    """Owner-scoped access to the record collections.

    Every statement carries ``user_id = ?`` in its WHERE clause or VALUES
    list; nothing is fetched unscoped and filtered afterwards.  The store
    runs inside the caller's connection, so the caller's ``with`` block is
    the transaction boundary.
    """

    def __init__(self, conn: DBConn, owner_id: str):
        if not owner_id:
            raise ValueError("owner_id is required")
        self.conn = conn
        self.owner_id = owner_id

    def list(self, collection: Collection) -> list[dict]:
        cols = ", ".join(columns(collection))
        rows = self.conn.execute(
            f"SELECT {cols} FROM {collection.table} WHERE user_id = ?",
            (self.owner_id,),
        ).fetchall()
        return [from_row(collection, row) for row in rows]

    def get(self, collection: Collection, record_id: str) -> dict | None:
        cols = ", ".join(columns(collection))
        row = self.conn.execute(
            f"SELECT {cols} FROM {collection.table} WHERE id = ? AND user_id = ?",
            (record_id, self.owner_id),
        ).fetchone()
        return from_row(collection, row) if row is not None else None

    def insert(self, collection: Collection, record: dict) -> dict:
        row = to_row(collection, record)
        record_id = str(record.get("id") or "").strip() or uuid.uuid4().hex
        self._check_references(collection, row)

        if self.get(collection, record_id) is not None:
            raise Conflict(f"A {collection.value} record with id {record_id} already exists")
        if collection is Collection.LOGS:
            self._check_single_completion(row, exclude_id=None)

        names = ["id", "user_id"] + list(row)
        placeholders = ", ".join("?" for _ in names)
        self._write(
            f"INSERT INTO {collection.table} ({', '.join(names)}) VALUES ({placeholders})",
            (record_id, self.owner_id, *row.values()),
        )
        return from_row(collection, {"id": record_id, **row})

    def replace(self, collection: Collection, record_id: str, record: dict) -> dict:
        row = to_row(collection, record)
        if self.get(collection, record_id) is None:
            raise NotFound(f"No {collection.value} record with id {record_id}")
        self._check_references(collection, row)
        if collection is Collection.LOGS:
            self._check_single_completion(row, exclude_id=record_id)

        assignments = ", ".join(f"{name} = ?" for name in row)
        cur = self._write(
            f"UPDATE {collection.table} SET {assignments} WHERE id = ? AND user_id = ?",
            (*row.values(), record_id, self.owner_id),
        )
        if cur.rowcount == 0:
            raise NotFound(f"No {collection.value} record with id {record_id}")
        return from_row(collection, {"id": record_id, **row})

    def delete(self, collection: Collection, record_id: str) -> None:
        if collection is Collection.TASKS:
            self.conn.execute(
                "DELETE FROM logs WHERE task_id = ? AND user_id = ?",
                (record_id, self.owner_id),
            )
        self.conn.execute(
            f"DELETE FROM {collection.table} WHERE id = ? AND user_id = ?",
            (record_id, self.owner_id),
        )

    def clear(self) -> None:
        for collection in Collection:
            self.conn.execute(
                f"DELETE FROM {collection.table} WHERE user_id = ?",
                (self.owner_id,),
            )

    def _write(self, query: str, params: tuple):
        try:
            return self.conn.execute(query, params)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise Conflict("Record conflicts with an existing record", detail=str(exc)) from exc
            raise

    def _check_references(self, collection: Collection, row: dict) -> None:
        if collection is not Collection.LOGS:
            return
        task = self.conn.execute(
            "SELECT id FROM tasks WHERE id = ? AND user_id = ?",
            (row["task_id"], self.owner_id),
        ).fetchone()
        if task is None:
            raise ValidationFailed(f"Unknown taskId: {row['task_id']}")

    def _check_single_completion(self, row: dict, exclude_id: str | None) -> None:
        existing = self.conn.execute(
            """
            SELECT id FROM logs
            WHERE task_id = ? AND date = ? AND user_id = ?
            """,
            (row["task_id"], row["date"], self.owner_id),
        ).fetchone()
        if existing is not None and existing["id"] != exclude_id:
            raise Conflict(f"Task already logged for {row['date']}")
