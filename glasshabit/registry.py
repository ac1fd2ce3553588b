"""Closed set of per-user record collections and their field schemas.

Each collection declares the fields it stores.  The declarations drive the
translation between the JSON wire shape (camelCase keys, real booleans and
lists) and the row shape (snake_case columns, booleans as 0/1, lists as JSON
text), so generic CRUD never needs per-collection endpoint code.
"""
from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .errors import NotFound, ValidationFailed

TASK_CATEGORIES = ("habit", "goal")
TASK_TYPES = ("HEALTH", "WEALTH", "PERSONAL", "CAREER", "RELATIONSHIPS", "OTHER")
EXPENSE_CATEGORIES = ("Food", "Travel", "Shopping", "Bills", "Health", "Entertainment", "Other")
MOODS = ("😊", "😐", "😔", "😡", "🥳", "😴")


class Collection(str, Enum):
    TASKS = "tasks"
    LOGS = "logs"
    TODOS = "todos"
    EXPENSES = "expenses"
    JOURNAL = "journal"

    @property
    def table(self) -> str:
        return self.value


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Field:
    name: str
    kind: str = "text"
    required: bool = False
    default: Any = ""
    choices: tuple = ()
    minimum: float | None = None
    default_factory: Callable[[], Any] | None = None

    @property
    def column(self) -> str:
        return "".join("_" + c.lower() if c.isupper() else c for c in self.name)

    def fallback(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


FIELDS: dict[Collection, tuple[Field, ...]] = {
    Collection.TASKS: (
        Field("name", required=True),
        Field("reason"),
        Field("type", default="PERSONAL", choices=TASK_TYPES),
        Field("category", required=True, choices=TASK_CATEGORIES),
        Field("penalty"),
        Field("startDate", kind="date"),
        Field("endDate", kind="date"),
        Field("createdAt", default_factory=_now_iso),
    ),
    Collection.LOGS: (
        Field("taskId", required=True),
        Field("date", kind="date", required=True),
        Field("remark"),
        Field("images", kind="list", default_factory=list),
        Field("completed", kind="boolean", default=True),
        Field("timestamp", kind="integer", default_factory=_now_ms),
    ),
    Collection.TODOS: (
        Field("text", required=True),
        Field("dueDate", kind="date"),
        Field("completed", kind="boolean", default=False),
    ),
    Collection.EXPENSES: (
        Field("amount", kind="number", required=True, minimum=0),
        Field("category", default="Other", choices=EXPENSE_CATEGORIES),
        Field("description"),
        Field("date", kind="date", required=True),
    ),
    Collection.JOURNAL: (
        Field("subject"),
        Field("content", required=True),
        Field("mood", default=MOODS[0], choices=MOODS),
        Field("images", kind="list", default_factory=list),
        Field("date", kind="date", required=True),
        Field("timestamp", kind="integer", default_factory=_now_ms),
    ),
}


def lookup(name: str) -> Collection:
    try:
        return Collection(name)
    except ValueError:
        raise NotFound(f"Unknown collection: {name}") from None


def columns(collection: Collection) -> list[str]:
    return ["id"] + [f.column for f in FIELDS[collection]]


def _coerce(field: Field, value: Any) -> Any:
    kind = field.kind
    if kind == "boolean":
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes"):
                return 1
            if lowered in ("false", "0", "no", ""):
                return 0
            raise ValueError("expected a boolean")
        return 1 if value else 0
    if kind == "list":
        if isinstance(value, str):
            value = [value] if value else []
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list")
        return json.dumps(list(value))
    if kind == "number":
        if isinstance(value, bool):
            raise ValueError("expected a number")
        number = float(value)
        if not math.isfinite(number):
            raise ValueError("expected a finite number")
        if field.minimum is not None and number < field.minimum:
            raise ValueError(f"must be at least {field.minimum:g}")
        return number
    if kind == "integer":
        if isinstance(value, bool):
            raise ValueError("expected an integer")
        return int(value)
    text = "" if value is None else str(value)
    if kind == "date" or field.choices:
        text = text.strip()
    if kind == "date" and text:
        datetime.strptime(text, "%Y-%m-%d")
    if field.choices and text not in field.choices:
        raise ValueError(f"must be one of {', '.join(field.choices)}")
    return text


def _fold_legacy_image(collection: Collection, payload: dict) -> dict:
    # Older clients post a single data URI under "image".
    if "image" not in payload or not any(f.name == "images" for f in FIELDS[collection]):
        return payload
    payload = dict(payload)
    image = payload.pop("image")
    images = list(payload.get("images") or [])
    if image and image not in images:
        images.append(image)
    payload["images"] = images
    return payload


def to_row(collection: Collection, payload: dict) -> dict:
    """Validate a wire record and translate it into column values.

    Unknown keys and owner keys are dropped.  Missing optional fields get
    their declared default; missing or blank required fields raise
    ``ValidationFailed``.
    """
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")
    payload = _fold_legacy_image(collection, payload)

    row: dict[str, Any] = {}
    for field in FIELDS[collection]:
        value = payload.get(field.name)
        blank = isinstance(value, str) and not value.strip()
        if value is None or (blank and (field.required or field.kind != "text" or field.choices)):
            if field.required:
                raise ValidationFailed(f"Missing required field: {field.name}")
            value = field.fallback()
        try:
            row[field.column] = _coerce(field, value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValidationFailed(f"Invalid value for {field.name}", detail=str(exc)) from None
    return row


def from_row(collection: Collection, row) -> dict:
    record = {"id": row["id"]}
    for field in FIELDS[collection]:
        value = row[field.column]
        if field.kind == "boolean":
            value = bool(value)
        elif field.kind == "list":
            value = json.loads(value) if value else []
        elif field.kind == "integer" and value is not None:
            value = int(value)
        elif field.kind == "number" and value is not None:
            value = float(value)
        record[field.name] = value
    return record
