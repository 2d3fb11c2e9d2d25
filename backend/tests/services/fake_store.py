"""In-memory RecordStore fake with a call log and failure injection.

Usage:
    store = FakeRecordStore()
    store.seed("medicines", {"barcode": "123", "name": "Amoxicillin"})
    store.fail_with = DatabaseError("connection refused", "execute")
    store.calls  # [("get_by_field", "medicines"), ...]

enforce_unique=False lets tests seed two rows with one barcode.
"""

import uuid
from datetime import datetime, timezone

from vetcepi.core.domain_types import StoreTable
from vetcepi.core.repository_protocols import Conflict, Stored

UNIQUE_FIELDS = {"medicines": ("barcode",)}


class FakeRecordStore:

    def __init__(self, enforce_unique: bool = True):
        self.tables: dict[str, list[dict]] = {"medicines": [], "pets": []}
        self.enforce_unique = enforce_unique
        self.calls: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None

    def seed(self, table: str, record: dict) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "created_at": datetime.now(timezone.utc).isoformat(),
            **record,
        }
        self.tables[StoreTable(table).value].append(row)
        return row

    def _enter(self, op: str, table) -> list[dict]:
        name = StoreTable(table).value
        self.calls.append((op, name))
        if self.fail_with is not None:
            raise self.fail_with
        return self.tables[name]

    async def get_by_field(self, table, field, value):
        rows = self._enter("get_by_field", table)
        return [dict(r) for r in rows if r.get(field) == value]

    async def select_all(self, table, order_by=None):
        rows = [dict(r) for r in self._enter("select_all", table)]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "")
        return rows

    async def insert(self, table, record):
        rows = self._enter("insert", table)
        name = StoreTable(table).value
        if self.enforce_unique:
            for field in UNIQUE_FIELDS.get(name, ()):
                if any(r.get(field) == record.get(field) for r in rows):
                    return Conflict(name, field, record.get(field))
        row = {
            "id": str(uuid.uuid4()),
            "created_at": datetime.now(timezone.utc).isoformat(),
            **record,
        }
        rows.append(row)
        return Stored(dict(row))

    async def update(self, table, key, changes):
        rows = self._enter("update", table)
        name = StoreTable(table).value
        target = next((r for r in rows if r["id"] == key), None)
        if target is None:
            return None
        if self.enforce_unique:
            for field in UNIQUE_FIELDS.get(name, ()):
                if field in changes and any(
                    r is not target and r.get(field) == changes[field] for r in rows
                ):
                    return Conflict(name, field, changes[field])
        target.update(changes)
        return Stored(dict(target))

    async def delete(self, table, key):
        rows = self._enter("delete", table)
        for i, r in enumerate(rows):
            if r["id"] == key:
                del rows[i]
                return True
        return False
