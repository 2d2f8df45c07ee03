import copy
import threading
import uuid

from django.utils import timezone

from datastore.errors import NotFound
from .base import BaseStore


def _sort_key(value):
    # None sorts last, like PostgreSQL's default NULLS LAST for ascending order
    return (value is None, value)


class MemoryStore(BaseStore):
    """
    In-process tables with the same contract as the hosted backend.
    Used for local development and the test-suite.
    """

    def __init__(self, data=None):
        self._lock = threading.Lock()
        self._tables = {name: [] for name in self.tables}
        for table, rows in (data or {}).items():
            self.check_table(table)
            self._tables[table] = [dict(row) for row in rows]

    def _project(self, row, columns):
        if columns == "*":
            return copy.deepcopy(row)
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        return {c: copy.deepcopy(row.get(c)) for c in wanted}

    def _find(self, table, pk):
        for row in self._tables[table]:
            if row.get("id") == pk:
                return row
        raise NotFound(table, pk)

    def select(self, table, *, columns="*", eq=None, not_null=(), order=None):
        self.check_table(table)
        with self._lock:
            rows = [
                row
                for row in self._tables[table]
                if all(row.get(k) == v for k, v in (eq or {}).items())
                and all(row.get(k) is not None for k in not_null)
            ]
            if order:
                field = order.lstrip("-")
                rows = sorted(
                    rows,
                    key=lambda r: _sort_key(r.get(field)),
                    reverse=order.startswith("-"),
                )
            return [self._project(row, columns) for row in rows]

    def get(self, table, pk, *, columns="*"):
        self.check_table(table)
        with self._lock:
            return self._project(self._find(table, pk), columns)

    def update(self, table, pk, payload):
        self.check_table(table)
        with self._lock:
            row = self._find(table, pk)
            row.update(copy.deepcopy(payload))
            if "updated_at" in row:
                row["updated_at"] = timezone.now().isoformat()
            return copy.deepcopy(row)

    def insert(self, table, payload):
        self.check_table(table)
        row = copy.deepcopy(payload)
        row.setdefault("id", str(uuid.uuid4()))
        with self._lock:
            self._tables[table].append(row)
        return copy.deepcopy(row)
