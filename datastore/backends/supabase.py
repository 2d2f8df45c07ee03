import logging

from postgrest.exceptions import APIError
from supabase import Client, create_client

from datastore.errors import NotFound, QueryError
from .base import BaseStore

logger = logging.getLogger(__name__)


class SupabaseStore(BaseStore):
    def __init__(self, url=None, key=None, client: Client | None = None):
        if client is None:
            if not url or not key:
                raise QueryError("Supabase URL and key must be configured")
            client = create_client(url, key)
        self.client = client

    def _execute(self, table, query, action):
        try:
            return query.execute()
        except APIError as e:
            logger.error("Supabase %s on %s failed: %s", action, table, e.message)
            raise QueryError(e.message or str(e), table=table) from e

    def select(self, table, *, columns="*", eq=None, not_null=(), order=None):
        self.check_table(table)
        query = self.client.table(table).select(columns)
        for field, value in (eq or {}).items():
            query = query.eq(field, value)
        for field in not_null:
            query = query.not_.is_(field, "null")
        if order:
            query = query.order(order.lstrip("-"), desc=order.startswith("-"))
        response = self._execute(table, query, "select")
        return response.data or []

    def get(self, table, pk, *, columns="*"):
        self.check_table(table)
        query = self.client.table(table).select(columns).eq("id", pk).maybe_single()
        response = self._execute(table, query, "get")
        # maybe_single() yields None (or empty data) when no row matched
        if response is None or not response.data:
            logger.info("Supabase get %s(%s): no row", table, pk)
            raise NotFound(table, pk)
        return response.data

    def update(self, table, pk, payload):
        self.check_table(table)
        query = self.client.table(table).update(payload).eq("id", pk)
        response = self._execute(table, query, "update")
        rows = response.data or []
        if not rows:
            raise NotFound(table, pk)
        return rows[0]

    def insert(self, table, payload):
        self.check_table(table)
        query = self.client.table(table).insert(payload)
        response = self._execute(table, query, "insert")
        rows = response.data or []
        if not rows:
            raise QueryError(f"Insert into {table} returned no row", table=table)
        return rows[0]
