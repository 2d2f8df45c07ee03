from datastore.errors import QueryError

TABLES = frozenset(
    {
        "cells",
        "contacts",
        "profiles",
        "pipeline_stages",
        "cities",
        "neighborhoods",
        "ministries",
    }
)


class BaseStore:
    """
    Row-level access to the named relations of the hosted backend.

    Rows are plain dicts keyed by column name. ``eq`` filters by equality,
    ``not_null`` keeps rows whose listed columns are set, ``order`` is a
    column name (prefix with ``-`` for descending).
    """

    tables = TABLES

    def check_table(self, table):
        if table not in self.tables:
            raise QueryError(f"Unknown relation {table!r}", table=table)

    def select(self, table, *, columns="*", eq=None, not_null=(), order=None):
        raise NotImplementedError

    def get(self, table, pk, *, columns="*"):
        """Return exactly one row or raise ``NotFound``."""
        raise NotImplementedError

    def update(self, table, pk, payload):
        """Write ``payload`` to the row ``pk`` and return the stored row."""
        raise NotImplementedError

    def insert(self, table, payload):
        raise NotImplementedError
