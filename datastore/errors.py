class StoreError(Exception):
    """Base class for failures reported by the hosted backend."""


class NotFound(StoreError):
    def __init__(self, table, pk):
        self.table = table
        self.pk = pk
        super().__init__(f"No row in {table} with id {pk!r}")


class QueryError(StoreError):
    def __init__(self, message, table=None):
        self.message = message
        self.table = table
        super().__init__(message)
