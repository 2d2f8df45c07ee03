import asyncio
import logging
from dataclasses import dataclass, field

from asgiref.sync import sync_to_async

from .errors import NotFound, StoreError
from .notifications import DESTRUCTIVE

logger = logging.getLogger(__name__)

LOADING = "loading"
NOT_FOUND = "not_found"
LOADED = "loaded"


class FetchHandle:
    """
    Cancellation token for one load cycle. Once cancelled, every result of
    the cycle is ignored; the backend request itself still completes.
    """

    def __init__(self, identifier=None):
        self.identifier = identifier
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def apply(self, fn, *args, **kwargs) -> bool:
        if self._cancelled:
            logger.debug("Dropping result of cancelled fetch for %r", self.identifier)
            return False
        fn(*args, **kwargs)
        return True


@dataclass
class DetailState:
    status: str = LOADING
    parent: dict | None = None
    children: list = field(default_factory=list)

    @property
    def loading(self):
        return self.status == LOADING

    @property
    def found(self):
        return self.status == LOADED and self.parent is not None


class DetailLoader:
    """
    Loads one parent row and the rows that reference it, exposing a
    loading / not-found / loaded state. Subclasses name the relations.
    """

    parent_table = None
    child_table = None
    child_fk = None
    child_order = "name"
    entity_label = "Record"
    child_label = "related records"

    def __init__(self, store, notify):
        self.store = store
        self.notify = notify
        self.state = DetailState()
        self._handle = None

    def start(self, identifier) -> FetchHandle:
        if self._handle is not None:
            self._handle.cancel()
        handle = FetchHandle(identifier)
        self._handle = handle
        self.state = DetailState(status=LOADING if identifier else NOT_FOUND)
        return handle

    def run(self, identifier, handle: FetchHandle):
        if handle.cancelled:
            return
        if not identifier:
            handle.apply(self._fail, f"{self.entity_label} not found.")
            return
        try:
            parent = self.store.get(self.parent_table, identifier)
        except NotFound:
            logger.info("%s %s not found", self.parent_table, identifier)
            handle.apply(self._fail, f"{self.entity_label} not found.")
            return
        except StoreError as e:
            logger.error("Fetching %s %s failed: %s", self.parent_table, identifier, e)
            handle.apply(
                self._fail,
                f"Error fetching {self.entity_label.lower()} details: {e}",
            )
            return
        if not handle.apply(self._set_parent, parent):
            return

        try:
            children = self.store.select(
                self.child_table,
                eq={self.child_fk: identifier},
                order=self.child_order,
            )
        except StoreError as e:
            logger.error(
                "Fetching %s for %s %s failed: %s",
                self.child_table, self.parent_table, identifier, e,
            )
            handle.apply(
                self.notify,
                "Error",
                f"Error fetching {self.child_label}: {e}",
                DESTRUCTIVE,
            )
            return
        handle.apply(self._set_children, children)

    def load(self, identifier) -> FetchHandle:
        handle = self.start(identifier)
        self.run(identifier, handle)
        return handle

    def teardown(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def replace_parent(self, record):
        # Completion callback of an edit action: no refetch
        self.state.parent = record
        self.state.status = LOADED

    def _fail(self, message):
        self.state.status = NOT_FOUND
        self.state.parent = None
        self.notify("Error", message, DESTRUCTIVE)

    def _set_parent(self, parent):
        self.state.parent = parent
        self.state.status = LOADED

    def _set_children(self, children):
        self.state.children = children


async def load_detail(loader, identifier):
    """
    Run one load cycle from an async view. If the client goes away while the
    backend call is in flight, the cycle is cancelled and its results dropped.
    """
    handle = loader.start(identifier)
    try:
        await sync_to_async(loader.run)(identifier, handle)
    except asyncio.CancelledError:
        loader.teardown()
        raise
    return loader.state
