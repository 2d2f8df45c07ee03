import logging
import threading

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

_store = None
_store_lock = threading.Lock()


def get_store():
    """
    Process-wide data-access object for the hosted backend, built on first
    use from ``DATASTORE_BACKEND`` / ``DATASTORE_OPTIONS``.
    """
    global _store
    if _store is not None:
        return _store
    with _store_lock:
        if _store is None:
            backend = getattr(
                settings, "DATASTORE_BACKEND", "datastore.backends.memory.MemoryStore"
            )
            options = getattr(settings, "DATASTORE_OPTIONS", {}) or {}
            logger.info("Initialising data store %s", backend)
            _store = import_string(backend)(**options)
    return _store


def reset_store():
    global _store
    with _store_lock:
        _store = None
