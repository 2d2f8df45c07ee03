import logging

from django.utils.dateparse import parse_time

from datastore.errors import NotFound, StoreError
from datastore.loaders import DetailLoader

logger = logging.getLogger(__name__)

# meeting_day is stored as 0-6 with Sunday = 0
WEEKDAYS = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


class CellDetailLoader(DetailLoader):
    parent_table = "cells"
    child_table = "contacts"
    child_fk = "cell_id"
    entity_label = "Cell"
    child_label = "cell members"


def list_cells(store):
    return store.select("cells", order="name")


def update_cell(store, cell_id, payload: dict):
    logger.info("Updating cell %s", cell_id)
    return store.update("cells", cell_id, payload)


def meeting_label(cell: dict) -> str:
    """``"19:30 (Wednesday)"`` for a cell row."""
    day = cell.get("meeting_day")
    raw_time = cell.get("meeting_time") or ""
    try:
        parsed = parse_time(str(raw_time))
    except ValueError:
        parsed = None
    time_label = parsed.strftime("%H:%M") if parsed else str(raw_time)
    if isinstance(day, int) and 0 <= day < len(WEEKDAYS):
        return f"{time_label} ({WEEKDAYS[day]})".strip()
    return time_label


def leader_name(store, leader_id):
    if not leader_id:
        return None
    try:
        profile = store.get("profiles", leader_id, columns="id, name")
    except NotFound:
        return None
    except StoreError as e:
        logger.warning("Leader %s lookup failed: %s", leader_id, e)
        return None
    return profile.get("name")
