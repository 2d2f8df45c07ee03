import logging
from datetime import date

from django.utils import timezone
from django.utils.dateparse import parse_date

from datastore.errors import StoreError
from datastore.loaders import DetailLoader

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_MEMBER = "member"
STATUS_CHOICES = [
    (STATUS_PENDING, "Pending"),
    (STATUS_MEMBER, "Member"),
]


def get_contact(store, contact_id):
    return store.get("contacts", contact_id)


def update_contact(store, contact_id, payload: dict):
    logger.info("Updating contact %s", contact_id)
    return store.update("contacts", contact_id, payload)


def list_contacts(store, **eq):
    return store.select("contacts", eq=eq or None, order="name")


class ContactDetailLoader(DetailLoader):
    parent_table = "contacts"
    child_table = "contacts"
    child_fk = "referred_by"
    entity_label = "Contact"
    child_label = "referred contacts"


# Reference data for the edit form. Each list is fetched on its own so one
# failing relation leaves the others (and the form) usable.

def _reference(store, table, **kwargs):
    try:
        return store.select(table, **kwargs)
    except StoreError as e:
        logger.warning("Reference list %s unavailable: %s", table, e)
        return []


def active_profiles(store):
    return _reference(
        store, "profiles", columns="id, name, email, role", eq={"active": True}, order="name"
    )


def active_pipeline_stages(store):
    return _reference(store, "pipeline_stages", eq={"active": True}, order="position")


def active_cells(store):
    return _reference(store, "cells", eq={"active": True}, order="name")


def cities(store):
    return _reference(store, "cities", order="name")


def neighborhoods_for_city(store, city_id):
    if not city_id:
        return []
    return _reference(store, "neighborhoods", eq={"city_id": city_id}, order="name")


def all_neighborhoods(store):
    return _reference(store, "neighborhoods", order="name")


def active_ministries(store):
    return _reference(store, "ministries", eq={"active": True}, order="name")


def referral_candidates(store, exclude_id=None):
    contacts = _reference(store, "contacts", columns="id, name", order="name")
    return [c for c in contacts if c.get("id") != exclude_id]


def _as_date(value):
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return parse_date(str(value)[:10])
    except ValueError:
        return None


def monthly_birthdays(store, today=None):
    """
    Members with a birth date in the current month, with the age they turn
    this year and the day of the month, ordered by day.
    """
    today = today or timezone.localdate()
    try:
        rows = store.select(
            "contacts",
            columns="id, name, birth_date, whatsapp",
            eq={"status": STATUS_MEMBER},
            not_null=("birth_date",),
        )
    except StoreError as e:
        logger.error("Error fetching monthly birthdays: %s", e)
        return []

    result = []
    for row in rows:
        born = _as_date(row.get("birth_date"))
        if born is None:
            logger.info("Skipping contact %s with unreadable birth_date", row.get("id"))
            continue
        if born.month != today.month:
            continue
        result.append(
            {**row, "age": today.year - born.year, "day": born.day}
        )
    result.sort(key=lambda r: r["day"])
    return result
