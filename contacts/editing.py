"""
Contact edit workflow: seed a form mirror from a record, validate the
required fields, normalise "nothing selected" placeholders and persist the
full field set in a single update.
"""
import logging
from datetime import date

from accounts.permissions import can_edit_field, enforce_restricted_fields
from datastore.errors import StoreError
from datastore.notifications import DESTRUCTIVE

from .services import STATUS_PENDING, update_contact

logger = logging.getLogger(__name__)

# Placeholder option values of the relational selects. They never reach storage.
SENTINELS = {
    "city_id": "no-city",
    "cell_id": "no-cell",
    "ministry_id": "no-ministry",
    "pipeline_stage_id": "no-stage",
    "referred_by": "no-referral",
    "leader_id": "no-leader",
}
NO_NEIGHBORHOOD = "no-neighborhood"

# Optional scalar columns that are stored as NULL rather than ""
BLANK_AS_NULL = ("birth_date", "photo_url")

REQUIRED_FIELDS = (
    ("name", "Name is required!"),
    ("whatsapp", "WhatsApp is required!"),
    ("neighborhood", "Neighborhood is required!"),
)

FORM_DEFAULTS = {
    "name": "",
    "whatsapp": "",
    "neighborhood": "",
    "city_id": "",
    "cell_id": "",
    "ministry_id": "",
    "status": STATUS_PENDING,
    "encounter_with_god": False,
    "baptized": False,
    "pipeline_stage_id": "",
    "age": None,
    "birth_date": "",
    "referred_by": "",
    "photo_url": "",
    "founder": False,
    "leader_id": "",
}
BOOLEAN_FIELDS = ("encounter_with_god", "baptized", "founder")

CLOSED = "closed"
POPULATING = "populating"
EDITING = "editing"
SUBMITTING = "submitting"


class ValidationFailure(Exception):
    def __init__(self, field, message):
        self.field = field
        self.message = message
        super().__init__(message)


def populate(record: dict) -> dict:
    """Form mirror of ``record`` with every field explicitly defaulted."""
    data = {}
    for field, default in FORM_DEFAULTS.items():
        value = record.get(field)
        if field in BOOLEAN_FIELDS:
            data[field] = bool(value)
        elif field == "age":
            data[field] = value
        elif value is None or value == "":
            data[field] = default
        else:
            data[field] = str(value) if field == "birth_date" else value
    return data


def change_city(form_data: dict, city_id) -> dict:
    # A neighborhood belongs to one city; a new city invalidates it
    return {**form_data, "city_id": city_id, "neighborhood": ""}


def validate_required(form_data: dict):
    """Raise ``ValidationFailure`` for the first blank required field."""
    for field, message in REQUIRED_FIELDS:
        value = form_data.get(field) or ""
        if field == "neighborhood" and value == NO_NEIGHBORHOOD:
            value = ""
        if not str(value).strip():
            raise ValidationFailure(field, message)


def is_unset(field, value) -> bool:
    return not value or value == SENTINELS.get(field)


def normalize(form_data: dict) -> dict:
    data = dict(form_data)
    for field in SENTINELS:
        if is_unset(field, data.get(field)):
            data[field] = None
    for field in BLANK_AS_NULL:
        if not data.get(field):
            data[field] = None
    if isinstance(data.get("birth_date"), date):
        data["birth_date"] = data["birth_date"].isoformat()
    if data.get("neighborhood") == NO_NEIGHBORHOOD:
        data["neighborhood"] = ""
    for field in ("name", "whatsapp", "neighborhood"):
        data[field] = (data.get(field) or "").strip()
    return data


def build_payload(form_data: dict, original: dict, role) -> dict:
    """
    Full field set sent on every submission. Fields the role may not edit
    keep the values of ``original`` whatever the form holds.
    """
    payload = normalize(
        {field: form_data.get(field, default) for field, default in FORM_DEFAULTS.items()}
    )
    return enforce_restricted_fields(payload, original, role, entity="contacts")


class ContactEditor:
    """
    Edit session for one contact:
    closed -> populating -> editing -> submitting -> closed | editing.
    """

    def __init__(self, store, role, notify, on_update=None, on_close=None):
        self.store = store
        self.role = role
        self.notify = notify
        self.on_update = on_update
        self.on_close = on_close
        self.state = CLOSED
        self.record = None
        self.form_data = dict(FORM_DEFAULTS)
        self.error = None

    @property
    def is_open(self):
        return self.state != CLOSED

    def can_edit(self, field) -> bool:
        return can_edit_field(self.role, field, "contacts")

    def open(self, record: dict):
        self.state = POPULATING
        self.record = record
        self.form_data = populate(record)
        self.error = None
        self.state = EDITING
        logger.debug("Editing contact %s", record.get("id"))

    def set_field(self, field, value):
        if field not in FORM_DEFAULTS:
            raise KeyError(field)
        if field == "city_id":
            self.select_city(value)
            return
        self.form_data[field] = value

    def select_city(self, city_id):
        self.form_data = change_city(self.form_data, city_id)

    def update(self, values: dict):
        """Apply several field changes; a city change is applied first."""
        if "city_id" in values and values["city_id"] != self.form_data.get("city_id"):
            self.select_city(values["city_id"])
        for field, value in values.items():
            if field == "city_id" or field not in FORM_DEFAULTS:
                continue
            self.form_data[field] = value

    def submit(self) -> bool:
        if self.state != EDITING:
            raise RuntimeError(f"Cannot submit while {self.state}")
        try:
            validate_required(self.form_data)
        except ValidationFailure as e:
            self.error = e
            self.notify("Error", e.message, DESTRUCTIVE)
            return False

        self.state = SUBMITTING
        payload = build_payload(self.form_data, self.record, self.role)
        try:
            updated = update_contact(self.store, self.record["id"], payload)
        except StoreError as e:
            logger.error("Error updating contact %s: %s", self.record.get("id"), e)
            self.error = e
            self.state = EDITING
            self.notify("Error", "Error updating contact!", DESTRUCTIVE)
            return False

        self.error = None
        self.record = updated
        if self.on_update:
            self.on_update(updated)
        self.notify("Success", "Contact updated successfully!")
        self.close()
        return True

    def close(self):
        self.state = CLOSED
        if self.on_close:
            self.on_close()
