import logging
from django.conf import settings

logger = logging.getLogger(__name__)

# Fields whose value only elevated roles may change, per backend table
RESTRICTED_FIELDS = {
    "contacts": frozenset({"cell_id", "leader_id"}),
    "cells": frozenset({"leader_id"}),
}


def is_elevated(role) -> bool:
    return bool(role) and role in getattr(settings, "ELEVATED_ROLES", ("admin",))


def can_edit_field(role, field: str, entity: str = "contacts") -> bool:
    """
    Single capability check used both when rendering a form (disable the
    control) and when building the write payload (keep the original value).
    """
    if field not in RESTRICTED_FIELDS.get(entity, ()):
        return True
    return is_elevated(role)


def user_role(user):
    if not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "role", None)


def enforce_restricted_fields(payload: dict, original: dict, role, entity: str = "contacts") -> dict:
    """
    Force restricted fields in ``payload`` back to the values found on
    ``original`` when ``role`` may not edit them. Returns ``payload``.
    """
    for field in RESTRICTED_FIELDS.get(entity, ()):
        if field not in payload or can_edit_field(role, field, entity):
            continue
        kept = original.get(field)
        if payload[field] != kept:
            logger.warning(
                "Restricted field %s.%s change dropped for role %r", entity, field, role
            )
        payload[field] = kept
    return payload
