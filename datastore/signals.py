from django.core.signals import setting_changed
from django.dispatch import receiver

from .client import reset_store


@receiver(setting_changed)
def drop_cached_store(sender, setting, **kwargs):
    if setting in ("DATASTORE_BACKEND", "DATASTORE_OPTIONS"):
        reset_store()
