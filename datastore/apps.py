from django.apps import AppConfig


class DatastoreConfig(AppConfig):
    name = "datastore"
    verbose_name = "Hosted data store"

    def ready(self):
        from . import signals  # noqa: F401
