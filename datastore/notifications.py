from django.contrib import messages
from django.utils.html import format_html

DEFAULT = "default"
DESTRUCTIVE = "destructive"


class Notifier:
    """
    Transient user feedback for the current request, delivered through the
    messages framework. Callable as ``notify(title, description, variant)``.
    """

    def __init__(self, request):
        self.request = request

    def __call__(self, title, description, variant=DEFAULT):
        level = messages.ERROR if variant == DESTRUCTIVE else messages.SUCCESS
        messages.add_message(
            self.request,
            level,
            format_html("<strong>{}</strong> {}", title, description),
            extra_tags=variant,
        )
