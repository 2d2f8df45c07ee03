from django.core.management.base import BaseCommand
from django.utils import timezone
from django.utils.dateparse import parse_date

from contacts.services import monthly_birthdays
from datastore.client import get_store


class Command(BaseCommand):
    help = "Lists members whose birthday falls in the current (or given) month."

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Reference date (YYYY-MM-DD) used instead of today.",
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        if options.get("date"):
            today = parse_date(options["date"]) or today
        rows = monthly_birthdays(get_store(), today=today)
        if not rows:
            self.stdout.write("No birthdays this month.")
            return
        self.stdout.write(f"Birthdays for {today:%B %Y}:")
        for row in rows:
            whatsapp = row.get("whatsapp") or "no WhatsApp"
            self.stdout.write(
                f"{row['day']:>2}  {row['name']} turns {row['age']} ({whatsapp})"
            )
        self.stdout.write(self.style.SUCCESS(f"{len(rows)} birthday(s)."))
