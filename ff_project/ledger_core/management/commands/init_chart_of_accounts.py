from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from ledger_core.services.journal import seed_chart_of_accounts


class Command(BaseCommand):
    help = "Creates the default logistics chart of accounts (empty chart only)."

    def handle(self, *args, **options):
        try:
            count = seed_chart_of_accounts()
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages))
        self.stdout.write(self.style.SUCCESS(f"Initialized {count} default accounts"))
