from django.core.management.base import BaseCommand, CommandError

from ledger_core.exceptions import NotFoundError
from ledger_core.services.reconciler import reconcile_all_parties, reconcile_party


class Command(BaseCommand):
    help = "Recomputes customer/vendor balances in voucher-date order."

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--customer",
            type=int,
            help="Reconcile only this customer id",
        )
        parser.add_argument(
            "--vendor",
            type=int,
            help="Reconcile only this vendor id",
        )

    def handle(self, *args, **options):
        targets = [
            (kind, options[kind]) for kind in ("customer", "vendor") if options.get(kind)
        ]
        if targets:
            for kind, party_id in targets:
                try:
                    result = reconcile_party(kind, party_id)
                except NotFoundError as exc:
                    raise CommandError(str(exc))
                self.stdout.write(
                    f"{kind} {party_id}: {len(result.transactions)} transactions, "
                    f"balance {result.current_balance}"
                )
            return

        self.stdout.write(self.style.NOTICE("Reconciling all customers and vendors..."))
        summary = reconcile_all_parties()
        self.stdout.write(
            f"Customers: {summary['customer']}, vendors: {summary['vendor']}"
        )
        if summary["failed"]:
            raise CommandError(
                "Failed: " + ", ".join(f"{kind} {pk}" for kind, pk in summary["failed"])
            )
        self.stdout.write(self.style.SUCCESS("Balances reconciled"))
