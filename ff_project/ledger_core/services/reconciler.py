import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.utils import timezone

from ..models.transaction import STARTING_BALANCE_PREFIX
from .parties import PARTY_MODELS, get_party, party_model, transaction_model
from .voucher import load_side_data, voucher_date_of, voucher_sort_key

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

SORT_FIELDS = {
    "voucher_date": lambda t: t.voucher_date,
    "created_at": lambda t: t.created_at,
    "amount": lambda t: t.amount,
    "type": lambda t: t.type,
    "reference": lambda t: t.reference or "",
    "invoice": lambda t: t.invoice or "",
}


@dataclass
class ReconciliationResult:
    transactions: list  # voucher-date order, balances corrected
    current_balance: Decimal


@dataclass
class TransactionPage:
    transactions: list
    current_balance: Decimal
    page: int
    total_pages: int
    total: int


def fold_balances(kind, ordered_transactions):
    """
    Recompute previous/new balances over rows already in voucher order.

    The first STARTING-BALANCE row is taken out of the fold: it gets
    previous_balance 0 and its own signed amount, and seeds the running
    balance. Every other row chains from the one before it.
    Rows are updated in place; returns (rows in fold order, final balance).
    """
    sign = transaction_model(kind).CREDIT_SIGN
    rows = list(ordered_transactions)

    def effect(row):
        return row.amount * (sign if row.type == "CREDIT" else -sign)

    start_at = next(
        (
            i for i, row in enumerate(rows)
            if row.reference and row.reference.startswith(STARTING_BALANCE_PREFIX)
        ),
        None,
    )
    start = None
    running = ZERO
    if start_at is not None:
        start = rows.pop(start_at)
        start.previous_balance = ZERO
        start.new_balance = effect(start)
        running = start.new_balance
        rows.insert(0, start)

    for row in rows:
        if row is start:
            continue
        row.previous_balance = running
        row.new_balance = running + effect(row)
        running = row.new_balance
    return rows, running


def reconcile_party(kind, party_id):
    """
    Recompute every balance of one party in voucher-date order and persist it.
    Runs in one atomic block with the party row locked, so a failure leaves
    the previously stored values untouched.
    """
    model = transaction_model(kind)
    with transaction.atomic():
        party = get_party(kind, party_id, lock=True)
        history = list(model.objects.for_party(kind, party_id))
        if not history:
            # nothing recorded, nothing owed
            if party.current_balance != ZERO:
                logger.info(
                    "Reconciled %s %s balance %s -> 0 (no history)", kind, party_id, party.current_balance
                )
                party.current_balance = ZERO
                party.save(update_fields=["current_balance"])
            return ReconciliationResult([], ZERO)

        side = load_side_data(kind, history)
        for row in history:
            row.voucher_date = voucher_date_of(row, side)
        ordered = sorted(history, key=lambda row: voucher_sort_key(row, side))
        rows, final = fold_balances(kind, ordered)

        # Overwrite every row, changed or not
        model.objects.bulk_update(rows, ["previous_balance", "new_balance"])
        if party.current_balance != final:
            logger.info(
                "Reconciled %s %s balance %s -> %s", kind, party_id, party.current_balance, final
            )
        party.current_balance = final
        party.save(update_fields=["current_balance"])

    return ReconciliationResult(rows, final)


def _local_date(value):
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.date()


def list_party_transactions(
    kind,
    party_id,
    page=1,
    limit=None,
    search=None,
    sort_field="voucher_date",
    sort_order="asc",
    from_date=None,
    to_date=None,
):
    """
    Reconcile, then filter/search/sort/paginate for display.
    Filters never feed back into the balance computation.
    """
    if from_date and to_date and from_date > to_date:
        raise ValidationError("from_date must not be after to_date")
    result = reconcile_party(kind, party_id)
    rows = result.transactions

    if search:
        needle = search.lower()
        rows = [
            row for row in rows
            if any(needle in (value or "").lower() for value in (row.description, row.reference, row.invoice))
        ]
    if from_date:
        rows = [row for row in rows if _local_date(row.voucher_date) >= from_date]
    if to_date:
        rows = [row for row in rows if _local_date(row.voucher_date) <= to_date]

    if sort_field != "voucher_date" or sort_order == "desc":
        key = SORT_FIELDS.get(sort_field, SORT_FIELDS["voucher_date"])
        rows = sorted(rows, key=key, reverse=sort_order == "desc")

    paginator = Paginator(rows, limit or settings.LEDGER_PAGE_SIZE)
    current = paginator.get_page(page)
    return TransactionPage(
        transactions=list(current.object_list),
        current_balance=result.current_balance,
        page=current.number,
        total_pages=paginator.num_pages,
        total=paginator.count,
    )


def reconcile_all_parties():
    """
    Reconcile every customer and vendor, each in its own transaction.
    Returns {"customer": n, "vendor": n, "failed": [(kind, id), ...]}.
    """
    summary = {"failed": []}
    for kind in PARTY_MODELS:
        done = 0
        for party_id in party_model(kind).objects.order_by("pk").values_list("pk", flat=True):
            try:
                reconcile_party(kind, party_id)
                done += 1
            except Exception:
                logger.exception("Reconciliation failed for %s %s", kind, party_id)
                summary["failed"].append((kind, party_id))
        summary[kind] = done
    logger.info(
        "Reconciled %d customers, %d vendors (%d failed)",
        summary["customer"], summary["vendor"], len(summary["failed"]),
    )
    return summary
