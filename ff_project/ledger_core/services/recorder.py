import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models.transaction import STARTING_BALANCE_PREFIX, TRANSACTION_TYPES
from .parties import get_party, transaction_model

logger = logging.getLogger(__name__)

# Starting balances sort before any real activity
EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


@dataclass(frozen=True)
class BalanceChange:
    previous_balance: Decimal
    new_balance: Decimal
    transaction: object


def _as_amount(amount):
    try:
        value = Decimal(str(amount))
    except (ArithmeticError, ValueError, TypeError):
        raise ValidationError(f"Invalid amount {amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount {amount!r}")
    return value.quantize(Decimal("0.01"))


def _locked_row(kind, transaction_id):
    # party row first, then the transaction, the same order record_transaction takes
    model = transaction_model(kind)
    party_id = (
        model.objects.filter(pk=transaction_id).values_list(f"{kind}_id", flat=True).first()
    )
    if party_id is None:
        raise NotFoundError(f"{kind.capitalize()} transaction {transaction_id} not found")
    get_party(kind, party_id, lock=True)
    return model.objects.select_for_update().get(pk=transaction_id)


# ----------------------------
# Ledger row workflows
# ----------------------------
def record_transaction(
    kind,
    party_id,
    type,
    amount,
    description,
    reference=None,
    invoice=None,
    created_at=None,
    payment=None,
):
    """
    Append a DEBIT/CREDIT row for a customer or vendor and move the
    stored running balance.

    previous_balance is the party's stored balance at insertion time,
    so it is only voucher-date correct when this row is the latest one;
    the reconciler restores ordering on the next read.
    """
    if type not in dict(TRANSACTION_TYPES):
        raise ValidationError("Type must be CREDIT or DEBIT")
    amount = _as_amount(amount)
    if amount < 0:
        raise ValidationError("Transaction amount must be >= 0")

    model = transaction_model(kind)
    with transaction.atomic():
        # Lock the party row until the balance write lands
        party = get_party(kind, party_id, lock=True)
        previous_balance = party.current_balance

        txn = model(
            type=type,
            amount=amount,
            description=description or "",
            reference=reference,
            invoice=invoice,
            payment=payment,
            previous_balance=previous_balance,
            created_at=created_at or timezone.now(),
            **{kind: party},
        )
        txn.new_balance = previous_balance + txn.effect()
        txn.save()

        party.current_balance = txn.new_balance
        party.save(update_fields=["current_balance"])

    logger.info(
        "%s %s %s %s: %s -> %s (ref=%s)",
        kind, party_id, type, amount, previous_balance, txn.new_balance, reference,
    )
    return BalanceChange(previous_balance, txn.new_balance, txn)


def record_starting_balance(kind, party_id, balance, as_of=None, description="Starting balance"):
    """
    Write the party's opening balance as a STARTING-BALANCE row.
    The row is backdated (default 1970-01-01) so it sorts first.
    A positive balance uses the type that increases the party balance.
    """
    balance = _as_amount(balance)
    model = transaction_model(kind)
    increasing = "CREDIT" if model.CREDIT_SIGN > 0 else "DEBIT"
    decreasing = "DEBIT" if increasing == "CREDIT" else "CREDIT"
    return record_transaction(
        kind,
        party_id,
        increasing if balance >= 0 else decreasing,
        abs(balance),
        description,
        reference=STARTING_BALANCE_PREFIX,
        created_at=as_of or EPOCH,
    )


def adjust_transaction(kind, transaction_id, new_amount):
    """
    Rewrite the amount of an existing row in place and shift the stored
    balance by the signed effect of the difference.
    Returns the BalanceChange, or None when nothing changed.
    """
    new_amount = _as_amount(new_amount)
    if new_amount < 0:
        raise ValidationError("Transaction amount must be >= 0")

    with transaction.atomic():
        txn = _locked_row(kind, transaction_id)
        party = get_party(kind, getattr(txn, f"{kind}_id"), lock=True)

        delta = new_amount - txn.amount
        if delta == 0:
            return None

        previous_balance = party.current_balance
        party.current_balance = previous_balance + txn.effect(delta)
        party.save(update_fields=["current_balance"])

        txn.amount = new_amount
        txn.new_balance = txn.new_balance + txn.effect(delta)
        txn.save(update_fields=["amount", "new_balance"])

    logger.info(
        "Adjusted %s row %s (ref=%s) by %s: %s -> %s",
        kind, txn.pk, txn.reference, delta, previous_balance, party.current_balance,
    )
    return BalanceChange(previous_balance, party.current_balance, txn)


def remove_transaction(kind, transaction_id):
    """
    Delete a row and reverse its effect on the stored balance.
    Neighbouring rows keep their balances until the next reconciliation.
    """
    with transaction.atomic():
        txn = _locked_row(kind, transaction_id)
        party = get_party(kind, getattr(txn, f"{kind}_id"), lock=True)

        previous_balance = party.current_balance
        party.current_balance = previous_balance - txn.effect()
        party.save(update_fields=["current_balance"])
        txn.delete()

    logger.info(
        "Removed %s %s %s (ref=%s): %s -> %s",
        kind, txn.type, txn.amount, txn.reference, previous_balance, party.current_balance,
    )
    return BalanceChange(previous_balance, party.current_balance, txn)


def adjust_invoice_transaction(kind, party_id, invoice_number, new_amount, reference=None):
    """
    Balance-adjustment utility for an edited invoice.

    Rewrites the amount of the invoice's original DEBIT row (or, given
    reference, the DEBIT carrying that reference) in place; the stored
    balance moves by the signed effect of the difference
    (vendor: new = old + (new_amount - old_amount); customer mirrors it).
    Returns the BalanceChange, or None when nothing changed.
    """
    model = transaction_model(kind)
    with transaction.atomic():
        get_party(kind, party_id, lock=True)
        txn = (
            model.objects.for_party(kind, party_id)
            .invoice_debits(invoice_number, reference=reference)
            .first()
        )
        if txn is None:
            raise NotFoundError(
                f"No DEBIT transaction for invoice {invoice_number} on {kind} {party_id}"
            )
        return adjust_transaction(kind, txn.pk, new_amount)
