import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import Invoice, Payment
from ..models.payment import BALANCE_APPLIED
from ..models.transaction import APPLIED_CREDIT_PREFIX
from .audit_helper import log_action
from .journal import (
    post_journal_entry,
    remove_journal_entry_for_transaction,
    sync_invoice_entries,
    update_journal_entry_for_transaction,
)
from .outcomes import LedgerOutcome, best_effort
from .parties import get_party, transaction_model
from .recorder import adjust_transaction, record_transaction, remove_transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

PAYMENT_TYPES = ("CUSTOMER_PAYMENT", "VENDOR_PAYMENT")

# Payments written by process_invoice_payment; the only ones that can be edited
EDITABLE_CATEGORIES = ("Customer Payment", "Vendor Payment")

# Shipment.invoice_status mirrors the customer invoice
SHIPMENT_STATUS_FOR = {"Pending": "Unpaid", "Partial": "Partial", "Paid": "Paid"}


@dataclass
class PaymentResult:
    payment: Payment
    invoice: Invoice
    status: str
    total_paid: Decimal
    remaining_amount: Decimal
    outcome: LedgerOutcome


@dataclass
class AllocationResult:
    source_invoice: Invoice
    allocated: Decimal
    allocations: list = field(default_factory=list)  # [(invoice_number, amount), ...]
    outcome: LedgerOutcome = field(default_factory=LedgerOutcome)


def _payment_amount(amount):
    try:
        amount = Decimal(str(amount)).quantize(Decimal("0.01"))
    except (ArithmeticError, ValueError):
        raise ValidationError("Payment amount must be a number")
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    return amount


def _direction(kind):
    return "INCOME" if kind == "customer" else "EXPENSE"


def _locked_invoice(invoice_number):
    try:
        return Invoice.objects.select_for_update().get(invoice_number=invoice_number)
    except Invoice.DoesNotExist:
        raise NotFoundError(f"Invoice {invoice_number} not found")


def _paid_towards(invoice, exclude=None):
    payments = Payment.objects.filter(
        invoice=invoice.invoice_number, transaction_type=_direction(invoice.party_kind)
    )
    if exclude is not None:
        payments = payments.exclude(pk=exclude.pk)
    total = payments.aggregate(total=models.Sum("amount"))["total"]
    return total or ZERO


def invoice_payment_status(invoice):
    """
    Settlement of an invoice from the payments recorded against it
    (ordinary payments and applied balances alike).
    Returns (status, total_paid, remaining_amount).
    """
    total_paid = _paid_towards(invoice)
    remaining = max(ZERO, invoice.total_amount - total_paid)
    if remaining == 0:
        status = "Paid"
    elif total_paid > 0:
        status = "Partial"
    else:
        status = "Pending"
    return status, total_paid, remaining


def refresh_invoice_status(invoice):
    """Persist the computed status on the invoice and its shipment."""
    status, total_paid, remaining = invoice_payment_status(invoice)
    if invoice.status != status:
        invoice.status = status
        invoice.save(update_fields=["status"])
    if invoice.customer_id and invoice.shipment_id:
        invoice.shipment.invoice_status = SHIPMENT_STATUS_FOR[status]
        invoice.shipment.save(update_fields=["invoice_status"])
    return status, total_paid, remaining


# ----------------------------
# Applied credit
# ----------------------------
def _applied_row(kind, party_id, invoice_number):
    return (
        transaction_model(kind).objects.for_party(kind, party_id)
        .invoice_debits(invoice_number, reference=f"{APPLIED_CREDIT_PREFIX}{invoice_number}")
        .first()
    )


def apply_credit(kind, party, invoice_number, amount, date, source=None):
    """
    Settle part of an invoice from credit the party already holds.

    Writes a "Balance Applied" payment against the invoice and grows its
    DEBIT CREDIT-<invoice> row by amount (recording the row on first use).
    source names the invoice whose excess payment is being spent, if any.
    Returns the applied row's new amount.
    """
    reference = f"{APPLIED_CREDIT_PREFIX}{invoice_number}"
    Payment.objects.create(
        transaction_type=_direction(kind),
        category=BALANCE_APPLIED,
        date=date,
        currency=settings.LEDGER_CURRENCY,
        amount=amount,
        from_party_type="CUSTOMER" if kind == "customer" else "US",
        from_customer=party if kind == "customer" else None,
        to_party_type="US" if kind == "customer" else "VENDOR",
        to_vendor=party if kind == "vendor" else None,
        reference=f"{APPLIED_CREDIT_PREFIX}{source}" if source else invoice_number,
        invoice=invoice_number,
        description=(
            f"Excess payment on {source} applied to invoice {invoice_number}" if source
            else f"Credit applied for invoice {invoice_number}"
        ),
    )
    row = _applied_row(kind, party.pk, invoice_number)
    if row is None:
        # consumed credit is debited like the invoice itself
        change = record_transaction(
            kind, party.pk, "DEBIT", amount, f"Credit applied for invoice {invoice_number}",
            reference=reference, invoice=invoice_number, created_at=date,
        )
    else:
        change = adjust_transaction(kind, row.pk, row.amount + amount)
    return change.transaction.amount


def release_credit(kind, party_id, invoice_number, amount):
    """
    Give back amount of the credit applied to an invoice, newest
    application first. The returned credit is held on account again.
    Returns the applied row's new amount.
    """
    row = _applied_row(kind, party_id, invoice_number)
    held = row.amount if row else ZERO
    if held < amount:
        raise ValidationError(
            f"Invoice {invoice_number} has {held} of applied credit, cannot release {amount}"
        )

    left = amount
    applications = Payment.objects.filter(category=BALANCE_APPLIED, invoice=invoice_number)
    for applied in applications.select_for_update().order_by("-date", "-id"):
        if left == 0:
            break
        cut = min(left, applied.amount)
        if cut == applied.amount:
            applied.delete()
        else:
            applied.amount -= cut
            applied.save(update_fields=["amount"])
        left -= cut

    if held == amount:
        remove_transaction(kind, row.pk)
    else:
        adjust_transaction(kind, row.pk, held - amount)
    return held - amount


def shrink_invoice_debit(kind, party_id, invoice_number, amount):
    """
    Take amount off an invoice's own DEBIT row, deleting the row when
    nothing is left. Returns (old amount, new amount).
    """
    row = transaction_model(kind).objects.for_party(kind, party_id).invoice_debits(invoice_number).first()
    held = row.amount if row else ZERO
    if held < amount:
        raise ValidationError(f"Invoice {invoice_number} has only {held} left on its ledger row")
    if held == amount:
        remove_transaction(kind, row.pk)
    else:
        adjust_transaction(kind, row.pk, held - amount)
    return held, held - amount


# ----------------------------
# Payment-related workflows
# ----------------------------
def _customer_shares(invoice, amount, exclude=None):
    # share up to the outstanding amount settles the invoice, the rest stays on account
    outstanding = max(ZERO, invoice.total_amount - _paid_towards(invoice, exclude=exclude))
    for_invoice = min(amount, outstanding)
    return for_invoice, amount - for_invoice


def process_invoice_payment(
    invoice_number,
    amount,
    payment_type,
    mode="CASH",
    reference=None,
    description=None,
    date=None,
):
    """
    Apply a cash payment to an invoice.

    CUSTOMER_PAYMENT: the share up to the invoice's outstanding amount is a
    CREDIT for the invoice; any excess is a separate CREDIT-<invoice> row
    that stays on account as customer credit.
    VENDOR_PAYMENT: one CREDIT on the vendor for the full amount.
    Every row and the journal entry point back at the payment.
    """
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError("payment_type must be CUSTOMER_PAYMENT or VENDOR_PAYMENT")
    amount = _payment_amount(amount)

    outcome = LedgerOutcome()
    paid_on = date or timezone.now()
    description = description or f"Payment for invoice {invoice_number}"

    with transaction.atomic():
        invoice = _locked_invoice(invoice_number)

        if payment_type == "CUSTOMER_PAYMENT":
            if not invoice.customer_id:
                raise ValidationError("This invoice is not associated with a customer")
            for_invoice, overpayment = _customer_shares(invoice, amount)

            # Recorded first: it is the voucher-date evidence for the CREDIT rows
            payment = Payment.objects.create(
                transaction_type="INCOME",
                category="Customer Payment",
                date=paid_on,
                currency=settings.LEDGER_CURRENCY,
                amount=amount,
                from_party_type="CUSTOMER",
                from_customer_id=invoice.customer_id,
                to_party_type="US",
                mode=mode or "CASH",
                reference=reference or invoice_number,
                invoice=invoice_number,
                description=description,
            )
            if for_invoice > 0:
                record_transaction(
                    "customer", invoice.customer_id, "CREDIT", for_invoice, description,
                    reference=payment.reference, invoice=invoice_number, created_at=paid_on,
                    payment=payment,
                )
            if overpayment > 0:
                record_transaction(
                    "customer", invoice.customer_id, "CREDIT", overpayment,
                    f"Overpayment credit for invoice {invoice_number}",
                    reference=f"{APPLIED_CREDIT_PREFIX}{invoice_number}",
                    invoice=invoice_number, created_at=paid_on, payment=payment,
                )
            journal_type = "CUSTOMER_CREDIT"
        else:
            if not invoice.vendor_id:
                raise ValidationError("This invoice is not associated with a vendor")
            payment = Payment.objects.create(
                transaction_type="EXPENSE",
                category="Vendor Payment",
                date=paid_on,
                currency=settings.LEDGER_CURRENCY,
                amount=amount,
                from_party_type="US",
                to_party_type="VENDOR",
                to_vendor_id=invoice.vendor_id,
                mode=mode or "CASH",
                reference=reference or invoice_number,
                invoice=invoice_number,
                description=description,
            )
            record_transaction(
                "vendor", invoice.vendor_id, "CREDIT", amount, description,
                reference=payment.reference, invoice=invoice_number, created_at=paid_on,
                payment=payment,
            )
            journal_type = "VENDOR_CREDIT"

        with best_effort(outcome, "journal_entry"):
            post_journal_entry(
                journal_type, amount, description,
                reference=payment.reference, invoice=invoice_number, date=paid_on, payment=payment,
            )

        status, total_paid, remaining = refresh_invoice_status(invoice)
        log_action(
            action="payment",
            instance=invoice,
            changes={"amount": amount, "status": status, "payment": payment.pk},
        )

    logger.info(
        "%s of %s on %s: status %s, remaining %s", payment_type, amount, invoice_number, status, remaining
    )
    return PaymentResult(payment, invoice, status, total_paid, remaining, outcome)


def _editable_payment(payment_id):
    try:
        payment = Payment.objects.select_for_update().get(pk=payment_id)
    except Payment.DoesNotExist:
        raise NotFoundError(f"Payment {payment_id} not found")
    # debit notes also write "Vendor Payment" rows, but never against an invoice
    if payment.category not in EDITABLE_CATEGORIES or not payment.invoice:
        raise ValidationError("Only invoice payments can be edited or deleted")
    return payment


def _allocated_from(invoice):
    return Payment.objects.filter(
        category=BALANCE_APPLIED,
        reference=f"{APPLIED_CREDIT_PREFIX}{invoice.invoice_number}",
    ).aggregate(total=models.Sum("amount"))["total"] or ZERO


def _check_allocated(invoice, payment, new_amount):
    # excess already spent on other invoices has to stay covered
    allocated = _allocated_from(invoice)
    if not allocated:
        return
    overpaid = max(ZERO, _paid_towards(invoice, exclude=payment) + new_amount - invoice.total_amount)
    if overpaid < allocated:
        raise ValidationError(
            f"{allocated} paid on {invoice.invoice_number} is allocated to other invoices; "
            "reduce the allocation first"
        )


def _payment_party(payment):
    if payment.from_customer_id:
        return "customer", payment.from_customer_id
    return "vendor", payment.to_vendor_id


def update_payment(payment_id, amount, update_journal=True):
    """
    Change the amount of a customer or vendor payment.

    The ledger rows written for the payment move in place: a customer
    payment is split again into the invoice share and the overpayment held
    on account, rows that drop to zero are removed and missing ones are
    recorded. The journal entry follows unless update_journal is False.
    """
    amount = _payment_amount(amount)
    outcome = LedgerOutcome()

    with transaction.atomic():
        payment = _editable_payment(payment_id)
        kind, party_id = _payment_party(payment)
        get_party(kind, party_id, lock=True)
        invoice = None
        if payment.invoice:
            invoice = Invoice.objects.select_for_update().filter(invoice_number=payment.invoice).first()
        previous = payment.amount
        if invoice is not None and amount < previous:
            _check_allocated(invoice, payment, amount)

        # reference → (amount, description) each linked row should end at
        targets = {payment.reference: (amount, payment.description)}
        if kind == "customer" and invoice is not None:
            for_invoice, overpayment = _customer_shares(invoice, amount, exclude=payment)
            targets = {
                payment.reference: (for_invoice, payment.description),
                f"{APPLIED_CREDIT_PREFIX}{invoice.invoice_number}": (
                    overpayment, f"Overpayment credit for invoice {invoice.invoice_number}"
                ),
            }

        rows = transaction_model(kind).objects.for_party(kind, party_id).for_payment(payment)
        existing = {row.reference: row for row in rows}
        for reference, (target, text) in targets.items():
            row = existing.get(reference)
            if row is None:
                if target > 0:
                    record_transaction(
                        kind, party_id, "CREDIT", target, text, reference=reference,
                        invoice=payment.invoice, created_at=payment.date, payment=payment,
                    )
            elif target == 0:
                remove_transaction(kind, row.pk)
            else:
                adjust_transaction(kind, row.pk, target)

        payment.amount = amount
        payment.save(update_fields=["amount"])

        if update_journal:
            with best_effort(outcome, "journal_entry"):
                update_journal_entry_for_transaction(
                    f"{kind.upper()}_CREDIT", amount, payment.description,
                    reference=payment.reference, invoice=payment.invoice,
                    date=payment.date, payment=payment,
                )

        status = total_paid = remaining = None
        if invoice is not None:
            status, total_paid, remaining = refresh_invoice_status(invoice)
        log_action(
            action="update_payment",
            instance=payment,
            changes={"amount": {"old": previous, "new": amount}, "status": status},
        )

    logger.info("Payment %s changed %s -> %s", payment.pk, previous, amount)
    return PaymentResult(payment, invoice, status, total_paid, remaining, outcome)


def delete_payment(payment_id):
    """
    Delete a customer or vendor payment, reversing its ledger rows and
    removing its journal entry. The invoice status is recomputed.
    """
    outcome = LedgerOutcome()

    with transaction.atomic():
        payment = _editable_payment(payment_id)
        kind, party_id = _payment_party(payment)
        get_party(kind, party_id, lock=True)
        invoice = None
        if payment.invoice:
            invoice = Invoice.objects.select_for_update().filter(invoice_number=payment.invoice).first()
        if invoice is not None:
            _check_allocated(invoice, payment, ZERO)

        for row in transaction_model(kind).objects.for_party(kind, party_id).for_payment(payment):
            remove_transaction(kind, row.pk)

        with best_effort(outcome, "journal_entry"):
            remove_journal_entry_for_transaction(
                f"{kind.upper()}_CREDIT", reference=payment.reference,
                invoice=payment.invoice, payment=payment,
            )

        log_action(
            action="delete_payment",
            instance=payment,
            changes={"amount": payment.amount, "invoice": payment.invoice},
        )
        payment_pk = payment.pk
        payment.delete()

        status = total_paid = remaining = None
        if invoice is not None:
            status, total_paid, remaining = refresh_invoice_status(invoice)

    logger.info("Payment %s deleted", payment_pk)
    return PaymentResult(payment, invoice, status, total_paid, remaining, outcome)


# ----------------------------
# Excess payment allocation
# ----------------------------
def open_invoices(kind, party_id):
    """A party's invoices with something left to settle, oldest first: [(invoice, remaining)]."""
    get_party(kind, party_id)
    result = []
    invoices = Invoice.objects.filter(**{f"{kind}_id": party_id}).order_by("invoice_date", "id")
    for invoice in invoices:
        _, _, remaining = invoice_payment_status(invoice)
        if remaining > 0:
            result.append((invoice, remaining))
    return result


def invoice_excess(invoice):
    """What was paid towards an invoice beyond its total and not yet allocated elsewhere."""
    overpaid = max(ZERO, _paid_towards(invoice) - invoice.total_amount)
    return max(ZERO, overpaid - _allocated_from(invoice))


def allocate_excess_payment(invoice_number, amount=None, invoice_numbers=None, date=None):
    """
    Spend the excess paid on one invoice on the party's other open invoices.

    Targets are the open invoices oldest first, or invoice_numbers in the
    given order. For each target the share leaves the invoice's own DEBIT
    row and lands on its applied-credit row, so the party balance does not
    move; a "Balance Applied" payment referencing the source invoice
    settles the target. amount defaults to the whole unallocated excess.
    """
    outcome = LedgerOutcome()
    when = date or timezone.now()

    with transaction.atomic():
        source = _locked_invoice(invoice_number)
        kind = source.party_kind
        party = get_party(kind, getattr(source, f"{kind}_id"), lock=True)

        excess = invoice_excess(source)
        amount = excess if amount is None else _payment_amount(amount)
        if amount <= 0:
            raise ValidationError(f"Invoice {invoice_number} has no excess payment to allocate")
        if amount > excess:
            raise ValidationError(f"Only {excess} of the payment on {invoice_number} is unallocated")

        targets = [(inv, rem) for inv, rem in open_invoices(kind, party.pk) if inv.pk != source.pk]
        if invoice_numbers:
            by_number = {inv.invoice_number: (inv, rem) for inv, rem in targets}
            missing = [n for n in invoice_numbers if n not in by_number]
            if missing:
                raise ValidationError(f"Not open invoices of this {kind}: {', '.join(missing)}")
            targets = [by_number[n] for n in invoice_numbers]

        result = AllocationResult(source, ZERO, outcome=outcome)
        moved = {}
        left = amount
        for target, remaining in targets:
            if left == 0:
                break
            share = min(left, remaining)
            number = target.invoice_number
            own_old, own_new = shrink_invoice_debit(kind, party.pk, number, share)
            applied_new = apply_credit(kind, party, number, share, when, source=invoice_number)
            moved[number] = {
                number: (own_old, own_new),
                f"{APPLIED_CREDIT_PREFIX}{number}": (applied_new - share, applied_new),
            }
            refresh_invoice_status(target)
            result.allocations.append((number, share))
            left -= share
        result.allocated = amount - left

        for number, rows in moved.items():
            with best_effort(outcome, f"journal_{number}"):
                sync_invoice_entries(kind, number, rows, date=when)

        log_action(
            action="allocate",
            instance=source,
            changes={"allocated": result.allocated, "allocations": result.allocations},
        )

    logger.info(
        "Allocated %s of excess on %s across %d invoice(s)",
        result.allocated, invoice_number, len(result.allocations),
    )
    return result
