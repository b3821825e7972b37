import logging
import re
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import CreditNote, DebitNote, Invoice, Payment
from ..models.transaction import CREDIT_NOTE_PREFIX, DEBIT_NOTE_PREFIX
from .audit_helper import log_action
from .journal import post_journal_entry
from .numbering import save_numbered
from .outcomes import LedgerOutcome, best_effort
from .parties import get_party
from .recorder import record_transaction

logger = logging.getLogger(__name__)


def _next_number(model, field, prefix):
    """#CREDIT00001 / #DEBIT00001, continuing from the newest note."""
    last = model.objects.order_by("-id").values_list(field, flat=True).first()
    number = 1
    if last:
        match = re.match(rf"^{re.escape(prefix)}(\d+)$", last)
        number = int(match.group(1)) + 1 if match else model.objects.count() + 1
    while model.objects.filter(**{field: f"{prefix}{number:05d}"}).exists():
        number += 1
    return f"{prefix}{number:05d}"


def _create_numbered(model, field, prefix, **fields):
    def assign(note):
        setattr(note, field, _next_number(model, field, prefix))

    return save_numbered(model(**fields), assign)


def _amount(amount):
    try:
        amount = Decimal(str(amount)).quantize(Decimal("0.01"))
    except (ArithmeticError, ValueError):
        raise ValidationError("Note amount must be a number")
    if amount <= 0:
        raise ValidationError("Note amount must be positive")
    return amount


def _invoice(invoice_id):
    if not invoice_id:
        return None
    try:
        return Invoice.objects.get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise NotFoundError(f"Invoice {invoice_id} not found")


# ----------------------------
# Credit / debit note workflows
# ----------------------------
def issue_credit_note(customer_id, amount, date=None, description="", invoice_id=None):
    """
    Credit a customer outside of a payment.
    The ledger row's reference is the note number, so it is ordered by
    the note's date on reconciliation.
    """
    amount = _amount(amount)
    note_date = date or timezone.now()
    outcome = LedgerOutcome()

    with transaction.atomic():
        customer = get_party("customer", customer_id)
        invoice = _invoice(invoice_id)
        note = _create_numbered(
            CreditNote, "credit_note_number", CREDIT_NOTE_PREFIX,
            customer=customer,
            invoice=invoice,
            amount=amount,
            date=note_date,
            description=description or "",
            currency=settings.LEDGER_CURRENCY,
        )
        number = note.credit_note_number
        label = f"Credit Note: {description or number}"
        Payment.objects.create(
            transaction_type="INCOME",
            category="Customer Credit",
            date=note_date,
            currency=settings.LEDGER_CURRENCY,
            amount=amount,
            from_party_type="CUSTOMER",
            from_customer=customer,
            to_party_type="US",
            reference=number,
            description=label,
        )
        record_transaction(
            "customer", customer.pk, "CREDIT", amount, label,
            reference=number,
            invoice=invoice.invoice_number if invoice else None,
            created_at=note_date,
        )
        with best_effort(outcome, "journal_entry"):
            post_journal_entry(
                "CREDIT_NOTE", amount, label, reference=number, invoice=number, date=note_date
            )
        log_action(action="credit_note", instance=note, changes={"amount": amount, "date": note_date})

    logger.info("Issued %s for %s to customer %s", number, amount, customer_id)
    return note, outcome


def issue_debit_note(vendor_id, amount, date=None, description="", invoice_id=None):
    """Raise a debit against a vendor; mirrors issue_credit_note."""
    amount = _amount(amount)
    note_date = date or timezone.now()
    outcome = LedgerOutcome()

    with transaction.atomic():
        vendor = get_party("vendor", vendor_id)
        invoice = _invoice(invoice_id)
        note = _create_numbered(
            DebitNote, "debit_note_number", DEBIT_NOTE_PREFIX,
            vendor=vendor,
            invoice=invoice,
            amount=amount,
            date=note_date,
            description=description or "",
            currency=settings.LEDGER_CURRENCY,
        )
        number = note.debit_note_number
        label = f"Debit Note: {description or number}"
        Payment.objects.create(
            transaction_type="EXPENSE",
            category="Vendor Payment",
            date=note_date,
            currency=settings.LEDGER_CURRENCY,
            amount=amount,
            from_party_type="US",
            to_party_type="VENDOR",
            to_vendor=vendor,
            reference=number,
            description=label,
        )
        record_transaction(
            "vendor", vendor.pk, "DEBIT", amount, label,
            reference=number,
            invoice=invoice.invoice_number if invoice else None,
            created_at=note_date,
        )
        with best_effort(outcome, "journal_entry"):
            post_journal_entry(
                "DEBIT_NOTE", amount, label, reference=number, invoice=number, date=note_date
            )
        log_action(action="debit_note", instance=note, changes={"amount": amount, "date": note_date})

    logger.info("Issued %s for %s to vendor %s", number, amount, vendor_id)
    return note, outcome
