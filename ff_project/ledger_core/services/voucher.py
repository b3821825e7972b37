"""
Voucher dates: the business date a ledger row should be ordered by.

voucher_date_of() is pure. Everything it needs from other tables is
pre-fetched into a SideData by load_side_data(), so one reconciliation
issues a fixed number of queries however long the history is.
"""
from dataclasses import dataclass, field

from ..models import CreditNote, DebitNote, Invoice, Payment, Shipment
from ..models.transaction import (
    CREDIT_NOTE_PREFIX,
    DEBIT_NOTE_PREFIX,
    STARTING_BALANCE_PREFIX,
)

# Payment direction that settles each side's invoices
PAYMENT_TYPE_FOR = {
    "customer": "INCOME",
    "vendor": "EXPENSE",
}


@dataclass
class SideData:
    note_dates: dict = field(default_factory=dict)  # note number → date
    shipment_dates: dict = field(default_factory=dict)  # invoice number → shipment_date
    payment_dates: dict = field(default_factory=dict)  # invoice number → latest payment date


def _is_note(reference):
    return reference.startswith(CREDIT_NOTE_PREFIX) or reference.startswith(DEBIT_NOTE_PREFIX)


def load_side_data(kind, transactions):
    """Fetch note, shipment and payment dates referenced by the given rows."""
    transactions = list(transactions)
    side = SideData()
    if not transactions:
        return side

    references = {t.reference for t in transactions if t.reference and _is_note(t.reference)}
    if references:
        side.note_dates.update(
            CreditNote.objects.filter(credit_note_number__in=references)
            .values_list("credit_note_number", "date")
        )
        side.note_dates.update(
            DebitNote.objects.filter(debit_note_number__in=references)
            .values_list("debit_note_number", "date")
        )

    invoices = {t.invoice for t in transactions if t.invoice}
    if invoices:
        # Shipments keep both invoice numbers, so they cover invoices that were never created
        for inv, vinv, shipped in Shipment.objects.filter(
            **{"vendor_invoice_number__in" if kind == "vendor" else "invoice_number__in": invoices}
        ).values_list("invoice_number", "vendor_invoice_number", "shipment_date"):
            side.shipment_dates[vinv if kind == "vendor" else inv] = shipped
        side.shipment_dates.update(
            Invoice.objects.filter(invoice_number__in=invoices, shipment__isnull=False)
            .values_list("invoice_number", "shipment__shipment_date")
        )

        party_id = getattr(transactions[0], f"{kind}_id")
        party_filter = {"from_customer_id": party_id} if kind == "customer" else {"to_vendor_id": party_id}
        # Ascending, so the newest payment per invoice wins
        for invoice_number, paid_on in (
            Payment.objects.filter(
                transaction_type=PAYMENT_TYPE_FOR[kind],
                invoice__in=invoices,
                **party_filter,
            )
            .order_by("date", "id")
            .values_list("invoice", "date")
        ):
            side.payment_dates[invoice_number] = paid_on

    return side


def voucher_date_of(transaction, side_data):
    """
    STARTING-BALANCE        → the row's own created_at
    #CREDIT… / #DEBIT…      → the note's date
    invoice + DEBIT         → the shipment date
    invoice + CREDIT        → the latest matching payment's date
    anything else, or a lookup that finds nothing → created_at
    """
    reference = transaction.reference or ""
    if reference.startswith(STARTING_BALANCE_PREFIX):
        return transaction.created_at
    if _is_note(reference):
        return side_data.note_dates.get(reference) or transaction.created_at
    if transaction.invoice:
        if transaction.type == "DEBIT":
            found = side_data.shipment_dates.get(transaction.invoice)
        else:
            found = side_data.payment_dates.get(transaction.invoice)
        return found or transaction.created_at
    return transaction.created_at


def voucher_sort_key(transaction, side_data):
    # Same day: invoices (DEBIT) before the payments that settle them (CREDIT)
    return (
        voucher_date_of(transaction, side_data),
        0 if transaction.type == "DEBIT" else 1,
        transaction.created_at,
        transaction.pk or 0,
    )
