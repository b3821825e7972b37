import logging
import re
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import Invoice, Shipment
from ..models.transaction import APPLIED_CREDIT_PREFIX
from .audit_helper import log_action
from .journal import post_journal_entry, sync_invoice_entries
from .numbering import save_numbered
from .outcomes import LedgerOutcome, best_effort
from .parties import get_party, transaction_model
from .payments import (
    SHIPMENT_STATUS_FOR,
    apply_credit,
    refresh_invoice_status,
    release_credit,
    shrink_invoice_debit,
)
from .pricing import compute_shipment_pricing
from .recorder import adjust_transaction, record_transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
INVOICE_PREFIX = "INV-"
VENDOR_INVOICE_PREFIX = "V"

PRICING_FIELDS = ("price", "fuel_surcharge", "discount", "profit_percentage", "vendor_price")
DETAIL_FIELDS = (
    "tracking_id",
    "awb_number",
    "reference_number",
    "shipment_date",
    "sender_name",
    "recipient_name",
    "destination",
    "service_mode",
    "package_description",
    "weight",
)


@dataclass
class ShipmentResult:
    shipment: Shipment
    customer_invoice: Invoice
    vendor_invoice: Invoice
    outcome: LedgerOutcome


def next_invoice_number():
    """INV-000001, INV-000002, ... across shipments and invoices."""
    last = (
        Shipment.objects.filter(invoice_number__startswith=INVOICE_PREFIX)
        .order_by("-id")
        .values_list("invoice_number", flat=True)
        .first()
    )
    number = 1
    if last:
        match = re.match(rf"^{INVOICE_PREFIX}(\d+)$", last)
        number = int(match.group(1)) + 1 if match else Shipment.objects.count() + 1
    while Invoice.objects.filter(invoice_number=f"{INVOICE_PREFIX}{number:06d}").exists():
        number += 1
    return f"{INVOICE_PREFIX}{number:06d}"


def vendor_invoice_number_for(invoice_number):
    # derived, so the two sides of one shipment stay paired
    return f"{VENDOR_INVOICE_PREFIX}{invoice_number}"


def _assign_invoice_numbers(shipment):
    shipment.invoice_number = next_invoice_number()
    shipment.vendor_invoice_number = vendor_invoice_number_for(shipment.invoice_number)


def _shipment_label(shipment):
    return (
        f"Tracking: {shipment.tracking_id} | Country: {shipment.destination or '-'} "
        f"| Weight: {shipment.weight}Kg"
    )


def _create_invoice(kind, shipment, number, total):
    party = shipment.customer if kind == "customer" else shipment.vendor
    if kind == "customer":
        line_items = [{
            "description": shipment.package_description or "Shipping Service",
            "value": int(shipment.original_price),
        }]
        fsc, discount, disclaimer = (
            shipment.fuel_surcharge, shipment.discount_amount, "Thank you for your business"
        )
    else:
        line_items = [{"description": "Vendor Service", "value": int(total)}]
        fsc, discount, disclaimer = ZERO, ZERO, "Vendor invoice"

    return Invoice.objects.create(
        invoice_number=number,
        invoice_date=shipment.shipment_date,
        profile=kind.capitalize(),
        shipment=shipment,
        total_amount=total,
        fsc_charges=fsc,
        discount=discount,
        line_items=line_items,
        currency=settings.LEDGER_CURRENCY,
        tracking_number=shipment.tracking_id,
        destination=shipment.destination,
        weight=shipment.weight,
        disclaimer=disclaimer,
        **{kind: party},
    )


def _applied_balance(kind, balance, total):
    """Portion of a held credit that settles the new invoice."""
    if kind == "customer" and balance > 0:
        return min(balance, total)
    if kind == "vendor" and balance < 0:
        # a negative vendor balance is money they owe us
        return min(-balance, total)
    return ZERO


def _record_invoice(kind, shipment, number, total, outcome):
    """
    Apply any held credit against a new invoice and record its ledger rows.
    Uses the stored (pre-reconciliation) balance. Returns the invoice status.
    """
    party = get_party(kind, getattr(shipment, f"{kind}_id"), lock=True)
    applied = _applied_balance(kind, party.current_balance, total)
    remaining = total - applied
    when = shipment.shipment_date
    side = kind.upper()

    if remaining > 0:
        record_transaction(
            kind, party.pk, "DEBIT", remaining, _shipment_label(shipment),
            reference=number, invoice=number, created_at=when,
        )
        with best_effort(outcome, f"{kind}_journal"):
            post_journal_entry(
                f"{side}_DEBIT", remaining,
                f"{kind.capitalize()} invoice for shipment {shipment.tracking_id}",
                reference=number, invoice=number, date=when,
            )

    if applied > 0:
        apply_credit(kind, party, number, applied, when)
        with best_effort(outcome, f"{kind}_credit_journal"):
            # no cash moves here, it was booked when the credit came in
            post_journal_entry(
                f"{side}_CREDIT_APPLIED", applied,
                f"{kind.capitalize()} credit applied for invoice {number}",
                reference=f"{APPLIED_CREDIT_PREFIX}{number}", invoice=number, date=when,
            )

    if remaining == 0:
        return "Paid"
    return "Partial" if applied > 0 else "Pending"


def _load_parties(data):
    for kind in ("customer", "vendor"):
        if not data.get(kind):
            raise ValidationError(f"{kind} is required")
    return get_party("customer", data["customer"]), get_party("vendor", data["vendor"])


# ----------------------------
# Shipment workflows
# ----------------------------
def create_shipment(data):
    """
    Book a shipment and its paired customer/vendor invoices.

    The shipment row is authoritative: once it is saved, every downstream
    ledger effect (invoices, applied balances, ledger rows, journal entries)
    is best-effort and a failure is reported on the returned outcome.
    """
    outcome = LedgerOutcome()
    with transaction.atomic():
        customer, vendor = _load_parties(data)
        if not data.get("tracking_id"):
            raise ValidationError("tracking_id is required")
        pricing = compute_shipment_pricing(**{f: data.get(f) for f in PRICING_FIELDS})

        shipment = Shipment(
            customer=customer,
            vendor=vendor,
            original_price=pricing.original_price,
            discount_amount=pricing.discount_amount,
            customer_total_cost=pricing.customer_total_cost,
            vendor_total_cost=pricing.vendor_total_cost,
            **{f: data[f] for f in PRICING_FIELDS if data.get(f) not in (None, "")},
            **{f: data[f] for f in DETAIL_FIELDS if data.get(f) not in (None, "")},
        )
        shipment.awb_number = shipment.awb_number or shipment.tracking_id
        shipment.shipment_date = shipment.shipment_date or timezone.now()
        shipment.full_clean(exclude=["invoice_number", "vendor_invoice_number"])
        save_numbered(shipment, _assign_invoice_numbers)
        number = shipment.invoice_number
        log_action(
            action="create",
            instance=shipment,
            changes={"customer_total_cost": str(shipment.customer_total_cost),
                     "vendor_total_cost": str(shipment.vendor_total_cost)},
        )

        invoices = {}
        for kind, inv_number, total in (
            ("customer", shipment.invoice_number, shipment.customer_total_cost),
            ("vendor", shipment.vendor_invoice_number, shipment.vendor_total_cost),
        ):
            invoices[kind] = None
            with best_effort(outcome, f"{kind}_invoice"):
                invoices[kind] = _create_invoice(kind, shipment, inv_number, total)
            with best_effort(outcome, f"{kind}_ledger"):
                status = _record_invoice(kind, shipment, inv_number, total, outcome)
                if invoices[kind] is not None:
                    invoices[kind].status = status
                    invoices[kind].save(update_fields=["status"])
                if kind == "customer":
                    shipment.invoice_status = SHIPMENT_STATUS_FOR[status]
                    shipment.save(update_fields=["invoice_status"])

    if not outcome.ok:
        logger.warning("Shipment %s saved with ledger failures: %s", shipment.pk, outcome.failures)
    logger.info("Created shipment %s (%s / %s)", shipment.pk, number, shipment.vendor_invoice_number)
    return ShipmentResult(shipment, invoices["customer"], invoices["vendor"], outcome)


def _sync_invoice(shipment, number, total):
    invoice = Invoice.objects.filter(invoice_number=number).first()
    if invoice is None:
        raise NotFoundError(f"Invoice {number} not found")
    invoice.invoice_date = shipment.shipment_date
    invoice.tracking_number = shipment.tracking_id
    invoice.destination = shipment.destination
    invoice.weight = shipment.weight
    invoice.total_amount = total
    if invoice.customer_id:
        invoice.fsc_charges = shipment.fuel_surcharge
        invoice.discount = shipment.discount_amount
        invoice.line_items = [{
            "description": shipment.package_description or "Shipping Service",
            "value": int(shipment.original_price),
        }]
    else:
        invoice.line_items = [{"description": "Vendor Service", "value": int(total)}]
    invoice.save()
    refresh_invoice_status(invoice)
    return invoice


def _reprice_ledger(kind, party_id, number, delta, when, label):
    """
    Move an invoice's ledger rows by the change in its total rather than
    recording a new row. An increase lands on the invoice's own DEBIT row
    (recorded if the invoice was fully settled from credit); a decrease
    shrinks that row first and gives back the credit applied to it after.
    Returns {reference: (old amount, new amount)} for the rows that moved.
    """
    own = transaction_model(kind).objects.for_party(kind, party_id).invoice_debits(number).first()
    if delta > 0:
        if own is None:
            record_transaction(
                kind, party_id, "DEBIT", delta, label,
                reference=number, invoice=number, created_at=when,
            )
            return {number: (ZERO, delta)}
        adjust_transaction(kind, own.pk, own.amount + delta)
        return {number: (own.amount, own.amount + delta)}

    moved = {}
    cut = min(-delta, own.amount if own else ZERO)
    if cut > 0:
        moved[number] = shrink_invoice_debit(kind, party_id, number, cut)
    rest = -delta - cut
    if rest > 0:
        applied = release_credit(kind, party_id, number, rest)
        moved[f"{APPLIED_CREDIT_PREFIX}{number}"] = (applied + rest, applied)
    return moved


def _reprice(kind, party_id, number, old_total, new_total, when, label, description, outcome):
    # ledger and journal in separate savepoints: a journal failure keeps the balance move
    moved = {}
    with best_effort(outcome, f"{kind}_ledger"):
        moved = _reprice_ledger(kind, party_id, number, new_total - old_total, when, label)
    if moved:
        with best_effort(outcome, f"{kind}_journal"):
            sync_invoice_entries(kind, number, moved, date=when, description=description)


def update_shipment(shipment_id, changes):
    """
    Save edits to a shipment. When the totals change, both invoices and
    their ledger rows are adjusted in place.
    """
    unknown = set(changes) - set(PRICING_FIELDS) - set(DETAIL_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

    outcome = LedgerOutcome()
    with transaction.atomic():
        try:
            shipment = Shipment.objects.select_for_update().get(pk=shipment_id)
        except Shipment.DoesNotExist:
            raise NotFoundError(f"Shipment {shipment_id} not found")

        old_totals = {
            "customer": shipment.customer_total_cost,
            "vendor": shipment.vendor_total_cost,
        }
        for field, value in changes.items():
            setattr(shipment, field, value)

        if any(field in changes for field in PRICING_FIELDS):
            pricing = compute_shipment_pricing(
                **{f: getattr(shipment, f) for f in PRICING_FIELDS}
            )
            shipment.original_price = pricing.original_price
            shipment.discount_amount = pricing.discount_amount
            shipment.customer_total_cost = pricing.customer_total_cost
            shipment.vendor_total_cost = pricing.vendor_total_cost

        shipment.full_clean()
        shipment.save()
        log_action(
            action="update",
            instance=shipment,
            changes=changes,
        )

        new_totals = {
            "customer": shipment.customer_total_cost,
            "vendor": shipment.vendor_total_cost,
        }
        numbers = {
            "customer": shipment.invoice_number,
            "vendor": shipment.vendor_invoice_number,
        }
        invoices = {}
        for kind in ("customer", "vendor"):
            invoices[kind] = None
            if old_totals[kind] != new_totals[kind]:
                _reprice(
                    kind, getattr(shipment, f"{kind}_id"), numbers[kind],
                    old_totals[kind], new_totals[kind], shipment.shipment_date,
                    _shipment_label(shipment),
                    f"{kind.capitalize()} invoice for shipment {shipment.tracking_id}",
                    outcome,
                )
            with best_effort(outcome, f"{kind}_invoice"):
                invoices[kind] = _sync_invoice(shipment, numbers[kind], new_totals[kind])

    if not outcome.ok:
        logger.warning("Shipment %s updated with ledger failures: %s", shipment.pk, outcome.failures)
    return ShipmentResult(shipment, invoices["customer"], invoices["vendor"], outcome)


INVOICE_FIELDS = ("total_amount", "invoice_date", "fsc_charges", "discount", "line_items", "disclaimer")


@dataclass
class InvoiceResult:
    invoice: Invoice
    outcome: LedgerOutcome


def update_invoice(invoice_id, changes):
    """
    Edit an invoice directly. A new total moves that side's ledger rows and
    journal entries the way a shipment repricing does; the shipment's cost
    for that side follows the invoice.
    """
    unknown = set(changes) - set(INVOICE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

    outcome = LedgerOutcome()
    with transaction.atomic():
        try:
            invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
        except Invoice.DoesNotExist:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        kind = invoice.party_kind
        old_total = invoice.total_amount
        for field, value in changes.items():
            setattr(invoice, field, value)
        invoice.save()
        log_action(action="update", instance=invoice, changes=changes)

        if invoice.total_amount != old_total:
            _reprice(
                kind, getattr(invoice, f"{kind}_id"), invoice.invoice_number,
                old_total, invoice.total_amount, invoice.invoice_date,
                f"Invoice {invoice.invoice_number} adjusted",
                f"{kind.capitalize()} invoice {invoice.invoice_number}",
                outcome,
            )
            if invoice.shipment_id:
                with best_effort(outcome, "shipment"):
                    cost_field = f"{kind}_total_cost"
                    setattr(invoice.shipment, cost_field, invoice.total_amount)
                    invoice.shipment.save(update_fields=[cost_field])

        with best_effort(outcome, f"{kind}_invoice"):
            refresh_invoice_status(invoice)

    if not outcome.ok:
        logger.warning("Invoice %s updated with ledger failures: %s", invoice.invoice_number, outcome.failures)
    logger.info("Updated invoice %s: %s", invoice.invoice_number, ", ".join(sorted(changes)))
    return InvoiceResult(invoice, outcome)
