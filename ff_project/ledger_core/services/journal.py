import logging
import re
import warnings
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import ConsistencyWarning, NotFoundError, UnbalancedJournalError
from ..models import ChartOfAccount, JournalEntry, JournalEntryLine
from .numbering import save_numbered

logger = logging.getLogger(__name__)

# Business transaction → (debit account code, credit account code)
TRANSACTION_ACCOUNTS = {
    "CUSTOMER_DEBIT": ("1102", "5102"),  # Accounts Receivable / Logistics Services Revenue
    "CUSTOMER_CREDIT": ("1101", "1102"),  # Cash / Accounts Receivable
    # held credit consumed by a new invoice; the cash was booked when it came in
    "CUSTOMER_CREDIT_APPLIED": ("1102", "5102"),  # Accounts Receivable / Logistics Services Revenue
    "VENDOR_DEBIT": ("4305", "2101"),  # Vendor Expense / Accounts Payable
    "VENDOR_CREDIT": ("2101", "1101"),  # Accounts Payable / Cash
    "VENDOR_CREDIT_APPLIED": ("4305", "2101"),  # Vendor Expense / Accounts Payable
    "CREDIT_NOTE": ("1101", "5102"),  # Cash / Logistics Services Revenue
    "DEBIT_NOTE": ("4305", "1101"),  # Vendor Expense / Cash
}

ENTRY_PREFIX = "JE-"

# (code, name, category, type, debit rule, credit rule, description)
DEFAULT_ACCOUNTS = [
    # Assets
    ("1101", "Cash", "Asset", "Current Asset", "Increases", "Decreases",
     "Physical cash and bank accounts"),
    ("1102", "Accounts Receivable", "Asset", "Current Asset", "Increases", "Decreases",
     "Money owed by customers for transportation or logistics services"),
    ("1103", "Fuel Inventory", "Asset", "Current Asset", "Increases", "Decreases",
     "Fuel stock for transportation vehicles"),
    ("1104", "Spare Parts Inventory", "Asset", "Current Asset", "Increases", "Decreases",
     "Spare parts and accessories for vehicle maintenance"),
    ("1105", "Fleet Vehicles", "Asset", "Fixed Asset", "Increases", "Decreases",
     "Trucks, vans, and other vehicles used for transportation"),
    ("1106", "Warehousing Facilities", "Asset", "Fixed Asset", "Increases", "Decreases",
     "Storage warehouses used in logistics operations"),
    ("1107", "Office Equipment", "Asset", "Fixed Asset", "Increases", "Decreases",
     "Office furniture, computers, and administrative equipment"),
    ("1108", "Prepaid Insurance", "Asset", "Prepayment", "Increases", "Decreases",
     "Insurance premiums paid in advance for vehicles and cargo"),
    ("1109", "Prepaid Rent", "Asset", "Prepayment", "Increases", "Decreases",
     "Advance rent payments for warehouses or office spaces"),
    # Liabilities
    ("2101", "Accounts Payable", "Liability", "Current Liability", "Decreases", "Increases",
     "Money owed to suppliers, contractors, or vendors"),
    ("2102", "Taxes Payable", "Liability", "Current Liability", "Decreases", "Increases",
     "Taxes owed to government authorities"),
    ("2103", "Wages Payable", "Liability", "Current Liability", "Decreases", "Increases",
     "Unpaid salaries and wages owed to drivers and staff"),
    ("2201", "Vehicle Loan Payable", "Liability", "Non-Current Liability", "Decreases", "Increases",
     "Long-term loans for purchasing fleet vehicles"),
    ("2202", "Warehouse Mortgage Payable", "Liability", "Non-Current Liability", "Decreases",
     "Increases", "Mortgage loans for warehousing facilities"),
    # Equity
    ("3101", "Owner's Equity", "Equity", "Equity", "Decreases", "Increases",
     "Owner's initial and additional investments in the business"),
    ("3102", "Retained Earnings", "Equity", "Equity", "Decreases", "Increases",
     "Cumulative profits retained in the business for reinvestment"),
    ("3103", "Current Year Earnings", "Equity", "Equity", "Decreases", "Increases",
     "Current year's net income or loss"),
    # Expenses
    ("4101", "Depreciation Expense - Fleet Vehicles", "Expense", "Depreciation", "Increases",
     "Decreases", "Depreciation of trucks, vans, and other vehicles"),
    ("4102", "Depreciation Expense - Warehousing Facilities", "Expense", "Depreciation",
     "Increases", "Decreases", "Depreciation of warehouses and storage facilities"),
    ("4201", "Fuel Costs", "Expense", "Direct Costs", "Increases", "Decreases",
     "Expenses related to fuel consumption for fleet vehicles"),
    ("4202", "Vehicle Maintenance", "Expense", "Direct Costs", "Increases", "Decreases",
     "Costs for repairing and maintaining fleet vehicles"),
    ("4203", "Driver Salaries", "Expense", "Direct Costs", "Increases", "Decreases",
     "Wages paid to vehicle drivers"),
    ("4301", "Warehouse Rent", "Expense", "Overhead", "Increases", "Decreases",
     "Rental costs for warehouses"),
    ("4302", "Utilities Expense", "Expense", "Overhead", "Increases", "Decreases",
     "Electricity, water, and internet expenses for facilities"),
    ("4303", "Administrative Salaries", "Expense", "Overhead", "Increases", "Decreases",
     "Salaries for administrative and office staff"),
    ("4304", "Insurance Expense", "Expense", "Overhead", "Increases", "Decreases",
     "Insurance costs for vehicles and cargo"),
    ("4305", "Vendor Expense", "Expense", "Direct Costs", "Increases", "Decreases",
     "Expenses paid to vendors for transportation and logistics services"),
    # Revenue
    ("5101", "Freight Revenue", "Revenue", "Revenue", "Decreases", "Increases",
     "Revenue earned from freight and cargo transportation"),
    ("5102", "Logistics Services Revenue", "Revenue", "Revenue", "Decreases", "Increases",
     "Revenue earned from logistics and warehousing services"),
    ("5103", "Vehicle Leasing Revenue", "Revenue", "Revenue", "Decreases", "Increases",
     "Revenue earned from leasing vehicles to third parties"),
]


def seed_chart_of_accounts():
    """Create the default logistics chart. Refuses to run on a non-empty chart."""
    if ChartOfAccount.objects.exists():
        raise ValidationError("Chart of accounts already initialized")
    created = ChartOfAccount.objects.bulk_create(
        ChartOfAccount(
            code=code,
            account_name=name,
            category=category,
            type=type_,
            debit_rule=debit_rule,
            credit_rule=credit_rule,
            description=description,
        )
        for code, name, category, type_, debit_rule, credit_rule, description in DEFAULT_ACCOUNTS
    )
    logger.info("Initialized %d default accounts", len(created))
    return len(created)


def next_entry_number():
    """JE-0001, JE-0002, ... continuing from the newest entry."""
    last = (
        JournalEntry.objects.filter(entry_number__startswith=ENTRY_PREFIX)
        .order_by("-id")
        .values_list("entry_number", flat=True)
        .first()
    )
    number = 1
    if last:
        match = re.match(rf"^{ENTRY_PREFIX}(\d+)$", last)
        number = int(match.group(1)) + 1 if match else JournalEntry.objects.count() + 1
    # Skip numbers taken by out-of-sequence imports
    while JournalEntry.objects.filter(entry_number=f"{ENTRY_PREFIX}{number:04d}").exists():
        number += 1
    return f"{ENTRY_PREFIX}{number:04d}"


def _accounts_for(transaction_type):
    try:
        debit_code, credit_code = TRANSACTION_ACCOUNTS[transaction_type]
    except KeyError:
        raise ValidationError(f"Unknown journal transaction type {transaction_type!r}")
    accounts = ChartOfAccount.objects.in_bulk([debit_code, credit_code], field_name="code")
    missing = [code for code in (debit_code, credit_code) if code not in accounts]
    if missing:
        raise NotFoundError(f"Chart of accounts is missing {', '.join(missing)}")
    return accounts[debit_code], accounts[credit_code]


def _positive(amount):
    amount = Decimal(str(amount)).quantize(Decimal("0.01"))
    if amount <= 0:
        raise ValidationError("Journal amount must be positive")
    return amount


# ----------------------------
# Journal-related workflows
# ----------------------------
def _assign_entry_number(je):
    je.entry_number = next_entry_number()


def post_journal_entry(
    transaction_type, amount, description, reference=None, invoice=None, date=None, payment=None
):
    """
    Create & post a two-line entry for a party ledger row.
    Produces:
      Debit:  mapped debit account  = amount
      Credit: mapped credit account = amount
    Header totals are set from amount, so the entry balances by construction.
    """
    amount = _positive(amount)
    debit_account, credit_account = _accounts_for(transaction_type)
    when = date or timezone.now()

    with transaction.atomic():
        je = save_numbered(
            JournalEntry(
                date=when,
                description=description or "",
                reference=reference,
                total_debit=amount,
                total_credit=amount,
                is_posted=True,
                posted_at=when,
                source_type=transaction_type,
                source_invoice=invoice,
                source_payment=payment,
            ),
            _assign_entry_number,
        )
        JournalEntryLine.objects.create(
            journal=je,
            account=debit_account,
            debit_amount=amount,
            description=description or "",
            reference=reference,
        )
        JournalEntryLine.objects.create(
            journal=je,
            account=credit_account,
            credit_amount=amount,
            description=description or "",
            reference=reference,
        )

    logger.info("Posted %s %s for %s (ref=%s)", je.entry_number, transaction_type, amount, reference)
    return je


def find_journal_entry_for_transaction(transaction_type, reference=None, invoice=None, payment=None):
    """
    Locate the entry generated for a ledger row.

    Entries written by post_journal_entry carry an explicit source link and
    are matched on it (the payment when one is given, since several
    payments share an invoice). Older, unlinked entries fall back to a
    heuristic search: exact reference, invoice number inside the
    description, invoice number as reference, then a broad OR of the above.
    The heuristic can pick the wrong entry when references collide.
    """
    if payment is not None:
        linked = JournalEntry.objects.filter(source_payment=payment).order_by("id").first()
        if linked:
            return linked
    elif invoice:
        linked = JournalEntry.objects.for_source(transaction_type, invoice).order_by("id").first()
        if linked:
            return linked

    unlinked = JournalEntry.objects.filter(source_type__isnull=True).order_by("id")
    tiers = []
    if payment is not None:
        tiers.append(("payment-reference", Q(reference=f"Payment-{payment.pk}")))
    if reference:
        tiers.append(("reference", Q(reference=reference)))
    if invoice:
        tiers.append(("description", Q(description__contains=invoice)))
        tiers.append(("invoice-as-reference", Q(reference=invoice)))
    broad = Q()
    if reference:
        broad |= Q(reference__icontains=reference) | Q(description__icontains=reference)
    if invoice:
        broad |= Q(reference__icontains=invoice) | Q(description__icontains=invoice)
    if broad:
        tiers.append(("broad", broad))

    for name, condition in tiers:
        je = unlinked.filter(condition).first()
        if je:
            logger.warning(
                "Journal entry %s for %s (ref=%s, invoice=%s) matched heuristically by %s",
                je.entry_number, transaction_type, reference, invoice, name,
            )
            return je
    return None


def update_journal_entry_for_transaction(
    transaction_type, amount, description, reference=None, invoice=None, date=None, payment=None
):
    """
    Rewrite the amount/description of an existing two-line entry in place.
    When no entry can be found a ConsistencyWarning is emitted and a new
    entry is posted instead.
    """
    amount = _positive(amount)
    je = find_journal_entry_for_transaction(
        transaction_type, reference=reference, invoice=invoice, payment=payment
    )
    if je is None:
        message = (
            f"No journal entry found for {transaction_type} "
            f"(ref={reference}, invoice={invoice}); creating a new one"
        )
        warnings.warn(message, ConsistencyWarning, stacklevel=2)
        logger.warning(message)
        return post_journal_entry(
            transaction_type, amount, description,
            reference=reference, invoice=invoice, date=date, payment=payment,
        )

    with transaction.atomic():
        je = JournalEntry.objects.select_for_update().get(pk=je.pk)
        lines = list(je.lines.order_by("id"))
        debit_lines = [line for line in lines if line.debit_amount > 0]
        credit_lines = [line for line in lines if line.credit_amount > 0]
        if len(debit_lines) != 1 or len(credit_lines) != 1:
            raise ValidationError(
                f"{je.entry_number} is not a two-line entry and cannot be rewritten"
            )

        debit_lines[0].debit_amount = amount
        credit_lines[0].credit_amount = amount
        for line in lines:
            line.description = description or line.description
            line.save()

        je.total_debit = je.total_credit = amount
        je.description = description or je.description
        # Adopt heuristically matched entries
        je.source_type = transaction_type
        je.source_invoice = je.source_invoice or invoice
        je.source_payment = je.source_payment or payment
        je.save(update_fields=[
            "total_debit", "total_credit", "description",
            "source_type", "source_invoice", "source_payment",
        ])

    logger.info("Updated %s %s to %s", je.entry_number, transaction_type, amount)
    return je


def remove_journal_entry_for_transaction(transaction_type, reference=None, invoice=None, payment=None):
    """
    Delete the entry generated for a ledger row that no longer exists
    (or whose amount dropped to zero). Returns the removed entry number,
    or None when there was nothing to remove.
    """
    je = find_journal_entry_for_transaction(
        transaction_type, reference=reference, invoice=invoice, payment=payment
    )
    if je is None:
        logger.warning(
            "No journal entry to remove for %s (ref=%s, invoice=%s)", transaction_type, reference, invoice
        )
        return None

    number = je.entry_number
    with transaction.atomic():
        # lines go with the header
        JournalEntry.objects.filter(pk=je.pk).delete()
    logger.info("Removed %s %s (ref=%s)", number, transaction_type, reference)
    return number


def sync_invoice_entries(kind, invoice_number, moved, date=None, description=None):
    """
    Bring the entries of an invoice's ledger rows in line after the rows moved.

    moved maps a row reference to (old amount, new amount): the invoice
    number itself for the invoice's own DEBIT row, CREDIT-<invoice> for
    credit applied to it. A row that appeared gets a new entry, one that
    dropped to zero loses its entry, the rest are rewritten in place.
    """
    side = kind.upper()
    for reference, (old, new) in moved.items():
        applied = reference != invoice_number
        transaction_type = f"{side}_CREDIT_APPLIED" if applied else f"{side}_DEBIT"
        if applied:
            text = f"{kind.capitalize()} credit applied for invoice {invoice_number}"
        else:
            text = description or f"{kind.capitalize()} invoice {invoice_number}"

        if new == 0:
            remove_journal_entry_for_transaction(transaction_type, reference=reference, invoice=invoice_number)
        elif old == 0:
            post_journal_entry(transaction_type, new, text, reference=reference, invoice=invoice_number, date=date)
        else:
            update_journal_entry_for_transaction(
                transaction_type, new, text, reference=reference, invoice=invoice_number, date=date
            )


def create_manual_journal_entry(date, description, reference, lines):
    """
    Create a draft multi-line entry.

    lines: iterable of dicts with account (id) or account_code,
    debit_amount, credit_amount and optional description/reference.
    """
    lines = list(lines or [])
    if not date or not description or len(lines) < 2:
        raise ValidationError("Date, description, and at least 2 lines are required")

    prepared = []
    total_debit = total_credit = Decimal("0.00")
    for line in lines:
        debit = Decimal(str(line.get("debit_amount") or 0)).quantize(Decimal("0.01"))
        credit = Decimal(str(line.get("credit_amount") or 0)).quantize(Decimal("0.01"))
        if debit < 0 or credit < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if debit == 0 and credit == 0:
            raise ValidationError("Each line must have either debit or credit amount")
        if debit > 0 and credit > 0:
            raise ValidationError("Each line cannot have both debit and credit amounts")

        lookup = (
            {"pk": line["account"]} if line.get("account")
            else {"code": line.get("account_code")} if line.get("account_code")
            else None
        )
        if lookup is None:
            raise ValidationError("Each line must have an account")
        account = ChartOfAccount.objects.filter(**lookup).first()
        if account is None:
            raise NotFoundError(f"Account {next(iter(lookup.values()))} not found")

        total_debit += debit
        total_credit += credit
        prepared.append((account, debit, credit, line))

    if total_debit != total_credit:
        raise UnbalancedJournalError(
            f"Total debits must equal total credits: debits={total_debit}, credits={total_credit}"
        )

    with transaction.atomic():
        je = save_numbered(
            JournalEntry(
                date=date,
                description=description,
                reference=reference,
                total_debit=total_debit,
                total_credit=total_credit,
            ),
            _assign_entry_number,
        )
        for account, debit, credit, line in prepared:
            JournalEntryLine.objects.create(
                journal=je,
                account=account,
                debit_amount=debit,
                credit_amount=credit,
                description=line.get("description") or "",
                reference=line.get("reference"),
            )

    logger.info("Created manual journal entry %s (%s)", je.entry_number, total_debit)
    return je


def post_manual_entry(entry_id):
    """Validate and post a draft entry."""
    try:
        je = JournalEntry.objects.get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        raise NotFoundError(f"Journal entry {entry_id} not found")
    je.post()
    logger.info("Posted manual journal entry %s", je.entry_number)
    return je
