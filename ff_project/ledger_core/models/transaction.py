from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ..managers import TransactionManager
from .customer import Customer
from .payment import Payment
from .vendor import Vendor

TRANSACTION_TYPES = [
    ("DEBIT", "Debit"),
    ("CREDIT", "Credit"),
]

# Reference prefixes that carry meaning for balance ordering
STARTING_BALANCE_PREFIX = "STARTING-BALANCE"
CREDIT_NOTE_PREFIX = "#CREDIT"
DEBIT_NOTE_PREFIX = "#DEBIT"
APPLIED_CREDIT_PREFIX = "CREDIT-"


# ---------- Party ledger rows ----------
class PartyTransaction(models.Model):
    """
    One DEBIT or CREDIT against a customer or vendor.
    previous_balance / new_balance are written at insertion time
    and rewritten by the reconciler in voucher-date order.
    """

    # +1 when a CREDIT increases the party balance, -1 when it decreases it
    CREDIT_SIGN = 1

    type = models.CharField(max_length=6, choices=TRANSACTION_TYPES)
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    description = models.TextField(blank=True, default="")
    # Free text that may encode meaning (see *_PREFIX constants)
    reference = models.CharField(max_length=100, null=True, blank=True)
    # Invoice number this row belongs to, if any
    invoice = models.CharField(max_length=64, null=True, blank=True)
    # Cash payment that produced this row; edits and deletes follow it
    payment = models.ForeignKey(
        Payment, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    previous_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    new_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Not auto_now_add: starting balances are backdated
    created_at = models.DateTimeField(default=timezone.now)

    objects = TransactionManager()

    class Meta:
        abstract = True
        ordering = ("created_at", "id")

    def __str__(self):
        return f"{self.type} {self.amount} ({self.reference or '-'})"

    @property
    def is_starting_balance(self):
        return bool(self.reference) and self.reference.startswith(STARTING_BALANCE_PREFIX)

    def effect(self, amount=None):
        """Signed change this row applies to the party balance."""
        amount = self.amount if amount is None else amount
        sign = self.CREDIT_SIGN if self.type == "CREDIT" else -self.CREDIT_SIGN
        return sign * amount

    def clean(self):
        if self.amount is not None and self.amount < 0:
            raise ValidationError("Transaction amount must be >= 0")
        if self.type not in dict(TRANSACTION_TYPES):
            raise ValidationError("Transaction type must be DEBIT or CREDIT")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class CustomerTransaction(PartyTransaction):
    # customer: CREDIT adds, DEBIT subtracts
    CREDIT_SIGN = 1

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="transactions"
    )

    class Meta(PartyTransaction.Meta):
        indexes = [
            models.Index(fields=["customer", "created_at"]),
            models.Index(fields=["reference"]),
            models.Index(fields=["invoice"]),
        ]


class VendorTransaction(PartyTransaction):
    # vendor: DEBIT adds (we owe more), CREDIT subtracts
    CREDIT_SIGN = -1

    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="transactions"
    )

    class Meta(PartyTransaction.Meta):
        indexes = [
            models.Index(fields=["vendor", "created_at"]),
            models.Index(fields=["reference"]),
            models.Index(fields=["invoice"]),
        ]
