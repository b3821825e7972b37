from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .customer import Customer
from .vendor import Vendor

PAYMENT_TYPES = [
    ("INCOME", "Income"),  # money (or credit) coming to us
    ("EXPENSE", "Expense"),  # money (or credit) going out
]

PARTY_TYPES = [
    ("CUSTOMER", "Customer"),
    ("VENDOR", "Vendor"),
    ("US", "Us"),
]

PAYMENT_MODES = [
    ("CASH", "Cash"),
    ("BANK", "Bank transfer"),
    ("CHEQUE", "Cheque"),
    ("CARD", "Card"),
]

# Category written when an existing credit balance settles a new invoice
BALANCE_APPLIED = "Balance Applied"


class Payment(models.Model):
    """
    Cash movement (or balance application) between us and a party.
    Also serves as voucher-date evidence for CREDIT rows linked to an invoice.
    """

    transaction_type = models.CharField(max_length=10, choices=PAYMENT_TYPES)
    category = models.CharField(max_length=50)
    date = models.DateTimeField(default=timezone.now)
    currency = models.CharField(max_length=10, default="PKR")
    amount = models.DecimalField(max_digits=18, decimal_places=2)

    from_party_type = models.CharField(max_length=10, choices=PARTY_TYPES)
    from_customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    to_party_type = models.CharField(max_length=10, choices=PARTY_TYPES)
    to_vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="payments",
    )

    mode = models.CharField(max_length=10, choices=PAYMENT_MODES, default="CASH")
    reference = models.CharField(max_length=100, null=True, blank=True)
    invoice = models.CharField(max_length=64, null=True, blank=True)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-date", "-id")
        indexes = [
            models.Index(fields=["transaction_type", "invoice"]),
            models.Index(fields=["reference"]),
        ]

    def __str__(self):
        return f"{self.transaction_type} {self.category} {self.amount}"

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0.00"):
            raise ValidationError("Payment amount must be positive")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
