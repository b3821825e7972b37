from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .customer import Customer
from .invoice import Invoice
from .vendor import Vendor


# ---------- Credit / Debit notes ----------
# The note number doubles as the ledger row reference,
# so its date drives the row's voucher date.
class CreditNote(models.Model):  # Credit issued to a customer
    credit_note_number = models.CharField(max_length=32, unique=True)  # "#CREDIT00001"
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="credit_notes"
    )
    invoice = models.ForeignKey(
        Invoice, null=True, blank=True, on_delete=models.SET_NULL
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    date = models.DateTimeField(default=timezone.now)
    description = models.TextField(blank=True, default="")
    currency = models.CharField(max_length=10, default="PKR")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.credit_note_number

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Credit note amount must be positive")


class DebitNote(models.Model):  # Debit raised against a vendor
    debit_note_number = models.CharField(max_length=32, unique=True)  # "#DEBIT00001"
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="debit_notes"
    )
    invoice = models.ForeignKey(
        Invoice, null=True, blank=True, on_delete=models.SET_NULL
    )
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    date = models.DateTimeField(default=timezone.now)
    description = models.TextField(blank=True, default="")
    currency = models.CharField(max_length=10, default="PKR")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.debit_note_number

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Debit note amount must be positive")
