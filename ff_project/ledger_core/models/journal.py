from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..exceptions import UnbalancedJournalError
from ..managers import JournalEntryManager
from .account import ChartOfAccount
from .payment import Payment


# ---------- Journal (Header) & JournalEntryLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Human-readable sequential number, "JE-0001"
    entry_number = models.CharField(max_length=32, unique=True)
    date = models.DateTimeField(default=timezone.now)
    description = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=100, null=True, blank=True)

    # Header totals, written together with the lines
    total_debit = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    is_posted = models.BooleanField(default=False)
    posted_at = models.DateTimeField(null=True, blank=True)

    # Explicit link to the ledger row that produced this entry
    # (e.g. source_type="CUSTOMER_DEBIT", source_invoice="INV-000012")
    source_type = models.CharField(max_length=32, null=True, blank=True)
    source_invoice = models.CharField(max_length=64, null=True, blank=True)
    source_payment = models.ForeignKey(
        Payment,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="journal_entries",
    )

    objects = JournalEntryManager()

    class Meta:
        verbose_name_plural = "journal entries"
        indexes = [
            models.Index(fields=["date"]),
            models.Index(fields=["reference"]),
            models.Index(fields=["source_type", "source_invoice"]),
        ]

    def __str__(self):
        state = "posted" if self.is_posted else "draft"
        return f"{self.entry_number} {self.date:%Y-%m-%d} [{state}]"

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        debit, credit = self.compute_totals()
        return debit == credit and debit == self.total_debit and credit == self.total_credit

    @transaction.atomic
    def post(self):
        """Validate and mark a draft entry as posted."""
        # Lock row to prevent concurrent modifications
        je = JournalEntry.objects.select_for_update().get(pk=self.pk)
        if je.is_posted:
            raise ValidationError("Journal entry is already posted")

        if je.lines.count() < 2:
            raise ValidationError("JournalEntry must have at least two lines.")

        td, tc = je.compute_totals()
        if td != tc:
            raise UnbalancedJournalError(
                f"Journal not balanced: debits={td}, credits={tc}"
            )

        je.is_posted = True
        je.posted_at = timezone.now()
        je.save(update_fields=["is_posted", "posted_at"])
        self.is_posted, self.posted_at = je.is_posted, je.posted_at
        return je

    def clean(self):
        if self.total_debit != self.total_credit:
            raise UnbalancedJournalError(
                f"Journal not balanced: debits={self.total_debit}, credits={self.total_credit}"
            )


class JournalEntryLine(models.Model):  # Stores Lines ( credits / debits )
    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    # can’t delete account if lines exist → PROTECT
    account = models.ForeignKey(ChartOfAccount, on_delete=models.PROTECT)

    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    description = models.CharField(max_length=400, blank=True, default="")
    reference = models.CharField(max_length=100, null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["account"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="jel_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return (
            f"{self.journal_id} | {self.account.code} {self.account.account_name} | "
            f"D:{self.debit_amount} C:{self.credit_amount}"
        )

    def clean(self):
        # Ensure no negative values sneak in
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")

        # exactly one side carries the amount
        if self.debit_amount > 0 and self.credit_amount > 0:
            raise ValidationError(
                "JournalEntryLine should not have both debit and credit > 0"
            )
        if self.debit_amount == 0 and self.credit_amount == 0:
            raise ValidationError(
                "JournalEntryLine requires a non-0 amount on either debit or credit"
            )

    def delete(self, *args, **kwargs):
        # Prevent deletion if parent journal is posted
        if JournalEntry.objects.filter(pk=self.journal_id, is_posted=True).exists():
            raise ValidationError(
                "Cannot delete JournalEntryLine: parent JournalEntry is posted."
            )
        return super().delete(*args, **kwargs)

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
