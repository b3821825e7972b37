from django.core.exceptions import ValidationError
from django.db import models

# Choice Lists
ACCOUNT_CATEGORIES = [
    # Used to classify general ledger accounts for reporting
    ("Asset", "Asset"),
    ("Liability", "Liability"),
    ("Equity", "Equity"),
    ("Expense", "Expense"),
    ("Revenue", "Revenue"),
]


class ChartOfAccount(models.Model):
    """
    Ledger account in the Chart of Accounts.
    - code is unique across the chart (e.g. "1102")
    - category determines reporting: BS vs P&L
    - debit_rule / credit_rule document how the account moves
    """

    code = models.CharField(max_length=32, unique=True)
    # Human-readable name → "Cash", "Accounts Payable"
    account_name = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=ACCOUNT_CATEGORIES)
    # Sub-classification, e.g. "Current Asset", "Direct Costs"
    type = models.CharField(max_length=50)
    debit_rule = models.CharField(max_length=20, blank=True, default="")
    credit_rule = models.CharField(max_length=20, blank=True, default="")
    description = models.TextField(null=True, blank=True)

    # “soft deactivate” accounts without deleting history
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("category", "code")
        indexes = [
            models.Index(fields=["category", "code"]),
        ]

    def __str__(self):
        return f"{self.code} – {self.account_name}"

    def save(self, *args, **kwargs):
        """Can’t disable accounts used in journal lines"""
        if not self.pk:
            return super().save(*args, **kwargs)
        old = ChartOfAccount.objects.filter(pk=self.pk).first()

        # If account was active before, but now being set to inactive
        if old and old.is_active and not self.is_active:
            from .journal import JournalEntryLine

            if JournalEntryLine.objects.filter(account=self).exists():
                raise ValidationError(
                    "Cannot disable an account that is used in journal lines."
                )
        return super().save(*args, **kwargs)
