from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import PartyManager


# ---------- Customer ----------
# Shipper who is billed for shipments (AR side)
class Customer(models.Model):
    company_name = models.CharField(max_length=200)
    person_name = models.CharField(max_length=200, blank=True, default="")
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=32, blank=True, default="")

    # Running balance, a cached projection of the transaction history.
    """ Positive = credit held on account for the customer,
        negative = customer owes us.
        Only the recorder and the reconciler write this field.
    """
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    credit_limit = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PartyManager()

    class Meta:
        indexes = [
            models.Index(fields=["company_name"]),
        ]

    def __str__(self):
        return self.company_name

    def clean(self):
        if self.credit_limit is not None and self.credit_limit < 0:
            raise ValidationError("Credit limit cannot be negative")
        return super().clean()
