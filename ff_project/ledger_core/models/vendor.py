from decimal import Decimal

from django.db import models

from ..managers import PartyManager


class Vendor(models.Model):  # Mirrors Customer but for the carriers we pay (AP)

    company_name = models.CharField(max_length=200)
    person_name = models.CharField(max_length=200, blank=True, default="")
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=32, blank=True, default="")

    # Sign is inverted relative to Customer
    """ Positive = we owe the vendor,
        negative = the vendor owes us (prepaid / credit with them). """
    current_balance = models.DecimalField(
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
