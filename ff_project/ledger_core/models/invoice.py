from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .customer import Customer
from .shipment import Shipment
from .vendor import Vendor

INV_STATUS_CHOICES = [
    ("Pending", "Pending"),
    ("Partial", "Partial"),
    ("Paid", "Paid"),
]

INV_PROFILE_CHOICES = [
    ("Customer", "Customer"),
    ("Vendor", "Vendor"),
]


class Invoice(models.Model):  # Customer invoice or vendor bill for one shipment

    invoice_number = models.CharField(max_length=64, unique=True)
    invoice_date = models.DateTimeField(default=timezone.now)
    profile = models.CharField(max_length=10, choices=INV_PROFILE_CHOICES)

    # Exactly one side is set, matching profile
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting a party who has invoices
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    shipment = models.ForeignKey(
        Shipment,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    fsc_charges = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    discount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Ordered list of {"description": str, "value": number}
    line_items = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=10, choices=INV_STATUS_CHOICES, default="Pending"
    )
    """ Workflow:
        Pending = issued, nothing settled.
        Partial = part settled by payment or applied balance.
        Paid = fully settled. """

    currency = models.CharField(max_length=10, default="PKR")
    tracking_number = models.CharField(max_length=64, blank=True, default="")
    destination = models.CharField(max_length=100, blank=True, default="")
    weight = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    disclaimer = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["customer"]),
            models.Index(fields=["vendor"]),
        ]
        constraints = [
            # exactly one party side per invoice
            models.CheckConstraint(
                condition=(
                    models.Q(customer__isnull=False, vendor__isnull=True)
                    | models.Q(customer__isnull=True, vendor__isnull=False)
                ),
                name="invoice_exactly_one_party",
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number}"

    @property
    def party(self):
        return self.customer if self.customer_id else self.vendor

    @property
    def party_kind(self):
        return "customer" if self.customer_id else "vendor"

    def clean(self):
        if bool(self.customer_id) == bool(self.vendor_id):
            raise ValidationError("Invoice must belong to exactly one customer or vendor")
        if self.profile == "Customer" and not self.customer_id:
            raise ValidationError("Customer invoices need a customer")
        if self.profile == "Vendor" and not self.vendor_id:
            raise ValidationError("Vendor invoices need a vendor")
        if self.total_amount is not None and self.total_amount < 0:
            raise ValidationError("Invoice total cannot be negative")

    def save(self, *args, **kwargs):
        self.full_clean()  # will trigger clean()
        return super().save(*args, **kwargs)
