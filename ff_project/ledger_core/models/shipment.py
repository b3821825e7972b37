from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .customer import Customer
from .vendor import Vendor

INVOICE_STATUS_CHOICES = [
    ("Unpaid", "Unpaid"),
    ("Partial", "Partial"),
    ("Paid", "Paid"),
]


def _money():
    return models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))


class Shipment(models.Model):
    """
    A booked consignment. Pricing inputs are stored as entered;
    the computed outputs are written by the shipment service.
    """

    tracking_id = models.CharField(max_length=64, unique=True)
    awb_number = models.CharField(max_length=64, unique=True)
    # Customer-side and vendor-side invoice numbers
    invoice_number = models.CharField(max_length=64, unique=True, null=True, blank=True)
    vendor_invoice_number = models.CharField(max_length=64, unique=True, null=True, blank=True)
    reference_number = models.CharField(max_length=100, blank=True, default="")

    # Business date of the shipment (voucher date of its invoice DEBITs)
    shipment_date = models.DateTimeField(default=timezone.now)

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="shipments"
    )
    vendor = models.ForeignKey(
        Vendor, on_delete=models.PROTECT, related_name="shipments"
    )

    sender_name = models.CharField(max_length=200, blank=True, default="")
    recipient_name = models.CharField(max_length=200, blank=True, default="")
    destination = models.CharField(max_length=100, blank=True, default="")
    service_mode = models.CharField(max_length=50, blank=True, default="")
    package_description = models.TextField(blank=True, default="")
    weight = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    # Pricing inputs
    price = _money()  # price including profit
    fuel_surcharge = _money()
    discount = models.DecimalField(  # percentage
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    profit_percentage = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal("0.00")
    )
    vendor_price = _money()

    # Computed outputs
    original_price = _money()
    discount_amount = _money()
    customer_total_cost = _money()
    vendor_total_cost = _money()

    invoice_status = models.CharField(
        max_length=10, choices=INVOICE_STATUS_CHOICES, default="Unpaid"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["shipment_date"]),
        ]

    def __str__(self):
        return f"{self.awb_number} → {self.destination or '?'}"

    def clean(self):
        for field in ("price", "fuel_surcharge", "discount", "profit_percentage", "vendor_price"):
            value = getattr(self, field)
            if value is not None and value < 0:
                raise ValidationError(f"{field} cannot be negative")
        if self.discount is not None and self.discount > 100:
            raise ValidationError("discount is a percentage and cannot exceed 100")
