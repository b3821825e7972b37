from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ShipmentPricing:
    original_price: Decimal
    discount_amount: Decimal
    customer_total_cost: Decimal
    vendor_total_cost: Decimal


def round_amount(value):
    """Half-up to whole currency units."""
    return Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _decimal(name, value):
    try:
        value = Decimal(str(value if value not in (None, "") else 0))
    except (ArithmeticError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"{name} must be a non-negative number")
    return value


def compute_shipment_pricing(price, fuel_surcharge=0, discount=0, profit_percentage=0, vendor_price=0):
    """
    price already includes profit; the profit is stripped back out to get
    the original price the discount percentage applies to.
    e.g. price 1000, profit 10%, fuel 50, discount 5%
         → original 909, discount 45, customer total 1005
    """
    price = _decimal("price", price)
    fuel_surcharge = _decimal("fuel_surcharge", fuel_surcharge)
    discount = _decimal("discount", discount)
    profit_percentage = _decimal("profit_percentage", profit_percentage)
    vendor_price = _decimal("vendor_price", vendor_price)
    if discount > HUNDRED:
        raise ValidationError("discount is a percentage and cannot exceed 100")

    if profit_percentage > 0:
        original_price = round_amount(price / (1 + profit_percentage / HUNDRED))
    else:
        original_price = price
    discount_amount = round_amount(original_price * discount / HUNDRED)
    customer_total_cost = round_amount(price + fuel_surcharge - discount_amount)

    if vendor_price > 0:
        vendor_total_cost = round_amount(vendor_price)
    else:
        vendor_total_cost = round_amount(original_price * Decimal(str(settings.LEDGER_VENDOR_COST_RATIO)))

    return ShipmentPricing(original_price, discount_amount, customer_total_cost, vendor_total_cost)
