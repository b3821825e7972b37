from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from ledger_core.services.pricing import compute_shipment_pricing, round_amount


class ShipmentPricingTests(SimpleTestCase):

    """ Profit is stripped back out before the discount applies """
    def test_price_with_profit_discount_and_fuel(self):
        pricing = compute_shipment_pricing(
            price="1000", fuel_surcharge="50", discount="5", profit_percentage="10"
        )
        self.assertEqual(pricing.original_price, Decimal("909"))
        self.assertEqual(pricing.discount_amount, Decimal("45"))
        self.assertEqual(pricing.customer_total_cost, Decimal("1005"))
        # no vendor price → 80% of the original price
        self.assertEqual(pricing.vendor_total_cost, Decimal("727"))

    def test_without_profit_original_is_price(self):
        pricing = compute_shipment_pricing(price=500)
        self.assertEqual(pricing.original_price, Decimal("500"))
        self.assertEqual(pricing.discount_amount, Decimal("0"))
        self.assertEqual(pricing.customer_total_cost, Decimal("500"))
        self.assertEqual(pricing.vendor_total_cost, Decimal("400"))

    def test_explicit_vendor_price_is_rounded(self):
        pricing = compute_shipment_pricing(price=1000, vendor_price="600.5")
        self.assertEqual(pricing.vendor_total_cost, Decimal("601"))

    @override_settings(LEDGER_VENDOR_COST_RATIO=Decimal("0.5"))
    def test_vendor_cost_ratio_is_configurable(self):
        pricing = compute_shipment_pricing(price=1000)
        self.assertEqual(pricing.vendor_total_cost, Decimal("500"))

    def test_blank_inputs_count_as_zero(self):
        pricing = compute_shipment_pricing(price=300, fuel_surcharge="", discount=None)
        self.assertEqual(pricing.customer_total_cost, Decimal("300"))

    def test_round_half_up(self):
        self.assertEqual(round_amount(Decimal("2.5")), Decimal("3"))
        self.assertEqual(round_amount(Decimal("2.49")), Decimal("2"))

    """ Failure tests """
    def test_negative_price_rejected(self):
        with self.assertRaises(ValidationError):
            compute_shipment_pricing(price=-1)

    def test_discount_over_hundred_percent_rejected(self):
        with self.assertRaises(ValidationError):
            compute_shipment_pricing(price=100, discount=101)

    def test_non_numeric_rejected(self):
        with self.assertRaises(ValidationError):
            compute_shipment_pricing(price="abc")
