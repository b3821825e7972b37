import datetime
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError
from django.test import TestCase

from ledger_core.exceptions import NotFoundError
from ledger_core.models import (
    AuditLog,
    ChartOfAccount,
    Customer,
    CustomerTransaction,
    Invoice,
    JournalEntry,
    Payment,
    Shipment,
    Vendor,
    VendorTransaction,
)
from ledger_core.services.journal import seed_chart_of_accounts
from ledger_core.services.recorder import record_transaction
from ledger_core.services.shipments import create_shipment, update_invoice, update_shipment

SHIPPED = datetime.datetime(2025, 6, 2, 10, 0, tzinfo=datetime.timezone.utc)


class ShipmentTestMixin:

    def setUp(self):
        seed_chart_of_accounts()
        self.customer = Customer.objects.create(company_name="Acme Traders")
        self.vendor = Vendor.objects.create(company_name="SkyLine Cargo")

    def shipment_data(self, **overrides):
        data = {
            "customer": self.customer.pk,
            "vendor": self.vendor.pk,
            "tracking_id": "TRK-1001",
            "shipment_date": SHIPPED,
            "destination": "Dubai",
            "weight": "2.50",
            "price": "1000",
            "fuel_surcharge": "50",
            "discount": "5",
            "profit_percentage": "10",
        }
        data.update(overrides)
        return data

    def balance(self, party):
        party.refresh_from_db()
        return party.current_balance


class CreateShipmentTests(ShipmentTestMixin, TestCase):

    def test_creates_shipment_invoices_and_ledger(self):
        result = create_shipment(self.shipment_data())
        shipment = result.shipment

        self.assertEqual(result.outcome.status, "committed")
        self.assertEqual(shipment.invoice_number, "INV-000001")
        self.assertEqual(shipment.vendor_invoice_number, "VINV-000001")
        self.assertEqual(shipment.awb_number, "TRK-1001")
        self.assertEqual(shipment.customer_total_cost, Decimal("1005"))
        self.assertEqual(shipment.vendor_total_cost, Decimal("727"))
        self.assertEqual(shipment.invoice_status, "Unpaid")

        customer_invoice = Invoice.objects.get(invoice_number="INV-000001")
        self.assertEqual(customer_invoice.total_amount, Decimal("1005.00"))
        self.assertEqual(customer_invoice.status, "Pending")
        self.assertEqual(customer_invoice.line_items[0]["value"], 909)
        vendor_invoice = Invoice.objects.get(invoice_number="VINV-000001")
        self.assertEqual(vendor_invoice.vendor_id, self.vendor.pk)
        self.assertEqual(vendor_invoice.total_amount, Decimal("727.00"))

        self.assertEqual(self.balance(self.customer), Decimal("-1005.00"))
        self.assertEqual(self.balance(self.vendor), Decimal("727.00"))
        row = CustomerTransaction.objects.get(customer=self.customer)
        self.assertEqual((row.type, row.reference, row.invoice), ("DEBIT", "INV-000001", "INV-000001"))
        self.assertEqual(row.created_at, SHIPPED)

        self.assertEqual(
            set(JournalEntry.objects.values_list("source_type", flat=True)),
            {"CUSTOMER_DEBIT", "VENDOR_DEBIT"},
        )
        self.assertTrue(AuditLog.objects.filter(action="create", object_type="Shipment").exists())

    def test_invoice_numbers_continue(self):
        create_shipment(self.shipment_data())
        second = create_shipment(self.shipment_data(tracking_id="TRK-1002"))
        self.assertEqual(second.shipment.invoice_number, "INV-000002")
        self.assertEqual(second.vendor_invoice.invoice_number, "VINV-000002")

    """ Two bookings that read the same newest number """
    def test_invoice_number_collision_is_renumbered(self):
        create_shipment(self.shipment_data())
        with mock.patch(
            "ledger_core.services.shipments.next_invoice_number",
            side_effect=["INV-000001", "INV-000002"],
        ):
            second = create_shipment(self.shipment_data(tracking_id="TRK-1002"))

        self.assertEqual(second.shipment.invoice_number, "INV-000002")
        self.assertEqual(second.shipment.vendor_invoice_number, "VINV-000002")
        self.assertEqual(second.outcome.status, "committed")

    def test_invoice_number_collision_gives_up(self):
        create_shipment(self.shipment_data())
        with mock.patch(
            "ledger_core.services.shipments.next_invoice_number", return_value="INV-000001"
        ):
            with self.assertRaises(IntegrityError):
                create_shipment(self.shipment_data(tracking_id="TRK-1002"))
        self.assertEqual(Shipment.objects.count(), 1)

    """ Held credit settles part of the new invoice """
    def test_customer_credit_partially_applied(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 300, "Advance")
        result = create_shipment(self.shipment_data())

        rows = CustomerTransaction.objects.filter(customer=self.customer, type="DEBIT")
        self.assertEqual(
            sorted((r.reference, r.amount) for r in rows),
            [("CREDIT-INV-000001", Decimal("300.00")), ("INV-000001", Decimal("705.00"))],
        )
        self.assertEqual(self.balance(self.customer), Decimal("-705.00"))
        self.assertEqual(result.customer_invoice.status, "Partial")
        self.assertEqual(result.shipment.invoice_status, "Partial")

        applied = Payment.objects.get(category="Balance Applied")
        self.assertEqual(applied.amount, Decimal("300.00"))
        self.assertEqual(applied.date, SHIPPED)
        self.assertEqual(applied.invoice, "INV-000001")

    def test_customer_credit_covers_whole_invoice(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 2000, "Advance")
        result = create_shipment(self.shipment_data())

        self.assertFalse(CustomerTransaction.objects.filter(reference="INV-000001").exists())
        self.assertEqual(self.balance(self.customer), Decimal("995.00"))
        self.assertEqual(result.customer_invoice.status, "Paid")
        self.assertEqual(result.shipment.invoice_status, "Paid")
        self.assertFalse(JournalEntry.objects.filter(source_type="CUSTOMER_DEBIT").exists())

        # applied credit is receivable against revenue, no second cash debit
        entry = JournalEntry.objects.get(source_type="CUSTOMER_CREDIT_APPLIED")
        self.assertEqual(entry.total_debit, Decimal("1005.00"))
        self.assertEqual(
            sorted(entry.lines.values_list("account__code", flat=True)), ["1102", "5102"]
        )
        self.assertFalse(JournalEntry.objects.filter(source_type="CUSTOMER_CREDIT").exists())

    def test_vendor_owing_us_is_applied(self):
        record_transaction("vendor", self.vendor.pk, "CREDIT", 100, "Prepaid")
        result = create_shipment(self.shipment_data())

        self.assertEqual(result.vendor_invoice.status, "Partial")
        self.assertEqual(self.balance(self.vendor), Decimal("627.00"))
        applied = Payment.objects.get(category="Balance Applied", to_vendor=self.vendor)
        self.assertEqual(applied.transaction_type, "EXPENSE")

    """ A failed journal post is reported, the rest is kept """
    def test_failed_journal_step_reported_on_outcome(self):
        ChartOfAccount.objects.filter(code="4305").delete()
        result = create_shipment(self.shipment_data())

        self.assertEqual(result.outcome.status, "partial_failure")
        self.assertEqual([step for step, _ in result.outcome.failures], ["vendor_journal"])
        self.assertIsNotNone(result.shipment.pk)
        self.assertEqual(self.balance(self.vendor), Decimal("727.00"))
        self.assertFalse(JournalEntry.objects.filter(source_type="VENDOR_DEBIT").exists())
        self.assertTrue(JournalEntry.objects.filter(source_type="CUSTOMER_DEBIT").exists())

    """ Failure tests """
    def test_missing_party_rejected(self):
        data = self.shipment_data()
        del data["vendor"]
        with self.assertRaises(ValidationError):
            create_shipment(data)

    def test_unknown_party(self):
        with self.assertRaises(NotFoundError):
            create_shipment(self.shipment_data(customer=99999))

    def test_missing_tracking_id(self):
        with self.assertRaises(ValidationError):
            create_shipment(self.shipment_data(tracking_id=""))

    def test_duplicate_tracking_id(self):
        create_shipment(self.shipment_data())
        with self.assertRaises(ValidationError):
            create_shipment(self.shipment_data())
        self.assertEqual(Invoice.objects.count(), 2)


class UpdateShipmentTests(ShipmentTestMixin, TestCase):

    def test_price_change_adjusts_rows_in_place(self):
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"price": "1100"})

        self.assertEqual(result.outcome.status, "committed")
        self.assertEqual(result.shipment.customer_total_cost, Decimal("1100"))
        self.assertEqual(result.shipment.vendor_total_cost, Decimal("800"))
        self.assertEqual(result.customer_invoice.total_amount, Decimal("1100"))
        self.assertEqual(result.vendor_invoice.total_amount, Decimal("800"))

        self.assertEqual(CustomerTransaction.objects.count(), 1)
        self.assertEqual(VendorTransaction.objects.get().amount, Decimal("800.00"))
        self.assertEqual(self.balance(self.customer), Decimal("-1100.00"))
        self.assertEqual(self.balance(self.vendor), Decimal("800.00"))

        entry = JournalEntry.objects.get(source_type="CUSTOMER_DEBIT")
        self.assertEqual(entry.total_debit, Decimal("1100.00"))
        self.assertEqual(JournalEntry.objects.count(), 2)

    def test_detail_change_leaves_ledger_alone(self):
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"destination": "Riyadh"})

        self.assertEqual(result.customer_invoice.destination, "Riyadh")
        self.assertEqual(self.balance(self.customer), Decimal("-1005.00"))
        self.assertEqual(JournalEntry.objects.count(), 2)

    """ Invoice settled from credit at booking has no DEBIT row to adjust """
    def test_increase_on_credit_settled_invoice(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 2000, "Advance")
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"price": "1100"})

        row = CustomerTransaction.objects.get(reference="INV-000001")
        self.assertEqual(row.amount, Decimal("95.00"))
        self.assertEqual(self.balance(self.customer), Decimal("900.00"))
        self.assertEqual(result.customer_invoice.status, "Partial")
        entry = JournalEntry.objects.get(source_type="CUSTOMER_DEBIT")
        self.assertEqual(entry.total_debit, Decimal("95.00"))

    """ A decrease gives back credit applied at booking """
    def test_decrease_on_credit_settled_invoice(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 2000, "Advance")
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"price": "900"})

        self.assertEqual(result.shipment.customer_total_cost, Decimal("909"))
        applied = CustomerTransaction.objects.get(reference="CREDIT-INV-000001")
        self.assertEqual(applied.amount, Decimal("909.00"))
        self.assertEqual(self.balance(self.customer), Decimal("1091.00"))
        self.assertEqual(
            Payment.objects.get(category="Balance Applied", invoice="INV-000001").amount,
            Decimal("909.00"),
        )
        self.assertEqual(result.customer_invoice.status, "Paid")
        entry = JournalEntry.objects.get(source_type="CUSTOMER_CREDIT_APPLIED")
        self.assertEqual(entry.total_debit, Decimal("909.00"))

    def test_decrease_down_to_applied_credit_clears_debit_row(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 300, "Advance")
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"price": "300", "fuel_surcharge": "0", "discount": "0"})

        self.assertEqual(result.outcome.status, "committed")
        self.assertEqual(result.shipment.customer_total_cost, Decimal("300"))
        self.assertFalse(CustomerTransaction.objects.filter(reference="INV-000001").exists())
        self.assertEqual(CustomerTransaction.objects.get(reference="CREDIT-INV-000001").amount, Decimal("300.00"))
        self.assertEqual(self.balance(self.customer), Decimal("0.00"))
        self.assertEqual(result.customer_invoice.status, "Paid")
        self.assertFalse(JournalEntry.objects.filter(source_type="CUSTOMER_DEBIT").exists())

    def test_decrease_past_debit_row_releases_credit(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 300, "Advance")
        shipment = create_shipment(self.shipment_data()).shipment
        result = update_shipment(shipment.pk, {"price": "200", "fuel_surcharge": "0", "discount": "0"})

        self.assertEqual(result.outcome.status, "committed")
        self.assertFalse(CustomerTransaction.objects.filter(reference="INV-000001").exists())
        self.assertEqual(CustomerTransaction.objects.get(reference="CREDIT-INV-000001").amount, Decimal("200.00"))
        # 100 of the advance is held on account again
        self.assertEqual(self.balance(self.customer), Decimal("100.00"))
        self.assertEqual(Payment.objects.get(category="Balance Applied").amount, Decimal("200.00"))
        self.assertEqual(result.customer_invoice.status, "Paid")
        self.assertEqual(
            JournalEntry.objects.get(source_type="CUSTOMER_CREDIT_APPLIED").total_debit, Decimal("200.00")
        )
        self.assertFalse(JournalEntry.objects.filter(source_type="CUSTOMER_DEBIT").exists())

    """ A journal failure keeps the balance adjustment """
    def test_failed_journal_step_keeps_ledger_change(self):
        shipment = create_shipment(self.shipment_data()).shipment
        with mock.patch(
            "ledger_core.services.journal.update_journal_entry_for_transaction",
            side_effect=DatabaseError("journal unavailable"),
        ):
            result = update_shipment(shipment.pk, {"price": "1100"})

        self.assertEqual(
            [step for step, _ in result.outcome.failures], ["customer_journal", "vendor_journal"]
        )
        self.assertEqual(self.balance(self.customer), Decimal("-1100.00"))
        self.assertEqual(self.balance(self.vendor), Decimal("800.00"))
        self.assertEqual(CustomerTransaction.objects.get().amount, Decimal("1100.00"))
        self.assertEqual(
            JournalEntry.objects.get(source_type="CUSTOMER_DEBIT").total_debit, Decimal("1005.00")
        )
        self.assertEqual(result.customer_invoice.total_amount, Decimal("1100.00"))

    """ Failure tests """
    def test_unknown_field_rejected(self):
        shipment = create_shipment(self.shipment_data()).shipment
        with self.assertRaises(ValidationError):
            update_shipment(shipment.pk, {"customer_total_cost": "1"})

    def test_missing_shipment(self):
        with self.assertRaises(NotFoundError):
            update_shipment(31337, {"destination": "Nowhere"})


class UpdateInvoiceTests(ShipmentTestMixin, TestCase):

    def test_total_change_moves_ledger_and_shipment(self):
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        result = update_invoice(invoice.pk, {"total_amount": "1200", "disclaimer": "Net 30"})

        self.assertEqual(result.outcome.status, "committed")
        self.assertEqual(result.invoice.total_amount, Decimal("1200"))
        self.assertEqual(result.invoice.disclaimer, "Net 30")
        self.assertEqual(CustomerTransaction.objects.get().amount, Decimal("1200.00"))
        self.assertEqual(self.balance(self.customer), Decimal("-1200.00"))
        self.assertEqual(
            JournalEntry.objects.get(source_type="CUSTOMER_DEBIT").total_debit, Decimal("1200.00")
        )
        shipment = Shipment.objects.get()
        self.assertEqual(shipment.customer_total_cost, Decimal("1200.00"))
        # the vendor side is untouched
        self.assertEqual(self.balance(self.vendor), Decimal("727.00"))

    def test_vendor_invoice_decrease(self):
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="VINV-000001")
        update_invoice(invoice.pk, {"total_amount": "700"})

        self.assertEqual(VendorTransaction.objects.get().amount, Decimal("700.00"))
        self.assertEqual(self.balance(self.vendor), Decimal("700.00"))
        self.assertEqual(Shipment.objects.get().vendor_total_cost, Decimal("700.00"))
        self.assertEqual(
            JournalEntry.objects.get(source_type="VENDOR_DEBIT").total_credit, Decimal("700.00")
        )

    def test_status_follows_new_total(self):
        record_transaction("customer", self.customer.pk, "CREDIT", 1005, "Advance")
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        self.assertEqual(invoice.status, "Paid")

        result = update_invoice(invoice.pk, {"total_amount": "1105"})
        self.assertEqual(result.invoice.status, "Partial")
        self.assertEqual(Shipment.objects.get().invoice_status, "Partial")
        self.assertEqual(self.balance(self.customer), Decimal("-100.00"))

    def test_line_items_only(self):
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        items = [{"description": "Express", "value": 909}]
        result = update_invoice(invoice.pk, {"line_items": items})

        self.assertEqual(result.invoice.line_items, items)
        self.assertEqual(self.balance(self.customer), Decimal("-1005.00"))
        self.assertEqual(JournalEntry.objects.count(), 2)

    """ Failure tests """
    def test_unknown_field_rejected(self):
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        with self.assertRaises(ValidationError):
            update_invoice(invoice.pk, {"status": "Paid"})

    def test_negative_total_rejected(self):
        create_shipment(self.shipment_data())
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        with self.assertRaises(ValidationError):
            update_invoice(invoice.pk, {"total_amount": "-5"})
        self.assertEqual(self.balance(self.customer), Decimal("-1005.00"))

    def test_missing_invoice(self):
        with self.assertRaises(NotFoundError):
            update_invoice(4242, {"disclaimer": "x"})
