import json
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse

from ledger_core.models import ChartOfAccount, Customer, Invoice, JournalEntry, Payment, Vendor
from ledger_core.services.journal import seed_chart_of_accounts


class ApiTestCase(TestCase):

    def setUp(self):
        seed_chart_of_accounts()
        self.customer = Customer.objects.create(company_name="Acme Traders")
        self.vendor = Vendor.objects.create(company_name="SkyLine Cargo")

    def post_json(self, url, data, method="post"):
        return getattr(self.client, method)(url, data=json.dumps(data), content_type="application/json")


class PartyTransactionViewTests(ApiTestCase):

    def test_record_then_list(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        response = self.post_json(url, {"type": "CREDIT", "amount": "100", "description": "Advance"})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["previous_balance"], "0.00")
        self.assertEqual(body["new_balance"], "100.00")

        self.post_json(url, {"type": "DEBIT", "amount": 40, "description": "Fee", "date": "2025-01-01"})
        response = self.client.get(url, {"sort_order": "asc"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        # backdated DEBIT comes first in voucher order
        self.assertEqual([t["type"] for t in body["transactions"]], ["DEBIT", "CREDIT"])
        self.assertEqual(body["current_balance"], "60.00")
        self.assertEqual(body["total"], 2)

    def test_vendor_list_with_search(self):
        url = reverse("ledger_core:vendor-transactions", args=[self.vendor.pk])
        self.post_json(url, {"type": "DEBIT", "amount": 70, "description": "Line haul"})
        self.post_json(url, {"type": "DEBIT", "amount": 30, "description": "Customs"})
        body = self.client.get(url, {"search": "customs"}).json()
        self.assertEqual(len(body["transactions"]), 1)
        self.assertEqual(body["current_balance"], "100.00")

    """ Error mapping """
    def test_invalid_type_is_400(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        response = self.post_json(url, {"type": "REFUND", "amount": 5})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_missing_amount_is_400(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        self.assertEqual(self.post_json(url, {"type": "CREDIT"}).status_code, 400)

    def test_bad_query_param_is_400(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        self.assertEqual(self.client.get(url, {"from_date": "yesterday"}).status_code, 400)

    def test_impossible_calendar_date_is_400(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        response = self.client.get(url, {"from_date": "2024-02-30"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        response = self.post_json(url, {"type": "CREDIT", "amount": 5, "date": "2024-02-30"})
        self.assertEqual(response.status_code, 400)

    def test_inverted_date_range_is_400(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        response = self.client.get(url, {"from_date": "2025-03-01", "to_date": "2025-02-01"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_party_is_404(self):
        url = reverse("ledger_core:customer-transactions", args=[424242])
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(self.post_json(url, {"type": "CREDIT", "amount": 1}).status_code, 404)

    def test_method_not_allowed(self):
        url = reverse("ledger_core:customer-transactions", args=[self.customer.pk])
        self.assertEqual(self.client.delete(url).status_code, 405)


class ShipmentViewTests(ApiTestCase):

    def shipment_payload(self, **overrides):
        data = {
            "customer": self.customer.pk,
            "vendor": self.vendor.pk,
            "tracking_id": "TRK-3001",
            "shipment_date": "2025-08-01T10:00:00Z",
            "price": "1000",
            "fuel_surcharge": "50",
            "discount": "5",
            "profit_percentage": "10",
        }
        data.update(overrides)
        return data

    def test_create_and_update(self):
        response = self.post_json(reverse("ledger_core:shipment-create"), self.shipment_payload())
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["shipment"]["invoice_number"], "INV-000001")
        self.assertEqual(body["customer_invoice"]["status"], "Pending")
        self.assertEqual(Decimal(body["shipment"]["customer_total_cost"]), Decimal("1005"))
        self.assertEqual(body["ledger"], {"status": "committed", "failures": []})

        url = reverse("ledger_core:shipment-update", args=[body["shipment"]["id"]])
        response = self.post_json(url, {"price": "1100"}, method="patch")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()["vendor_invoice"]["total_amount"]), Decimal("800"))

    def test_partial_failure_is_reported(self):
        ChartOfAccount.objects.filter(code="5102").delete()
        response = self.post_json(reverse("ledger_core:shipment-create"), self.shipment_payload())
        self.assertEqual(response.status_code, 201)
        ledger = response.json()["ledger"]
        self.assertEqual(ledger["status"], "partial_failure")
        self.assertEqual([f["step"] for f in ledger["failures"]], ["customer_journal"])

    def test_validation_and_not_found(self):
        response = self.post_json(reverse("ledger_core:shipment-create"), self.shipment_payload(price="-1"))
        self.assertEqual(response.status_code, 400)

        url = reverse("ledger_core:shipment-update", args=[98765])
        self.assertEqual(self.post_json(url, {"destination": "Oslo"}, method="patch").status_code, 404)

    def test_non_json_body_is_400(self):
        response = self.client.post(
            reverse("ledger_core:shipment-create"), data="not json", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)


class PaymentViewTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.post_json(reverse("ledger_core:shipment-create"), {
            "customer": self.customer.pk,
            "vendor": self.vendor.pk,
            "tracking_id": "TRK-4001",
            "price": "500",
        })

    def pay(self, amount, invoice_number="INV-000001"):
        return self.post_json(reverse("ledger_core:payment-process"), {
            "invoice_number": invoice_number,
            "amount": amount,
            "payment_type": "CUSTOMER_PAYMENT",
        })

    def test_process_payment(self):
        response = self.pay("200")
        self.assertEqual(response.status_code, 200)
        invoice = response.json()["invoice"]
        self.assertEqual(invoice["status"], "Partial")
        self.assertEqual(invoice["remaining_amount"], "300.00")

    def test_edit_then_delete_payment(self):
        payment_id = self.pay("200").json()["payment"]["id"]
        url = reverse("ledger_core:payment-detail", args=[payment_id])

        response = self.post_json(url, {"amount": "500"}, method="patch")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invoice"]["status"], "Paid")

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["invoice"]["status"], "Pending")
        self.assertFalse(Payment.objects.filter(pk=payment_id).exists())
        self.assertEqual(self.client.delete(url).status_code, 404)

    def test_allocate_excess(self):
        self.post_json(reverse("ledger_core:shipment-create"), {
            "customer": self.customer.pk,
            "vendor": self.vendor.pk,
            "tracking_id": "TRK-4002",
            "price": "300",
        })
        self.pay("600")
        url = reverse("ledger_core:payment-allocate")

        listed = self.client.get(url, {"party_type": "customer", "party_id": self.customer.pk}).json()
        self.assertEqual(
            [(i["invoice_number"], i["remaining_amount"]) for i in listed["invoices"]],
            [("INV-000002", "300.00")],
        )

        response = self.post_json(url, {"invoice_number": "INV-000001"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["allocated"], "100.00")
        self.assertEqual(body["allocations"], [{"invoice_number": "INV-000002", "amount": "100.00"}])

    def test_missing_fields_is_400(self):
        response = self.post_json(reverse("ledger_core:payment-process"), {"amount": "200"})
        self.assertEqual(response.status_code, 400)
        url = reverse("ledger_core:payment-allocate")
        self.assertEqual(self.client.get(url, {"party_type": "shipper"}).status_code, 400)
        self.assertEqual(self.post_json(url, {}).status_code, 400)


class InvoiceViewTests(ApiTestCase):

    def test_edit_invoice_total(self):
        self.post_json(reverse("ledger_core:shipment-create"), {
            "customer": self.customer.pk,
            "vendor": self.vendor.pk,
            "tracking_id": "TRK-5001",
            "price": "500",
        })
        invoice = Invoice.objects.get(invoice_number="INV-000001")
        url = reverse("ledger_core:invoice-update", args=[invoice.pk])

        response = self.post_json(url, {"total_amount": "650", "invoice_date": "2025-08-05"}, method="patch")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(Decimal(body["invoice"]["total_amount"]), Decimal("650"))
        self.assertEqual(body["ledger"]["status"], "committed")
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal("-650.00"))

    def test_bad_field_and_missing_invoice(self):
        url = reverse("ledger_core:invoice-update", args=[31337])
        self.assertEqual(self.post_json(url, {"disclaimer": "x"}, method="patch").status_code, 404)
        self.assertEqual(self.post_json(url, {"invoice_date": "2025-13-40"}, method="patch").status_code, 400)


class JournalEntryViewTests(ApiTestCase):

    def lines(self, credit="150"):
        return [
            {"account_code": "1101", "debit_amount": "150", "credit_amount": "0"},
            {"account_code": "3101", "debit_amount": "0", "credit_amount": credit},
        ]

    def test_create_then_post(self):
        response = self.post_json(reverse("ledger_core:journal-entry-create"), {
            "date": "2025-08-03",
            "description": "Owner investment",
            "reference": "CAP-1",
            "lines": self.lines(),
        })
        self.assertEqual(response.status_code, 201)
        entry = response.json()["entry"]
        self.assertFalse(entry["is_posted"])
        self.assertEqual(len(entry["lines"]), 2)

        response = self.client.post(reverse("ledger_core:journal-entry-post", args=[entry["id"]]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["entry"]["is_posted"])
        self.assertTrue(JournalEntry.objects.get(pk=entry["id"]).is_posted)

    def test_unbalanced_is_400(self):
        response = self.post_json(reverse("ledger_core:journal-entry-create"), {
            "date": "2025-08-03",
            "description": "Typo",
            "lines": self.lines(credit="149"),
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse(JournalEntry.objects.exists())

    def test_post_missing_entry_is_404(self):
        response = self.client.post(reverse("ledger_core:journal-entry-post", args=[777]))
        self.assertEqual(response.status_code, 404)
