from decimal import Decimal
from io import StringIO
from unittest import mock

from django.contrib import admin, messages
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import RequestFactory, TestCase
from django.utils import timezone

from ledger_core.admin import post_journal_entries, recalculate_balances
from ledger_core.models import ChartOfAccount, Customer, CustomerTransaction, JournalEntry, Vendor
from ledger_core.services.journal import DEFAULT_ACCOUNTS, create_manual_journal_entry, seed_chart_of_accounts
from ledger_core.services.recorder import record_transaction
from ledger_core.tasks import reconcile_all_balances, reconcile_party_balance


class AdminActionTests(TestCase):

    def setUp(self):
        self.request = RequestFactory().get("/admin/")
        self.customer = Customer.objects.create(company_name="Acme Traders")
        record_transaction("customer", self.customer.pk, "CREDIT", 80, "Advance")
        Customer.objects.filter(pk=self.customer.pk).update(current_balance=Decimal("5.00"))

    def test_models_registered(self):
        for model in (Customer, Vendor, CustomerTransaction, JournalEntry, ChartOfAccount):
            self.assertIn(model, admin.site._registry)

    """ Recalculate balances restores the stored projection """
    def test_recalculate_balances(self):
        modeladmin = mock.Mock(party_kind="customer")
        recalculate_balances(modeladmin, self.request, Customer.objects.all())

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal("80.00"))
        last_call = modeladmin.message_user.call_args_list[-1]
        self.assertEqual(last_call.kwargs["level"], messages.SUCCESS)

    def test_post_selected_drafts(self):
        seed_chart_of_accounts()
        je = create_manual_journal_entry(timezone.now(), "Opening cash", None, [
            {"account_code": "1101", "debit_amount": "10"},
            {"account_code": "3101", "credit_amount": "10"},
        ])
        modeladmin = mock.Mock()
        post_journal_entries(modeladmin, self.request, JournalEntry.objects.all())

        je.refresh_from_db()
        self.assertTrue(je.is_posted)
        modeladmin.message_user.assert_called_once()


class ManagementCommandTests(TestCase):

    def test_init_chart_of_accounts(self):
        out = StringIO()
        call_command("init_chart_of_accounts", stdout=out)
        self.assertIn(f"Initialized {len(DEFAULT_ACCOUNTS)} default accounts", out.getvalue())

        with self.assertRaises(CommandError):
            call_command("init_chart_of_accounts", stdout=StringIO())

    def test_reconcile_single_customer(self):
        customer = Customer.objects.create(company_name="Acme Traders")
        record_transaction("customer", customer.pk, "DEBIT", 30, "Fee")
        out = StringIO()
        call_command("reconcile_balances", "--customer", str(customer.pk), stdout=out)
        self.assertIn("balance -30.00", out.getvalue())

    def test_reconcile_unknown_vendor(self):
        with self.assertRaises(CommandError):
            call_command("reconcile_balances", "--vendor", "999", stdout=StringIO())

    def test_reconcile_everything(self):
        Customer.objects.create(company_name="A")
        Vendor.objects.create(company_name="B")
        out = StringIO()
        call_command("reconcile_balances", stdout=out)
        self.assertIn("Customers: 1, vendors: 1", out.getvalue())


class ReconcileTaskTests(TestCase):

    def setUp(self):
        self.vendor = Vendor.objects.create(company_name="SkyLine Cargo")
        record_transaction("vendor", self.vendor.pk, "DEBIT", 120, "Bill")
        Vendor.objects.filter(pk=self.vendor.pk).update(current_balance=0)

    def test_reconcile_all_balances(self):
        self.assertEqual(reconcile_all_balances(), {"customer": 0, "vendor": 1, "failed": []})
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.current_balance, Decimal("120.00"))

    def test_reconcile_party_balance(self):
        self.assertEqual(reconcile_party_balance("vendor", self.vendor.pk), "120.00")
