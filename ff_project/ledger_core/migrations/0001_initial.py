from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18, **kwargs)


TRANSACTION_TYPES = [("DEBIT", "Debit"), ("CREDIT", "Credit")]
PARTY_TYPES = [("CUSTOMER", "Customer"), ("VENDOR", "Vendor"), ("US", "Us")]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["object_type", "object_id"], name="ledger_core_object__97fcd2_idx"),
                    models.Index(fields=["created_at"], name="ledger_core_created_10f7d1_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChartOfAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("account_name", models.CharField(max_length=200)),
                ("category", models.CharField(choices=[
                    ("Asset", "Asset"), ("Liability", "Liability"), ("Equity", "Equity"),
                    ("Expense", "Expense"), ("Revenue", "Revenue"),
                ], max_length=20)),
                ("type", models.CharField(max_length=50)),
                ("debit_rule", models.CharField(blank=True, default="", max_length=20)),
                ("credit_rule", models.CharField(blank=True, default="", max_length=20)),
                ("description", models.TextField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("category", "code"),
                "indexes": [models.Index(fields=["category", "code"], name="ledger_core_categor_d61067_idx")],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("company_name", models.CharField(max_length=200)),
                ("person_name", models.CharField(blank=True, default="", max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("current_balance", money()),
                ("credit_limit", money()),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["company_name"], name="ledger_core_company_163b83_idx")],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("company_name", models.CharField(max_length=200)),
                ("person_name", models.CharField(blank=True, default="", max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("current_balance", money()),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [models.Index(fields=["company_name"], name="ledger_core_company_78becd_idx")],
            },
        ),
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tracking_id", models.CharField(max_length=64, unique=True)),
                ("awb_number", models.CharField(max_length=64, unique=True)),
                ("invoice_number", models.CharField(blank=True, max_length=64, null=True)),
                ("vendor_invoice_number", models.CharField(blank=True, max_length=64, null=True)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("shipment_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("sender_name", models.CharField(blank=True, default="", max_length=200)),
                ("recipient_name", models.CharField(blank=True, default="", max_length=200)),
                ("destination", models.CharField(blank=True, default="", max_length=100)),
                ("service_mode", models.CharField(blank=True, default="", max_length=50)),
                ("package_description", models.TextField(blank=True, default="")),
                ("weight", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("price", money()),
                ("fuel_surcharge", money()),
                ("discount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("profit_percentage", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=6)),
                ("vendor_price", money()),
                ("original_price", money()),
                ("discount_amount", money()),
                ("customer_total_cost", money()),
                ("vendor_total_cost", money()),
                ("invoice_status", models.CharField(choices=[
                    ("Unpaid", "Unpaid"), ("Partial", "Partial"), ("Paid", "Paid"),
                ], default="Unpaid", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="shipments", to="ledger_core.customer")),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="shipments", to="ledger_core.vendor")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["invoice_number"], name="ledger_core_invoice_6cdb0d_idx"),
                    models.Index(fields=["shipment_date"], name="ledger_core_shipmen_5a3a61_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=64, unique=True)),
                ("invoice_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("profile", models.CharField(choices=[("Customer", "Customer"), ("Vendor", "Vendor")], max_length=10)),
                ("total_amount", money()),
                ("fsc_charges", money()),
                ("discount", money()),
                ("line_items", models.JSONField(blank=True, default=list)),
                ("status", models.CharField(choices=[
                    ("Pending", "Pending"), ("Partial", "Partial"), ("Paid", "Paid"),
                ], default="Pending", max_length=10)),
                ("currency", models.CharField(default="PKR", max_length=10)),
                ("tracking_number", models.CharField(blank=True, default="", max_length=64)),
                ("destination", models.CharField(blank=True, default="", max_length=100)),
                ("weight", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("disclaimer", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.customer")),
                ("vendor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger_core.vendor")),
                ("shipment", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to="ledger_core.shipment")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["customer"], name="ledger_core_custome_161c60_idx"),
                    models.Index(fields=["vendor"], name="ledger_core_vendor__42ba4d_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(("customer__isnull", False), ("vendor__isnull", True))
                            | models.Q(("customer__isnull", True), ("vendor__isnull", False))
                        ),
                        name="invoice_exactly_one_party",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("credit_note_number", models.CharField(max_length=32, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                ("description", models.TextField(blank=True, default="")),
                ("currency", models.CharField(default="PKR", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="credit_notes", to="ledger_core.customer")),
                ("invoice", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.invoice")),
            ],
        ),
        migrations.CreateModel(
            name="DebitNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("debit_note_number", models.CharField(max_length=32, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                ("description", models.TextField(blank=True, default="")),
                ("currency", models.CharField(default="PKR", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="debit_notes", to="ledger_core.vendor")),
                ("invoice", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.invoice")),
            ],
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_type", models.CharField(choices=[("INCOME", "Income"), ("EXPENSE", "Expense")], max_length=10)),
                ("category", models.CharField(max_length=50)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                ("currency", models.CharField(default="PKR", max_length=10)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("from_party_type", models.CharField(choices=PARTY_TYPES, max_length=10)),
                ("to_party_type", models.CharField(choices=PARTY_TYPES, max_length=10)),
                ("mode", models.CharField(choices=[
                    ("CASH", "Cash"), ("BANK", "Bank transfer"), ("CHEQUE", "Cheque"), ("CARD", "Card"),
                ], default="CASH", max_length=10)),
                ("reference", models.CharField(blank=True, max_length=100, null=True)),
                ("invoice", models.CharField(blank=True, max_length=64, null=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("from_customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.customer")),
                ("to_vendor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.vendor")),
            ],
            options={
                "ordering": ("-date", "-id"),
                "indexes": [
                    models.Index(fields=["transaction_type", "invoice"], name="ledger_core_transac_ad78d9_idx"),
                    models.Index(fields=["reference"], name="ledger_core_referen_8cde88_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_number", models.CharField(max_length=32, unique=True)),
                ("date", models.DateTimeField(default=django.utils.timezone.now)),
                ("description", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, max_length=100, null=True)),
                ("total_debit", money()),
                ("total_credit", money()),
                ("is_posted", models.BooleanField(default=False)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("source_type", models.CharField(blank=True, max_length=20, null=True)),
                ("source_invoice", models.CharField(blank=True, max_length=64, null=True)),
            ],
            options={
                "verbose_name_plural": "journal entries",
                "indexes": [
                    models.Index(fields=["date"], name="ledger_core_date_74e447_idx"),
                    models.Index(fields=["reference"], name="ledger_core_referen_beffad_idx"),
                    models.Index(fields=["source_type", "source_invoice"], name="ledger_core_source__e0353a_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("debit_amount", money()),
                ("credit_amount", money()),
                ("description", models.CharField(blank=True, default="", max_length=400)),
                ("reference", models.CharField(blank=True, max_length=100, null=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to="ledger_core.chartofaccount")),
                ("journal", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.journalentry")),
            ],
            options={
                "indexes": [models.Index(fields=["account"], name="ledger_core_account_62847b_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)),
                        name="jel_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=TRANSACTION_TYPES, max_length=6)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("description", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, max_length=100, null=True)),
                ("invoice", models.CharField(blank=True, max_length=64, null=True)),
                ("previous_balance", money()),
                ("new_balance", money()),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("customer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="ledger_core.customer")),
            ],
            options={
                "ordering": ("created_at", "id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["customer", "created_at"], name="ledger_core_custome_92ed77_idx"),
                    models.Index(fields=["reference"], name="ledger_core_referen_997dab_idx"),
                    models.Index(fields=["invoice"], name="ledger_core_invoice_70a0dc_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VendorTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=TRANSACTION_TYPES, max_length=6)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("description", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, max_length=100, null=True)),
                ("invoice", models.CharField(blank=True, max_length=64, null=True)),
                ("previous_balance", money()),
                ("new_balance", money()),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("vendor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="ledger_core.vendor")),
            ],
            options={
                "ordering": ("created_at", "id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["vendor", "created_at"], name="ledger_core_vendor__2f40cd_idx"),
                    models.Index(fields=["reference"], name="ledger_core_referen_83ac6e_idx"),
                    models.Index(fields=["invoice"], name="ledger_core_invoice_984124_idx"),
                ],
            },
        ),
    ]
