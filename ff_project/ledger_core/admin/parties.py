from django.contrib import admin

from ..models import Customer, CustomerTransaction, Vendor, VendorTransaction
from .actions import recalculate_balances
from .inlines import CustomerTransactionInline, VendorTransactionInline
from .ReadOnly import ReadOnlyAdmin


class PartyAdmin(admin.ModelAdmin):
    """current_balance is a cached projection: shown, never edited."""

    party_kind = None
    list_display = ("id", "company_name", "person_name", "phone", "current_balance", "is_active")
    list_filter = ("is_active",)
    search_fields = ("company_name", "person_name", "email", "phone")
    readonly_fields = ("current_balance", "created_at")
    actions = [recalculate_balances]


# Register `Customer` model
@admin.register(Customer)
class CustomerAdmin(PartyAdmin):
    party_kind = "customer"
    list_display = PartyAdmin.list_display + ("credit_limit",)
    inlines = [CustomerTransactionInline]


# Register `Vendor` model
@admin.register(Vendor)
class VendorAdmin(PartyAdmin):
    party_kind = "vendor"
    inlines = [VendorTransactionInline]


@admin.register(CustomerTransaction)
class CustomerTransactionAdmin(ReadOnlyAdmin):
    list_display = (
        "id", "customer", "created_at", "type", "amount",
        "reference", "invoice", "payment", "previous_balance", "new_balance",
    )
    list_select_related = ("customer",)


@admin.register(VendorTransaction)
class VendorTransactionAdmin(ReadOnlyAdmin):
    list_display = (
        "id", "vendor", "created_at", "type", "amount",
        "reference", "invoice", "payment", "previous_balance", "new_balance",
    )
    list_select_related = ("vendor",)
