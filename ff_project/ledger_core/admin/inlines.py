from django.contrib import admin

from ..models import CustomerTransaction, JournalEntryLine, VendorTransaction

# ---------- Helpful inline admin classes ----------


class JournalEntryLineInline(admin.TabularInline):
    """Show lines on the JournalEntry page"""

    model = JournalEntryLine
    extra = 0  # don’t show “empty” rows by default
    fields = ("account", "description", "debit_amount", "credit_amount", "reference")
    ordering = ("id",)  # lines appear in creation order

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("account")

    # Once posted, lines are locked
    def get_readonly_fields(self, request, obj=None):
        if obj and obj.is_posted:
            return self.fields
        return ()

    def has_add_permission(self, request, obj=None):
        if obj and obj.is_posted:
            return False
        return super().has_add_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_posted:
            return False
        return super().has_delete_permission(request, obj)


class _TransactionInline(admin.TabularInline):
    extra = 0
    can_delete = False
    fields = (
        "created_at", "type", "amount", "reference", "invoice",
        "previous_balance", "new_balance", "description",
    )
    readonly_fields = fields
    ordering = ("created_at", "id")

    def has_add_permission(self, request, obj=None):
        return False


class CustomerTransactionInline(_TransactionInline):
    model = CustomerTransaction


class VendorTransactionInline(_TransactionInline):
    model = VendorTransaction
