from django.contrib import admin
from django.core.exceptions import PermissionDenied

"""Base admin for ledger rows: viewable, never edited through the admin."""
class ReadOnlyAdmin(admin.ModelAdmin):
    list_per_page = 50  # page size (adjust for performance)

    # make every model field readonly
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # Allow viewing the change form (read-only) by returning True here.
    # Prevent any saves by overriding save_model.
    def has_change_permission(self, request, obj=None):
        return True

    # Balances are written by the recorder and the reconciler only
    def save_model(self, request, obj, form, change):
        raise PermissionDenied("Ledger rows cannot be changed via the admin.")

    # Common useful filters if present
    def get_list_filter(self, request):
        if self.list_filter:
            return self.list_filter
        possible = {f.name for f in self.model._meta.fields}
        return tuple(c for c in ("type", "transaction_type", "category") if c in possible)

    # Useful searchable text fields if present
    def get_search_fields(self, request):
        if self.search_fields:
            return self.search_fields
        possible = {f.name for f in self.model._meta.fields}
        return tuple(c for c in ("reference", "invoice", "description") if c in possible)
