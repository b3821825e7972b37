from decimal import Decimal

from django.contrib import admin
from django.utils.html import format_html

from ..models import JournalEntry
from .actions import post_journal_entries
from .inlines import JournalEntryLineInline


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "date",
        "reference",
        "source_type",
        "source_invoice",
        "is_posted",
        "posted_at",
        "balanced",
    )
    list_filter = ("is_posted", "source_type", "date")
    search_fields = ("entry_number", "reference", "description", "source_invoice")
    readonly_fields = ("posted_at", "total_debit", "total_credit")
    inlines = [JournalEntryLineInline]
    actions = [post_journal_entries]

    def get_queryset(self, request):
        return super().get_queryset(request).prefetch_related("lines")

    """ Computed column for balance check """
    @admin.display(description="Debits / Credits")
    def balanced(self, obj):
        d, c = obj.compute_totals()
        return format_html(
            "<b>{}</b> / <small>{}</small>",
            d or Decimal("0.00"),
            c or Decimal("0.00"),
        )

    """ Make entries immutable once posted """
    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        if obj and obj.is_posted:
            r += ["entry_number", "date", "reference", "description",
                  "is_posted", "source_type", "source_invoice", "source_payment"]
        return r

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_posted:
            return False
        return super().has_delete_permission(request, obj)
