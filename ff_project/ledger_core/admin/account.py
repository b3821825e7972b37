from django.contrib import admin

from ..models import ChartOfAccount


# Register `ChartOfAccount` model
@admin.register(ChartOfAccount)
class ChartOfAccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "account_name",
        "category",
        "type",
        "debit_rule",
        "credit_rule",
        "is_active",
    )
    list_filter = ("category", "type", "is_active")
    search_fields = ("code", "account_name")
    ordering = ("code",)
