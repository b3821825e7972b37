from django.contrib import admin

from ..models import CreditNote, DebitNote, Invoice, Payment, Shipment
from .ReadOnly import ReadOnlyAdmin


# Register `Shipment` model
@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = (
        "awb_number",
        "tracking_id",
        "shipment_date",
        "customer",
        "vendor",
        "destination",
        "customer_total_cost",
        "vendor_total_cost",
        "invoice_status",
    )
    list_filter = ("invoice_status", "service_mode")
    search_fields = ("awb_number", "tracking_id", "invoice_number", "reference_number")
    list_select_related = ("customer", "vendor")
    # computed by the pricing service; edits go through update_shipment
    readonly_fields = (
        "invoice_number",
        "vendor_invoice_number",
        "original_price",
        "discount_amount",
        "customer_total_cost",
        "vendor_total_cost",
        "invoice_status",
    )


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(ReadOnlyAdmin):
    list_display = (
        "invoice_number",
        "invoice_date",
        "profile",
        "customer",
        "vendor",
        "total_amount",
        "status",
    )
    list_filter = ("profile", "status")
    search_fields = ("invoice_number", "tracking_number")
    list_select_related = ("customer", "vendor")


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdmin):
    list_display = (
        "id", "date", "transaction_type", "category", "amount",
        "from_customer", "to_vendor", "mode", "invoice",
    )
    list_select_related = ("from_customer", "to_vendor")


@admin.register(CreditNote)
class CreditNoteAdmin(ReadOnlyAdmin):
    list_display = ("credit_note_number", "customer", "amount", "date")
    search_fields = ("credit_note_number",)


@admin.register(DebitNote)
class DebitNoteAdmin(ReadOnlyAdmin):
    list_display = ("debit_note_number", "vendor", "amount", "date")
    search_fields = ("debit_note_number",)
