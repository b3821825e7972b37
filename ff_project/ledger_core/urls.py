from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    path("customers/<int:customer_id>/transactions/", views.customer_transactions_view,
         name="customer-transactions"),
    path("vendors/<int:vendor_id>/transactions/", views.vendor_transactions_view,
         name="vendor-transactions"),
    path("shipments/", views.create_shipment_view, name="shipment-create"),
    path("shipments/<int:shipment_id>/", views.update_shipment_view, name="shipment-update"),
    path("payments/process/", views.process_payment_view, name="payment-process"),
    path("payments/allocate/", views.allocate_payment_view, name="payment-allocate"),
    path("payments/<int:payment_id>/", views.payment_view, name="payment-detail"),
    path("invoices/<int:invoice_id>/", views.update_invoice_view, name="invoice-update"),
    path("journal-entries/", views.create_journal_entry_view, name="journal-entry-create"),
    path("journal-entries/<int:entry_id>/post/", views.post_journal_entry_view,
         name="journal-entry-post"),
]
