from django.urls import path

from . import views

app_name = "sales_core"

urlpatterns = [
    path("documents/", views.document_list, name="document-list"),
    path("documents/<int:pk>/", views.document_detail, name="document-detail"),
    path("documents/consolidate/", views.consolidate_view, name="document-consolidate"),
    path("documents/<int:pk>/transition/", views.transition_view, name="document-transition"),
    path("invoices/<int:pk>/cancel/", views.cancel_invoice_view, name="invoice-cancel"),
    path("invoices/<int:pk>/payments/", views.record_payment_view, name="invoice-payment"),
    path("invoices/<int:pk>/credit-notes/", views.credit_note_view, name="invoice-credit-note"),
    path("payments/<int:payment_id>/void/", views.void_payment_view, name="payment-void"),
]
