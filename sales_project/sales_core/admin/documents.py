from django.contrib import admin

from ..models import CommercialDocument, DocumentCounter, Payment
from ..services.documents import due_date_for
from ..services.numbering import next_number_for_kind
from .actions import cancel_invoices, consolidate_delivery_notes, credit_invoices, send_documents
from .inlines import DocumentLineInline, PaymentInline
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `CommercialDocument` model
@admin.register(CommercialDocument)
class CommercialDocumentAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "kind",
        "number",
        "customer",
        "supplier",
        "date",
        "due_date",
        "status",
        "total_incl_tax",
        "outstanding_amount",
        "related_document",
    )
    list_filter = ("kind", "status", "date")
    search_fields = ("number", "customer__name", "supplier__name")
    actions = [consolidate_delivery_notes, send_documents, cancel_invoices, credit_invoices]
    inlines = [DocumentLineInline, PaymentInline]
    # numbering, totals and status are owned by the services
    readonly_fields = (
        "number",
        "status",
        "total_excl_tax",
        "total_fodec",
        "total_vat",
        "total_incl_tax",
        "outstanding_amount",
        "related_document",
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "customer", "supplier", "related_document")

    def get_inlines(self, request, obj):
        # payments only make sense on invoices
        if obj is None or obj.kind != "invoice":
            return [DocumentLineInline]
        return self.inlines

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return self.readonly_fields
        # kind and party are fixed after creation; credit notes are frozen
        fields = list(self.readonly_fields) + ["company", "kind", "customer", "supplier"]
        if obj.kind == "credit_note" or obj.status == "paid":
            return [f.name for f in self.model._meta.fields]
        return fields

    def save_model(self, request, obj, form, change):
        if not change:
            company = self._get_request_company(request)
            if not request.user.is_superuser and company is not None:
                obj.company = company
            if obj.kind == "invoice" and obj.due_date is None:
                obj.due_date = due_date_for(obj.date, obj.customer, obj.company)
            obj.number = next_number_for_kind(obj.company, obj.kind, on_date=obj.date)
        super().save_model(request, obj, form, change)

    def has_delete_permission(self, request, obj=None):
        if obj and (obj.kind == "credit_note" or obj.status == "paid"):
            return False  # removes “Delete” option for frozen documents
        return super().has_delete_permission(request, obj)


# Register `Payment` model
@admin.register(Payment)
class PaymentAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("id", "company", "invoice", "date", "amount", "method", "status")
    list_filter = ("status", "method", "date")
    search_fields = ("invoice__number", "reference")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "invoice")


# Register `DocumentCounter` model
@admin.register(DocumentCounter)
class DocumentCounterAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("company", "family", "year", "current_value", "updated_at")
    list_filter = ("family", "year")
