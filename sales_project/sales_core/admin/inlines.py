from django.contrib import admin

from ..models import DocumentLine, Payment
from .mixins import TenantAdminMixin

# ---------- Inline admin classes ----------


class DocumentLineInline(TenantAdminMixin, admin.TabularInline):
    """Show DocumentLine rows on the document page"""

    model = DocumentLine
    extra = 0
    fields = (
        "product",
        "description",
        "quantity",
        "unit_price",
        "discount_percent",
        "vat_percent",
        "fodec_applicable",
        "fodec_percent",
        "amount_excl_tax",
        "fodec_amount",
        "vat_amount",
        "amount_incl_tax",
    )
    exclude = ("company",)
    # derived by the tax calculator on save
    derived_fields = ("amount_excl_tax", "fodec_amount", "vat_amount", "amount_incl_tax")
    ordering = ("id",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("product")

    def get_readonly_fields(self, request, obj=None):
        # Once the document leaves its editable status, lines are locked
        if obj is not None and not obj.lines_editable:
            return self.fields
        return self.derived_fields

    def has_add_permission(self, request, obj=None):
        if obj is not None and not obj.lines_editable:
            return False
        return super().has_add_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and not obj.lines_editable:
            return False
        return super().has_delete_permission(request, obj)


class PaymentInline(admin.TabularInline):
    """Payments of an invoice; recorded and voided through the services only"""

    model = Payment
    fk_name = "invoice"
    extra = 0
    fields = ("date", "amount", "method", "reference", "status")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False
