from django.contrib import admin

from ..models import Company, CompanyMembership, Customer, Product, StockMovement, Supplier
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `Company` model in admin with this custom config
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "currency_code", "payment_terms_days", "created_at")
    search_fields = ("name", "slug")
    ordering = ("name",)
    prepopulated_fields = {"slug": ("name",)}

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        # non-superusers only see companies they belong to
        return qs.filter(memberships__user=request.user).distinct()


@admin.register(CompanyMembership)
class CompanyMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("user__username", "user__email", "company__name")
    readonly_fields = ("created_at",)  # prevent tampering with creation date

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "user")


@admin.register(Customer)
class CustomerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "code", "name", "city", "email", "payment_terms_days")
    search_fields = ("name", "code", "email", "tax_id")


@admin.register(Supplier)
class SupplierAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "city", "email")
    search_fields = ("name", "email", "tax_id")


@admin.register(Product)
class ProductAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "reference",
        "name",
        "unit_price",
        "vat_percent",
        "fodec_applicable",
        "stock_quantity",
        "product_type",
    )
    list_filter = ("product_type", "fodec_applicable", "vat_percent")
    search_fields = ("reference", "name")
    # moved by delivery notes and purchase orders only
    readonly_fields = ("stock_quantity",)


@admin.register(StockMovement)
class StockMovementAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("id", "product", "direction", "quantity", "date", "document")
    list_filter = ("direction", "date")
    search_fields = ("product__name", "product__reference", "document__number")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("product", "document")
