from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company

PRODUCT_TYPE_CHOICES = [
    ("sale", "Sale"),
    ("purchase", "Purchase"),
]


# ---------- Product catalog ----------
class Product(models.Model):  # Something a company sells or purchases

    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # Reference code (optional, unique per company when set)
    reference = models.CharField(max_length=80, null=True, blank=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    # Current list price; lines capture their own copy at creation time
    unit_price = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )

    # Main VAT rate of the product, in percent (e.g. 19, 13, 7, 0)
    vat_percent = models.DecimalField(
        max_digits=6, decimal_places=3, default=Decimal("19.000")
    )

    # FODEC levy: added to the VAT base when applicable
    fodec_applicable = models.BooleanField(default=False)
    fodec_percent = models.DecimalField(
        max_digits=6, decimal_places=3, default=Decimal("1.000")
    )

    # Current stock level, moved by delivery notes and purchase orders
    stock_quantity = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    product_type = models.CharField(
        max_length=10, choices=PRODUCT_TYPE_CHOICES, default="sale"
    )

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"], name="ix_product_company_name")]
        constraints = [
            # Ensure each reference is unique within a company
            models.UniqueConstraint(
                fields=["company", "reference"], name="uq_company_product_ref"
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0)
                & models.Q(vat_percent__gte=0)
                & models.Q(fodec_percent__gte=0),
                name="product_non_negative_rates",
            ),
        ]

    def __str__(self):
        return f"{self.reference} - {self.name}" if self.reference else self.name

    def clean(self):
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")
        if self.vat_percent is not None and self.vat_percent < 0:
            raise ValidationError("VAT percent must be >= 0")
        if self.fodec_percent is not None and self.fodec_percent < 0:
            raise ValidationError("FODEC percent must be >= 0")

    def save(self, *args, **kwargs):
        # blank reference stored as NULL so several products may omit it
        if not self.reference:
            self.reference = None
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
