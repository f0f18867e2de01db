from django.db import models
from django.utils import timezone
from ..managers import TenantManager
from .company import Company
from .document import CommercialDocument
from .product import Product

MOVEMENT_DIRECTION_CHOICES = [
    ("in", "Stock in"),  # purchase order received
    ("out", "Stock out"),  # delivery note delivered
]


class StockMovement(models.Model):  # Audit trail of every stock change
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )
    direction = models.CharField(max_length=3, choices=MOVEMENT_DIRECTION_CHOICES)
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    date = models.DateField(default=timezone.localdate)
    # Source document, kept as a lookup only
    document = models.ForeignKey(
        CommercialDocument,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="stock_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ("date", "id")
        indexes = [models.Index(fields=["company", "product"], name="ix_stock_company_product")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="stock_movement_positive_quantity",
            ),
        ]

    def __str__(self):
        sign = "+" if self.direction == "in" else "-"
        return f"{self.product} {sign}{self.quantity} ({self.document or 'manual'})"
