from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .company import Company


# ---------- Customer ----------
# Represents a client who receives quotes, delivery notes and invoices
class Customer(models.Model):
    # Multi-tenant: every customer belongs to a single company.
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # Client reference/code shown on documents
    code = models.CharField(max_length=40, blank=True)
    name = models.CharField(max_length=200)

    address = models.CharField(max_length=255, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    city = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    tax_id = models.CharField(max_length=64, blank=True)  # matricule fiscal

    # Credit terms override
    payment_terms_days = models.PositiveIntegerField(null=True, blank=True)
    """ Example: If terms = 60 → invoice due 60 days after issue.
        Empty → company default. """

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "name"], name="ix_customer_company_name"),
        ]
        # Enforce uniqueness per tenant
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_customer_name"
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError("Customer name is required")
        return super().clean()

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
