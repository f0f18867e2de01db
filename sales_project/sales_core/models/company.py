from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization issuing the documents"""
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # Amounts are kept with 3 decimals (millimes for TND)
    currency_code = models.CharField(max_length=10, default="TND")

    # Standard credit terms, used when a customer has none of their own
    payment_terms_days = models.PositiveIntegerField(default=30)

    tax_id = models.CharField(max_length=64, blank=True)  # matricule fiscal
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name


# ---------- CompanyMembership ----------
class CompanyMembership(models.Model):  # Bridge table between User and Company

    ROLE_CHOICES = [
        ("owner", "Owner"),
        ("admin", "Admin"),
        ("accountant", "Accountant"),  # can issue documents and record payments
        ("viewer", "Viewer"),  # read-only access
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="company_memberships",
    )
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="memberships"
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="viewer")

    # Suspend someone's access without deleting the record
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one membership per company
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_membership"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "user"], name="ix_membership_company_user"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def clean(self):
        if self.role not in dict(self.ROLE_CHOICES):
            raise ValidationError(f"Unknown role {self.role!r}")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
