from django.db import models
from ..managers import TenantManager
from .company import Company

DOCUMENT_FAMILY_CHOICES = [
    ("quote", "Quote"),
    ("delivery_note", "Delivery note"),
    ("purchase_order", "Purchase order"),
    ("invoice", "Invoice / credit note"),
]


class DocumentCounter(models.Model):
    """
    Last sequence value issued for one numbering family.

    One row per (company, family, year); year is 0 when the family is not
    year-scoped. Only services.numbering reads or writes it, always under
    select_for_update() inside the transaction that inserts the document.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    family = models.CharField(max_length=20, choices=DOCUMENT_FAMILY_CHOICES)
    year = models.PositiveIntegerField(default=0)
    current_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "family", "year"], name="uq_counter_company_family_year"
            ),
        ]

    def __str__(self):
        scope = f" {self.year}" if self.year else ""
        return f"{self.company} {self.family}{scope}: {self.current_value}"
