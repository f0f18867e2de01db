from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import TenantManager
from .company import Company
from .document import CommercialDocument

PAYMENT_METHOD_CHOICES = [
    ("cash", "Cash"),
    ("cheque", "Cheque"),
    ("transfer", "Bank transfer"),
    ("card", "Card"),
    ("other", "Other"),
]

PAYMENT_STATUS_CHOICES = [
    ("valid", "Valid"),  # counts towards settlement
    ("pending", "Pending"),  # recorded, not yet cleared
    ("void", "Void"),  # cancelled, restores the balance
]


class Payment(models.Model):  # Money received against one invoice
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # Payments must be removed explicitly before their invoice
    invoice = models.ForeignKey(
        CommercialDocument, on_delete=models.PROTECT, related_name="payments"
    )
    # Allow partial settlement (e.g. 100.000 paid on a 250.000 invoice)
    amount = models.DecimalField(max_digits=18, decimal_places=3)
    method = models.CharField(
        max_length=10, choices=PAYMENT_METHOD_CHOICES, default="transfer"
    )
    date = models.DateField(default=timezone.localdate)
    reference = models.CharField(max_length=100, blank=True)  # cheque no., transfer ref
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default="valid"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ("date", "id")
        indexes = [
            models.Index(fields=["company", "invoice"], name="ix_payment_company_invoice"),
            models.Index(fields=["company", "date"], name="ix_payment_company_date"),
        ]
        constraints = [
            # Ensure amount is always positive
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_positive_amount",
            ),
        ]

    def __str__(self):
        return f"Payment {self.amount} on {self.invoice} [{self.status}]"

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0"):
            raise ValidationError("Payment amount must be positive")
        if self.invoice.kind != "invoice":
            raise ValidationError("Payments can only be applied to invoices.")
        # Prevent cross-company contamination
        if self.invoice.company_id != self.company_id:
            raise ValidationError("Invoice must belong to the same company.")

    def save(self, *args, **kwargs):
        if not self.company_id and self.invoice_id:
            self.company_id = self.invoice.company_id
        if kwargs.get("update_fields") is None:
            self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
