from django.conf import settings  # To access global project settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # Who did what to which document, and when
    # Nullable because some actions might not belong to a specific company
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Nullable for automated actions (Celery task, management command)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Common choices: create, consolidate, transition, apply_payment, void_payment
    action = models.CharField(max_length=50)
    object_type = models.CharField(max_length=100)  # e.g. "CommercialDocument", "Payment"
    object_id = models.CharField(max_length=100)
    # before/after details of what changed, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "user"], name="ix_audit_company_user"),
            models.Index(fields=["company", "created_at"], name="ix_audit_company_created"),
        ]

    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"

    def clean(self):
        # Ensure the user is a member of the company being logged
        if self.user and self.company and not self.user.is_superuser:
            if not self.user.company_memberships.filter(
                company=self.company, is_active=True
            ).exists():
                raise ValidationError(
                    "AuditLog.user must be a member of AuditLog.company"
                )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
