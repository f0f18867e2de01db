from django.core.exceptions import ValidationError
from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from .models import CommercialDocument, DocumentLine

""" Block deletion of issued credit notes."""


@receiver(pre_delete, sender=CommercialDocument)
def prevent_delete_issued_credit_note(sender, instance, **kwargs):
    if instance.kind == "credit_note" and instance.status == "issued":
        raise ValidationError("Issued credit notes cannot be deleted.")


"""
    Recalculate document totals when a line is added/updated/removed.
    Services that bulk-insert lines set the totals themselves.
"""


@receiver((post_save, post_delete), sender=DocumentLine)
def document_line_changed(sender, instance, **kwargs):
    try:
        doc = CommercialDocument.objects.get(pk=instance.document_id)
    except CommercialDocument.DoesNotExist:
        return
    doc.recalc_totals()
    # save totals only, the header itself did not change
    doc.save(
        update_fields=[
            "total_excl_tax",
            "total_fodec",
            "total_vat",
            "total_incl_tax",
            "outstanding_amount",
            "updated_at",
        ]
    )
