from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from ..exceptions import PersistenceError
from ..services.consolidation import consolidate_documents
from ..services.credit_notes import issue_credit_note
from ..services.lifecycle import cancel_invoice, send_document

# ---------- Admin actions ----------


@admin.action(description="Consolidate selected delivery notes into one invoice")
def consolidate_delivery_notes(modeladmin, request, queryset):
    """
    Merge the selected delivery notes (one customer) into a new invoice.
    All-or-nothing: on error nothing is created.
    """
    sources = list(queryset.order_by("date", "id"))
    try:
        result = consolidate_documents(sources, "invoice", user=request.user)
    except (ValidationError, PersistenceError) as exc:
        modeladmin.message_user(request, f"Consolidation failed: {exc}", level=messages.ERROR)
        return

    modeladmin.message_user(
        request,
        f"Created {result.document} ({result.document.total_incl_tax}) from {len(sources)} document(s).",
        level=messages.SUCCESS,
    )
    for divergence in result.divergences:
        modeladmin.message_user(
            request,
            f"Product {divergence.product_id}: {divergence.field} {divergence.found} on "
            f"{divergence.source_number} ignored, kept {divergence.kept}.",
            level=messages.WARNING,
        )


""" call send_document() so the workflow rules apply """


@admin.action(description="Send selected documents")
def send_documents(modeladmin, request, queryset):
    for doc in queryset:
        try:
            send_document(doc, user=request.user)
        except (ValidationError, PersistenceError) as e:
            modeladmin.message_user(request, f"{doc}: {e}", level=messages.ERROR)


@admin.action(description="Cancel selected invoices")
def cancel_invoices(modeladmin, request, queryset):
    for inv in queryset.filter(kind="invoice"):
        try:
            cancel_invoice(inv, user=request.user)
        except (ValidationError, PersistenceError) as e:
            modeladmin.message_user(request, f"{inv}: {e}", level=messages.ERROR)


@admin.action(description="Issue a full credit note for selected invoices")
def credit_invoices(modeladmin, request, queryset):
    for inv in queryset.filter(kind="invoice"):
        try:
            credit = issue_credit_note(inv, user=request.user)
            modeladmin.message_user(request, f"{inv}: issued {credit}")
        except (ValidationError, PersistenceError) as e:
            modeladmin.message_user(request, f"{inv}: {e}", level=messages.ERROR)
