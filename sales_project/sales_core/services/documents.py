import logging
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..conf import payment_term_days
from ..exceptions import LifecycleError, PersistenceError
from ..models import CommercialDocument, DocumentLine, Payment
from ..models.document import DOCUMENT_FAMILY, INITIAL_STATUS
from .audit_helper import log_action
from .lifecycle import sync_settlement
from .numbering import next_number_for_kind
from .tax import EPSILON, to_decimal

logger = logging.getLogger(__name__)


def resolve_payment_terms(customer, company, override=None):
    """Term offset in days: explicit value, else customer, else company, else setting."""
    if override is not None:
        return int(override)
    if customer is not None and customer.payment_terms_days is not None:
        return customer.payment_terms_days
    if company is not None and company.payment_terms_days is not None:
        return company.payment_terms_days
    return payment_term_days()


def due_date_for(issue_date, customer, company, override=None):
    return issue_date + timedelta(days=resolve_payment_terms(customer, company, override))


# ----------------------------
# Document creation
# ----------------------------
def create_document(
    company,
    kind,
    *,
    customer=None,
    supplier=None,
    date=None,
    due_date=None,
    notes="",
    lines=(),
    user=None,
):
    """
    Create a document of any kind except credit notes, with its number.

    `lines` is an iterable of dicts with a `product` and a `quantity`, and
    optionally `unit_price`, `discount_percent` and `description`; price and
    tax terms default to the product's. Invoices get a due date from the
    payment terms unless one is given.
    """
    if kind not in DOCUMENT_FAMILY:
        raise ValidationError(f"Unknown document kind {kind!r}")
    if kind == "credit_note":
        raise ValidationError("Credit notes are issued from an invoice.")

    date = date or timezone.localdate()
    if kind == "invoice" and due_date is None:
        due_date = due_date_for(date, customer, company)

    try:
        with transaction.atomic():
            doc = CommercialDocument(
                company=company,
                kind=kind,
                customer=customer,
                supplier=supplier,
                date=date,
                due_date=due_date if kind == "invoice" else None,
                notes=notes,
            )
            # validate before burning a number
            doc.status = INITIAL_STATUS[kind]
            doc.full_clean(exclude=["number"])
            doc.number = next_number_for_kind(company, kind, on_date=date)
            doc.save()

            for line_data in lines:
                line_data = dict(line_data)
                product = line_data.pop("product")
                DocumentLine.objects.create_from_product(doc, product, **line_data)

            doc.refresh_from_db()
            log_action(
                action="create",
                instance=doc,
                user=user,
                changes={"number": doc.number, "total_incl_tax": str(doc.total_incl_tax)},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not create {kind}: {exc}") from exc

    logger.info("Created %s", doc)
    return doc


# ----------------------------
# Line editing
# ----------------------------
def _lock_editable(document_id):
    doc = CommercialDocument.objects.select_for_update().get(pk=document_id)
    if not doc.lines_editable:
        raise LifecycleError(f"Lines of {doc} are read-only in status {doc.status}.")
    return doc


def _after_line_change(doc, user=None):
    # totals were recomputed by the line signal
    doc.refresh_from_db()
    if doc.kind != "invoice":
        return doc
    paid = doc.valid_payments_total()
    if paid - (doc.total_incl_tax + doc.credited_total()) >= EPSILON:
        raise ValidationError(
            f"{doc} total {doc.total_incl_tax} would fall below the {paid} already paid."
        )
    return sync_settlement(doc, user=user)


def add_line(
    document,
    product,
    quantity,
    *,
    unit_price=None,
    discount_percent=0,
    description=None,
    user=None,
):
    if product.company_id != document.company_id:
        raise ValidationError("Product must belong to the document's company.")
    kwargs = {"quantity": to_decimal(quantity, "quantity"), "discount_percent": discount_percent}
    if unit_price is not None:
        kwargs["unit_price"] = to_decimal(unit_price, "unit_price")
    if description is not None:
        kwargs["description"] = description

    try:
        with transaction.atomic():
            doc = _lock_editable(document.pk)
            line = DocumentLine.objects.create_from_product(doc, product, **kwargs)
            _after_line_change(doc, user=user)
            log_action(
                action="add_line",
                instance=doc,
                user=user,
                changes={"line_id": line.pk, "product_id": product.pk, "quantity": str(line.quantity)},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not add a line to {document}: {exc}") from exc
    return line


def update_line(line, *, user=None, **changes):
    """Change the inputs of a line (quantity, unit_price, discount_percent, description)."""
    allowed = {"quantity", "unit_price", "discount_percent", "description"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Cannot change {sorted(unknown)} on a document line.")

    try:
        with transaction.atomic():
            doc = _lock_editable(line.document_id)
            line = DocumentLine.objects.select_for_update().get(pk=line.pk)
            for field, value in changes.items():
                setattr(line, field, value)
            line.document = doc
            line.save()
            _after_line_change(doc, user=user)
            log_action(
                action="update_line",
                instance=doc,
                user=user,
                changes={"line_id": line.pk, **{k: str(v) for k, v in changes.items()}},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not update line {line.pk}: {exc}") from exc
    return line


def remove_line(line, user=None):
    try:
        with transaction.atomic():
            doc = _lock_editable(line.document_id)
            line = DocumentLine.objects.get(pk=line.pk)
            line_id = line.pk
            line.delete()
            _after_line_change(doc, user=user)
            log_action(
                action="remove_line",
                instance=doc,
                user=user,
                changes={"line_id": line_id},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not remove line {line.pk}: {exc}") from exc


# ----------------------------
# Deletion
# ----------------------------
def delete_document(document, user=None):
    """
    Delete a document with its lines and non-valid payments.

    Refused for credit notes, paid invoices and invoices that carry valid
    payments or issued credit notes. Documents pointing at this one keep
    existing; their back-reference is cleared.
    """
    try:
        with transaction.atomic():
            doc = CommercialDocument.objects.select_for_update().get(pk=document.pk)
            if doc.kind == "credit_note":
                raise LifecycleError("Issued credit notes cannot be deleted.")
            if doc.kind == "invoice":
                if doc.status == "paid":
                    raise LifecycleError(f"Cannot delete paid {doc}.")
                if doc.payments.filter(status="valid").exists():
                    raise LifecycleError(f"Cannot delete {doc} with valid payments.")
                if doc.derived_documents.filter(kind="credit_note").exists():
                    raise LifecycleError(f"Cannot delete {doc}: credit notes refer to it.")

            Payment.objects.filter(invoice=doc).delete()
            doc.derived_documents.update(related_document=None)
            # queryset delete skips the per-line editable check
            doc.lines.all().delete()

            number = doc.number
            log_action(
                action="delete",
                instance=doc,
                user=user,
                changes={"number": number, "kind": doc.kind},
            )
            doc.delete()
    except DatabaseError as exc:
        raise PersistenceError(f"Could not delete {document}: {exc}") from exc

    logger.info("Deleted %s", number)
