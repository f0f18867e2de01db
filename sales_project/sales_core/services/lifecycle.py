import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from ..exceptions import LifecycleError, PersistenceError
from ..models import CommercialDocument
from .audit_helper import log_action
from .stock import apply_document_stock
from .tax import EPSILON, ZERO

logger = logging.getLogger(__name__)


# ----------------------------
# Invoice settlement
# ----------------------------
def sync_settlement(invoice: CommercialDocument, user=None):
    """
    Recompute an invoice's outstanding balance and move it between
    sent and paid accordingly.

    Must run inside the caller's transaction with the invoice row locked.
    An invoice becomes paid once its balance is within EPSILON of zero and
    at least one valid payment exists; it goes back to sent as soon as the
    balance is positive again (voided payment, edited line).
    """
    if invoice.kind != "invoice" or invoice.status in ("draft", "cancelled"):
        invoice.outstanding_amount = invoice.compute_outstanding()
        invoice.save(update_fields=["outstanding_amount", "updated_at"])
        return invoice

    previous = invoice.status
    outstanding = invoice.compute_outstanding()
    settled = outstanding < EPSILON and invoice.valid_payments_total() > ZERO

    if invoice.status == "sent" and settled:
        invoice.transition_to("paid")
    elif invoice.status == "paid" and not settled:
        invoice.transition_to("sent")
    else:
        invoice.outstanding_amount = outstanding
        invoice.save(update_fields=["outstanding_amount", "updated_at"])

    if invoice.status != previous:
        log_action(
            action="settlement",
            instance=invoice,
            user=user,
            changes={
                "status": [previous, invoice.status],
                "outstanding_amount": str(invoice.outstanding_amount),
            },
        )
    return invoice


# ----------------------------
# Generic transitions
# ----------------------------
def _check_transition(doc, new_status):
    if new_status == "sent" and doc.status == "draft" and not doc.lines.exists():
        raise LifecycleError(f"Cannot send {doc} without lines.")

    if doc.kind != "invoice":
        return

    # Invoice paid/sent moves are driven by the balance, never forced
    if new_status == "paid":
        if doc.compute_outstanding() >= EPSILON:
            raise LifecycleError(
                f"Cannot mark {doc} as paid: {doc.compute_outstanding()} still outstanding."
            )
        if doc.valid_payments_total() <= ZERO:
            raise LifecycleError(f"Cannot mark {doc} as paid without a valid payment.")
    elif doc.status == "paid" and new_status == "sent":
        if doc.compute_outstanding() < EPSILON:
            raise LifecycleError(f"{doc} is fully settled; void a payment first.")
    elif new_status == "cancelled":
        _check_cancellable(doc)


def transition_document(document: CommercialDocument, new_status: str, *, user=None):
    """
    Move any document to `new_status` following the workflow of its kind.

    Delivering a delivery note books stock out, receiving a purchase order
    books stock in, both in the same transaction as the status change.
    """
    try:
        with transaction.atomic():
            doc = CommercialDocument.objects.select_for_update().get(pk=document.pk)
            previous = doc.status
            _check_transition(doc, new_status)
            doc.transition_to(new_status)

            if (doc.kind, new_status) in (
                ("delivery_note", "delivered"),
                ("purchase_order", "received"),
            ):
                apply_document_stock(doc)

            log_action(
                action="transition",
                instance=doc,
                user=user,
                changes={"status": [previous, new_status]},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not update {document}: {exc}") from exc

    logger.info("%s: %s -> %s", doc, previous, new_status)
    return doc


def send_document(document, user=None):
    return transition_document(document, "sent", user=user)


# Quotes
def accept_quote(quote, user=None):
    _expect_kind(quote, "quote")
    return transition_document(quote, "accepted", user=user)


def refuse_quote(quote, user=None):
    _expect_kind(quote, "quote")
    return transition_document(quote, "refused", user=user)


def expire_quote(quote, user=None):
    _expect_kind(quote, "quote")
    return transition_document(quote, "expired", user=user)


# Delivery notes
def ship_delivery_note(note, user=None):
    _expect_kind(note, "delivery_note")
    return transition_document(note, "shipped", user=user)


def deliver_delivery_note(note, user=None):
    _expect_kind(note, "delivery_note")
    return transition_document(note, "delivered", user=user)


# Purchase orders
def confirm_purchase_order(order, user=None):
    _expect_kind(order, "purchase_order")
    return transition_document(order, "confirmed", user=user)


def receive_purchase_order(order, user=None):
    _expect_kind(order, "purchase_order")
    return transition_document(order, "received", user=user)


def cancel_purchase_order(order, user=None):
    _expect_kind(order, "purchase_order")
    return transition_document(order, "cancelled", user=user)


def _expect_kind(doc, kind):
    if doc.kind != kind:
        raise ValidationError(f"{doc} is not a {kind.replace('_', ' ')}.")


# ----------------------------
# Invoice cancellation
# ----------------------------
def _check_cancellable(invoice):
    if invoice.payments.filter(status="valid").exists():
        raise LifecycleError(
            f"Cannot cancel {invoice}: it has valid payments. Void them first."
        )
    if invoice.derived_documents.filter(kind="credit_note", status="issued").exists():
        raise LifecycleError(f"Cannot cancel {invoice}: credit notes were issued against it.")


def cancel_invoice(invoice, user=None):
    """
    Cancel a draft or sent invoice.

    Refused while a valid payment or an issued credit note exists. A
    cancelled invoice has no outstanding balance and drops out of revenue.
    """
    _expect_kind(invoice, "invoice")
    return transition_document(invoice, "cancelled", user=user)
