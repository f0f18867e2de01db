import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import LifecycleError, PersistenceError
from ..models import CommercialDocument, Payment
from .audit_helper import log_action
from .lifecycle import sync_settlement
from .tax import EPSILON, quantize_money, to_decimal

logger = logging.getLogger(__name__)


# ----------------------------
# Payment-related workflows
# ----------------------------
def _lock_invoice(invoice_id):
    invoice = CommercialDocument.objects.select_for_update().get(pk=invoice_id)
    if invoice.kind != "invoice":
        raise ValidationError("Payments can only be applied to invoices.")
    return invoice


def _check_settleable(invoice, amount):
    if invoice.status == "cancelled":
        raise LifecycleError(f"Cannot pay {invoice}: it is cancelled.")
    if invoice.status == "paid":
        raise LifecycleError(f"{invoice} is already paid.")

    outstanding = invoice.compute_outstanding()
    # Validation: prevent over-payment
    if amount - outstanding >= EPSILON:
        raise ValidationError(
            f"Payment of {amount} exceeds the outstanding amount {outstanding} of {invoice}."
        )

    # Paying a draft invoice issues it
    if invoice.status == "draft":
        invoice.transition_to("sent")


def record_payment(
    invoice,
    amount,
    *,
    method="transfer",
    date=None,
    status="valid",
    reference="",
    notes="",
    user=None,
):
    """
    Record money received against an invoice.

    A valid payment settles immediately: the outstanding balance drops and
    the invoice becomes paid when nothing is left. A pending payment is kept
    on file and only counts once confirmed.
    """
    amount = quantize_money(to_decimal(amount, "amount"))
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    if status not in ("valid", "pending"):
        raise ValidationError("A new payment is either valid or pending")

    try:
        # Everything inside either succeeds as one unit or rolls back
        with transaction.atomic():
            inv = _lock_invoice(invoice.pk)
            if status == "valid":
                _check_settleable(inv, amount)
            elif inv.status in ("cancelled", "paid"):
                raise LifecycleError(f"Cannot record a payment on {inv}: it is {inv.status}.")

            payment = Payment.objects.create(
                company=inv.company,
                invoice=inv,
                amount=amount,
                method=method,
                date=date or timezone.localdate(),
                status=status,
                reference=reference,
                notes=notes,
            )
            sync_settlement(inv, user=user)

            log_action(
                action="record_payment",
                instance=payment,
                user=user,
                changes={
                    "invoice_id": inv.pk,
                    "amount": str(amount),
                    "status": status,
                    "outstanding_amount": str(inv.outstanding_amount),
                },
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not record payment on {invoice}: {exc}") from exc

    logger.info("Payment %s on %s, outstanding %s", amount, inv, inv.outstanding_amount)
    return payment


def confirm_payment(payment, user=None):
    """Turn a pending payment into a valid one, settling the invoice."""
    try:
        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            if payment.status != "pending":
                raise LifecycleError(f"Only pending payments can be confirmed ({payment}).")
            inv = _lock_invoice(payment.invoice_id)
            _check_settleable(inv, payment.amount)

            payment.status = "valid"
            payment.save(update_fields=["status"])
            sync_settlement(inv, user=user)

            log_action(
                action="confirm_payment",
                instance=payment,
                user=user,
                changes={"invoice_id": inv.pk, "amount": str(payment.amount)},
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not confirm {payment}: {exc}") from exc
    return payment


def void_payment(payment, user=None):
    """
    Void a payment. The invoice balance is restored and a paid invoice
    goes back to sent.
    """
    try:
        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            if payment.status == "void":
                raise LifecycleError(f"{payment} is already void.")
            inv = _lock_invoice(payment.invoice_id)
            if inv.status == "cancelled":
                raise LifecycleError(f"Cannot void a payment of cancelled {inv}.")

            previous = payment.status
            payment.status = "void"
            payment.save(update_fields=["status"])
            sync_settlement(inv, user=user)

            log_action(
                action="void_payment",
                instance=payment,
                user=user,
                changes={
                    "invoice_id": inv.pk,
                    "status": [previous, "void"],
                    "outstanding_amount": str(inv.outstanding_amount),
                },
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not void {payment}: {exc}") from exc

    logger.info("Voided %s, %s now %s", payment, inv, inv.status)
    return payment
