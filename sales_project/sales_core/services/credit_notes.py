import logging
from collections import defaultdict
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.utils import timezone

from ..exceptions import LifecycleError, PersistenceError
from ..models import CommercialDocument, DocumentLine
from .audit_helper import log_action
from .lifecycle import sync_settlement
from .numbering import next_number
from .tax import compute_line_amounts, to_decimal
from .totals import aggregate

logger = logging.getLogger(__name__)

CREDITABLE_STATUSES = ("sent", "paid")


def _credited_quantities(invoice):
    """Quantity per product already credited by issued credit notes."""
    rows = (
        DocumentLine.objects.filter(
            document__related_document=invoice,
            document__kind="credit_note",
            document__status="issued",
        )
        .values("product_id")
        .annotate(total=Sum("quantity"))
    )
    return {row["product_id"]: row["total"] for row in rows}


def _plan_lines(invoice_lines, credited, quantities):
    """
    Pair each invoice line with the quantity to credit.

    The creditable quantity of a product is what the invoice bills minus
    what earlier credit notes already took back.
    """
    remaining = defaultdict(Decimal)
    for line in invoice_lines:
        remaining[line.product_id] += line.quantity
    for product_id, qty in credited.items():
        remaining[product_id] -= qty

    if quantities is not None:
        known = {line.pk for line in invoice_lines}
        unknown = set(quantities) - known
        if unknown:
            raise ValidationError(f"Lines {sorted(unknown)} are not on this invoice.")

    plan = []
    for line in invoice_lines:
        available = min(line.quantity, max(remaining[line.product_id], Decimal("0")))
        if quantities is None:
            qty = available
        else:
            qty = to_decimal(quantities.get(line.pk, 0), "quantity")
            if qty < 0:
                raise ValidationError("Credited quantity must be >= 0")
            if qty > available:
                raise ValidationError(
                    f"Cannot credit {qty} of {line.product}: only {available} left."
                )
        if qty > 0:
            remaining[line.product_id] -= qty
            plan.append((line, qty))
    return plan


def issue_credit_note(invoice, quantities=None, *, user=None, notes=None, issue_date=None):
    """
    Issue a credit note against a sent or paid invoice.

    Without `quantities` everything not yet credited is credited back;
    otherwise `quantities` maps invoice line ids to the quantity to credit.
    Lines copy the invoice line's price, discount and tax terms and carry
    negated amounts. The credit note takes the next number of the invoice
    family under the credit-note prefix and is immutable from the start.
    """
    issue_date = issue_date or timezone.localdate()

    try:
        with transaction.atomic():
            inv = CommercialDocument.objects.select_for_update().get(pk=invoice.pk)
            if inv.kind != "invoice":
                raise ValidationError(f"{inv} is not an invoice.")
            if inv.status not in CREDITABLE_STATUSES:
                raise LifecycleError(
                    f"Cannot credit {inv} in status {inv.status}; it must be sent or paid."
                )

            invoice_lines = list(inv.lines.select_related("product"))
            plan = _plan_lines(invoice_lines, _credited_quantities(inv), quantities)
            if not plan:
                raise ValidationError(f"Nothing left to credit on {inv}.")

            credit = CommercialDocument(
                company=inv.company,
                kind="credit_note",
                number=next_number(inv.company, "invoice", is_credit=True, on_date=issue_date),
                date=issue_date,
                customer=inv.customer,
                related_document=inv,
                notes=notes if notes is not None else f"Credit note for {inv.number}",
            )
            credit.save()

            new_lines = []
            for source, qty in plan:
                line = DocumentLine(
                    company=inv.company,
                    document=credit,
                    product=source.product,
                    description=source.description,
                    quantity=qty,
                    unit_price=source.unit_price,
                    discount_percent=source.discount_percent,
                    vat_percent=source.vat_percent,
                    fodec_applicable=source.fodec_applicable,
                    fodec_percent=source.fodec_percent,
                )
                line.apply_amounts(
                    compute_line_amounts(
                        qty,
                        source.unit_price,
                        source.discount_percent,
                        source.vat_percent,
                        source.fodec_applicable,
                        source.fodec_percent,
                    ).negated()
                )
                new_lines.append(line)
            # lines are created once, the note is issued and read-only
            DocumentLine.objects.bulk_create(new_lines)

            credit.apply_totals(aggregate(new_lines))
            credit.save(
                update_fields=[
                    "total_excl_tax",
                    "total_fodec",
                    "total_vat",
                    "total_incl_tax",
                    "updated_at",
                ]
            )

            sync_settlement(inv, user=user)

            log_action(
                action="issue_credit_note",
                instance=credit,
                user=user,
                changes={
                    "invoice": inv.number,
                    "total_incl_tax": str(credit.total_incl_tax),
                    "invoice_outstanding": str(inv.outstanding_amount),
                },
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Could not issue a credit note for {invoice}: {exc}") from exc

    logger.info("Issued %s against %s (%s)", credit, inv, credit.total_incl_tax)
    return credit
