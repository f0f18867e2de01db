"""
Consolidation: merge several source documents of one customer into a single
new target document (delivery notes -> invoice, accepted quote -> invoice or
delivery note).

Lines are grouped by product in the order the sources were given; every
group is re-valued by the tax calculator and the target totals come from the
aggregator, never from the sources. Numbering, the target insert and the
sources' back-references happen in one transaction.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import List, NamedTuple

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..conf import consolidation_marks_delivered, consolidation_price_policy
from ..exceptions import ConsolidationError, PersistenceError
from ..models import CommercialDocument, DocumentLine
from .audit_helper import log_action
from .documents import due_date_for
from .numbering import next_number_for_kind
from .stock import apply_document_stock
from .tax import compute_line_amounts
from .totals import aggregate

logger = logging.getLogger(__name__)

# (source kind, target kind) pairs that can be merged
SUPPORTED_CONVERSIONS = {
    ("delivery_note", "invoice"),
    ("quote", "invoice"),
    ("quote", "delivery_note"),
}

# Source statuses that may be converted
ELIGIBLE_STATUSES = {
    "delivery_note": {"prepared", "shipped", "delivered"},
    "quote": {"accepted"},
}


class PriceDivergence(NamedTuple):
    product_id: int
    field: str  # "unit_price" or "discount_percent"
    kept: Decimal
    found: Decimal
    source_number: str


class ConsolidationResult(NamedTuple):
    document: CommercialDocument
    divergences: List[PriceDivergence]


class _Group:
    __slots__ = ("product", "description", "quantity", "unit_price", "discount_percent")

    def __init__(self, line):
        self.product = line.product
        self.description = line.description
        self.quantity = line.quantity
        # first-seen commercial terms
        self.unit_price = line.unit_price
        self.discount_percent = line.discount_percent


# ----------------------------
# Preconditions
# ----------------------------
def _load_sources(sources):
    ids = []
    for source in sources:
        pk = getattr(source, "pk", source)
        if pk is None:
            raise ConsolidationError("Source documents must be saved first.")
        if pk in ids:
            raise ConsolidationError(f"Document {pk} is selected twice.")
        ids.append(pk)
    if not ids:
        raise ConsolidationError("Select at least one document to consolidate.")

    # reload with a row lock so the checks see committed state
    found = CommercialDocument.objects.select_for_update().in_bulk(ids)
    missing = [pk for pk in ids if pk not in found]
    if missing:
        raise ConsolidationError(f"Documents {missing} do not exist.")
    return [found[pk] for pk in ids]


def _check_sources(docs, target_kind):
    first = docs[0]
    kinds = {doc.kind for doc in docs}
    if len(kinds) > 1:
        raise ConsolidationError("All selected documents must be of the same kind.")
    if (first.kind, target_kind) not in SUPPORTED_CONVERSIONS:
        raise ConsolidationError(
            f"Cannot turn a {first.get_kind_display().lower()} into a {target_kind.replace('_', ' ')}."
        )
    if len({doc.company_id for doc in docs}) > 1:
        raise ConsolidationError("All selected documents must belong to the same company.")
    if len({doc.customer_id for doc in docs}) > 1:
        raise ConsolidationError(
            "All selected documents must be for the same customer; "
            f"got {sorted(doc.customer.name for doc in docs)}."
        )

    for doc in docs:
        if doc.status not in ELIGIBLE_STATUSES[doc.kind]:
            raise ConsolidationError(f"{doc} cannot be converted in status {doc.status}.")
        if doc.related_document_id:
            raise ConsolidationError(
                f"{doc} was already converted into document {doc.related_document_id}."
            )


# ----------------------------
# Merge
# ----------------------------
def _group_lines(docs, policy):
    groups = OrderedDict()
    divergences = []
    for doc in docs:
        for line in doc.lines.select_related("product").order_by("id"):
            group = groups.get(line.product_id)
            if group is None:
                groups[line.product_id] = _Group(line)
                continue
            group.quantity += line.quantity
            for field in ("unit_price", "discount_percent"):
                kept, found = getattr(group, field), getattr(line, field)
                if kept != found:
                    divergences.append(
                        PriceDivergence(line.product_id, field, kept, found, doc.number)
                    )

    if divergences:
        if policy == "reject":
            first = divergences[0]
            raise ConsolidationError(
                f"Product {first.product_id} has a {first.field} of {first.found} on "
                f"{first.source_number}, {first.kept} elsewhere."
            )
        logger.warning(
            "Consolidating with %d diverging price(s); keeping first-seen terms: %s",
            len(divergences),
            divergences,
        )
    if not groups:
        raise ConsolidationError("The selected documents have no lines.")
    return groups, divergences


def _build_lines(target, groups):
    lines = []
    for group in groups.values():
        product = group.product
        # tax attributes come from the product at merge time
        line = DocumentLine(
            company=target.company,
            document=target,
            product=product,
            description=group.description,
            quantity=group.quantity,
            unit_price=group.unit_price,
            discount_percent=group.discount_percent,
            vat_percent=product.vat_percent,
            fodec_applicable=product.fodec_applicable,
            fodec_percent=product.fodec_percent,
        )
        line.apply_amounts(
            compute_line_amounts(
                line.quantity,
                line.unit_price,
                line.discount_percent,
                line.vat_percent,
                line.fodec_applicable,
                line.fodec_percent,
            )
        )
        lines.append(line)
    return lines


def _mark_delivered(docs):
    for doc in docs:
        if doc.kind != "delivery_note" or doc.status == "delivered":
            continue
        if doc.status == "prepared":
            doc.transition_to("shipped")
        doc.transition_to("delivered")
        apply_document_stock(doc)


def consolidate_documents(
    sources,
    target_kind="invoice",
    *,
    user=None,
    issue_date=None,
    payment_term_days=None,
    notes=None,
):
    """
    Merge `sources` (documents or primary keys, in selection order) into one
    new document of `target_kind`.

    Raises ConsolidationError, with nothing written, when the sources mix
    kinds, companies or customers, are not eligible or were already
    converted. Returns a ConsolidationResult holding the new document and
    any per-product price or discount divergences found while merging.
    """
    policy = consolidation_price_policy()
    issue_date = issue_date or timezone.localdate()

    try:
        with transaction.atomic():
            docs = _load_sources(sources)
            _check_sources(docs, target_kind)
            groups, divergences = _group_lines(docs, policy)

            first = docs[0]
            company = first.company
            customer = first.customer
            numbers = [doc.number for doc in docs]

            target = CommercialDocument(
                company=company,
                kind=target_kind,
                number=next_number_for_kind(company, target_kind, on_date=issue_date),
                date=issue_date,
                customer=customer,
                notes=notes if notes is not None else "Consolidated from " + ", ".join(numbers),
            )
            if target_kind == "invoice":
                target.due_date = due_date_for(issue_date, customer, company, payment_term_days)
            target.save()

            lines = _build_lines(target, groups)
            DocumentLine.objects.bulk_create(lines)

            target.apply_totals(aggregate(lines))
            target.outstanding_amount = target.compute_outstanding()
            target.save(
                update_fields=[
                    "total_excl_tax",
                    "total_fodec",
                    "total_vat",
                    "total_incl_tax",
                    "outstanding_amount",
                    "updated_at",
                ]
            )

            CommercialDocument.objects.filter(pk__in=[doc.pk for doc in docs]).update(
                related_document=target
            )
            if consolidation_marks_delivered():
                _mark_delivered(docs)

            log_action(
                action="consolidate",
                instance=target,
                user=user,
                changes={
                    "sources": numbers,
                    "total_incl_tax": str(target.total_incl_tax),
                    "divergences": len(divergences),
                },
            )
    except DatabaseError as exc:
        raise PersistenceError(f"Consolidation failed and was rolled back: {exc}") from exc

    logger.info("Consolidated %s into %s", ", ".join(numbers), target)
    return ConsolidationResult(target, divergences)
