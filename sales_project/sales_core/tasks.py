import logging

from celery import shared_task
from django.db import transaction

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def recompute_document_totals(company_id):
    """
    Re-derive every line amount and document total of a company.

    Repairs rows written before a rate fix or by a bulk import. Each document
    is its own transaction so one failure does not undo the others.
    Returns the number of documents whose totals changed.
    """
    # import models lazily to avoid circular imports at module import time
    from .models import CommercialDocument, DocumentLine
    from .services.totals import aggregate

    changed = 0
    for doc in CommercialDocument.objects.filter(company_id=company_id).iterator():
        with transaction.atomic():
            doc = CommercialDocument.objects.select_for_update().get(pk=doc.pk)
            lines = list(doc.lines.select_related("document"))
            stale = []
            for line in lines:
                amounts = line.compute_amounts()
                stored = tuple(getattr(line, field) for field in amounts._fields)
                if amounts != stored:
                    line.apply_amounts(amounts)
                    stale.append(line)
            if stale:
                # update directly: read-only documents must still be repairable
                DocumentLine.objects.bulk_update(
                    stale,
                    ["amount_excl_tax", "fodec_amount", "vat_base", "vat_amount", "amount_incl_tax"],
                )

            before = (doc.total_incl_tax, doc.outstanding_amount)
            doc.apply_totals(aggregate(lines))
            doc.outstanding_amount = doc.compute_outstanding()
            if stale or before != (doc.total_incl_tax, doc.outstanding_amount):
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
                changed += 1
                logger.warning("Repaired totals of %s", doc)
    return changed


@shared_task
def reconcile_document_counters(company_id):
    """Raise the company's numbering counters to the highest persisted numbers."""
    from .models import Company
    from .services.numbering import reconcile_counters

    company = Company.objects.get(pk=company_id)
    changed = reconcile_counters(company)
    # keys are tuples, Celery results must be JSON-friendly
    return {f"{family}/{year}": value for (family, year), value in changed.items()}
