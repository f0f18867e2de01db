from django.db.models import Sum
from django.utils import timezone

from ..models import CommercialDocument
from .tax import ZERO


def revenue_total(company, start=None, end=None):
    """
    Revenue including tax over [start, end]: invoices plus their (negative)
    credit notes. Cancelled invoices do not count.
    """
    qs = CommercialDocument.objects.for_company(company).revenue_bearing()
    if start:
        qs = qs.filter(date__gte=start)
    if end:
        qs = qs.filter(date__lte=end)
    return qs.aggregate(total=Sum("total_incl_tax"))["total"] or ZERO


def overdue_invoices(company, on_date=None):
    """Sent invoices past their due date with something left to pay."""
    on_date = on_date or timezone.localdate()
    return (
        CommercialDocument.objects.for_company(company)
        .invoices()
        .filter(status="sent", due_date__lt=on_date, outstanding_amount__gt=0)
        .select_related("customer")
        .order_by("due_date", "id")
    )
