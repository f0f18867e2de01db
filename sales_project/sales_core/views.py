import json
import logging
from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from .exceptions import PersistenceError
from .models import CommercialDocument, Payment
from .services.consolidation import consolidate_documents
from .services.credit_notes import issue_credit_note
from .services.lifecycle import cancel_invoice, transition_document
from .services.payment import record_payment, void_payment

logger = logging.getLogger(__name__)


def _serialize(doc):
    return {
        "id": doc.pk,
        "kind": doc.kind,
        "number": doc.number,
        "date": doc.date.isoformat(),
        "due_date": doc.due_date.isoformat() if doc.due_date else None,
        "status": doc.status,
        "customer": doc.customer_id,
        "supplier": doc.supplier_id,
        "total_excl_tax": str(doc.total_excl_tax),
        "total_fodec": str(doc.total_fodec),
        "total_vat": str(doc.total_vat),
        "total_incl_tax": str(doc.total_incl_tax),
        "outstanding_amount": str(doc.outstanding_amount),
        "related_document": doc.related_document_id,
    }


def _payload(request):
    if request.content_type == "application/json":
        try:
            return json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError("Request body is not valid JSON")
    return request.POST


def company_api(view):
    """
    Require a current company and turn service errors into JSON:
    validation/lifecycle/consolidation errors -> 400, store failures -> 503.
    """

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "company", None) is None:
            return JsonResponse({"ok": False, "error": "No active company"}, status=403)
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            return JsonResponse(
                {"ok": False, "error": type(e).__name__, "messages": e.messages}, status=400
            )
        except PersistenceError as e:
            logger.error("Store failure in %s: %s", view.__name__, e)
            return JsonResponse(
                {"ok": False, "error": "PersistenceError", "messages": [str(e)]}, status=503
            )

    return wrapper


def _company_document(request, pk):
    # Look up the document inside the current company only (404 otherwise)
    return get_object_or_404(CommercialDocument.objects.for_company(request.company), pk=pk)


@require_GET
@company_api
def document_list(request):
    qs = CommercialDocument.objects.for_company(request.company)
    kind = request.GET.get("kind")
    if kind:
        qs = qs.of_kind(kind)
    status = request.GET.get("status")
    if status:
        qs = qs.filter(status=status)
    return JsonResponse({"results": [_serialize(doc) for doc in qs]})


@require_GET
@company_api
def document_detail(request, pk):
    doc = _company_document(request, pk)
    data = _serialize(doc)
    data["lines"] = [
        {
            "id": line.pk,
            "product": line.product_id,
            "description": line.description,
            "quantity": str(line.quantity),
            "unit_price": str(line.unit_price),
            "discount_percent": str(line.discount_percent),
            "amount_excl_tax": str(line.amount_excl_tax),
            "fodec_amount": str(line.fodec_amount),
            "vat_amount": str(line.vat_amount),
            "amount_incl_tax": str(line.amount_incl_tax),
        }
        for line in doc.lines.all()
    ]
    return JsonResponse(data)


@require_POST
@company_api
def consolidate_view(request):
    data = _payload(request)
    ids = data.get("source_ids") or []
    # sources from other companies are simply not found
    sources = [_company_document(request, pk) for pk in ids]
    result = consolidate_documents(
        sources,
        target_kind=data.get("target_kind", "invoice"),
        user=request.user,
        issue_date=parse_date(data["issue_date"]) if data.get("issue_date") else None,
    )
    body = {"ok": True, "document": _serialize(result.document)}
    body["divergences"] = [
        {
            "product": d.product_id,
            "field": d.field,
            "kept": str(d.kept),
            "found": str(d.found),
            "source": d.source_number,
        }
        for d in result.divergences
    ]
    return JsonResponse(body, status=201)


@require_POST
@company_api
def transition_view(request, pk):
    doc = _company_document(request, pk)
    status = _payload(request).get("status")
    if not status:
        raise ValidationError("status is required")
    doc = transition_document(doc, status, user=request.user)
    return JsonResponse({"ok": True, "status": doc.status})


@require_POST
@company_api
def cancel_invoice_view(request, pk):
    invoice = _company_document(request, pk)
    invoice = cancel_invoice(invoice, user=request.user)
    return JsonResponse({"ok": True, "status": invoice.status})


@require_POST
@company_api
def record_payment_view(request, pk):
    invoice = _company_document(request, pk)
    data = _payload(request)
    payment = record_payment(
        invoice,
        data.get("amount"),
        method=data.get("method", "transfer"),
        date=parse_date(data["date"]) if data.get("date") else None,
        status=data.get("status", "valid"),
        reference=data.get("reference", ""),
        user=request.user,
    )
    invoice.refresh_from_db()
    return JsonResponse(
        {
            "ok": True,
            "payment": payment.pk,
            "invoice_status": invoice.status,
            "outstanding_amount": str(invoice.outstanding_amount),
        },
        status=201,
    )


@require_POST
@company_api
def void_payment_view(request, payment_id):
    payment = get_object_or_404(Payment.objects.for_company(request.company), pk=payment_id)
    void_payment(payment, user=request.user)
    invoice = CommercialDocument.objects.get(pk=payment.invoice_id)
    return JsonResponse(
        {
            "ok": True,
            "invoice_status": invoice.status,
            "outstanding_amount": str(invoice.outstanding_amount),
        }
    )


@require_POST
@company_api
def credit_note_view(request, pk):
    invoice = _company_document(request, pk)
    quantities = _payload(request).get("quantities")
    if quantities is not None:
        if not isinstance(quantities, dict):
            raise ValidationError("quantities must map line ids to quantities")
        # JSON object keys arrive as strings
        try:
            quantities = {int(line_id): qty for line_id, qty in quantities.items()}
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid line id in quantities: {sorted(quantities)}")
    credit = issue_credit_note(invoice, quantities, user=request.user)
    return JsonResponse({"ok": True, "document": _serialize(credit)}, status=201)
