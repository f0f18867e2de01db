import logging
import re

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..conf import credit_note_prefix, numbering_config
from ..exceptions import PersistenceError
from ..models import CommercialDocument, DocumentCounter
from ..models.document import DOCUMENT_FAMILY

logger = logging.getLogger(__name__)

FAMILIES = ("quote", "delivery_note", "purchase_order", "invoice")


# ----------------------------
# Formatting
# ----------------------------
def _scope_year(config, on_date):
    return on_date.year if config["include_year"] else 0


def _format(prefix, year, sequence, padding):
    number = str(sequence).zfill(padding)
    if year:
        return f"{prefix}-{year}-{number}"
    return f"{prefix}-{number}"


def _prefixes(family, is_credit):
    config = numbering_config(family)
    if family == "invoice" and is_credit:
        return credit_note_prefix(), config
    return config["prefix"], config


def _check_family(family):
    if family not in FAMILIES:
        raise ValidationError(f"Unknown document family {family!r}")


def _persisted_max(company, family, year):
    """
    Highest sequence already used by a persisted document of this family/year.

    Scans both the regular and the credit-note prefix for the invoice family.
    """
    config = numbering_config(family)
    prefixes = [config["prefix"]]
    if family == "invoice":
        prefixes.append(credit_note_prefix())

    kinds = [kind for kind, fam in DOCUMENT_FAMILY.items() if fam == family]
    highest = 0
    for prefix in prefixes:
        head = f"{prefix}-{year}-" if year else f"{prefix}-"
        pattern = re.compile(rf"^{re.escape(head)}(\d+)$")
        numbers = CommercialDocument.objects.filter(
            company=company, kind__in=kinds, number__startswith=head
        ).values_list("number", flat=True)
        for number in numbers:
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))
    return highest


def _locked_counter(company, family, year):
    # create the row on first use, then lock it for the rest of the transaction
    DocumentCounter.objects.get_or_create(company=company, family=family, year=year)
    return DocumentCounter.objects.select_for_update().get(
        company=company, family=family, year=year
    )


# ----------------------------
# Public API
# ----------------------------
def next_number(company, family, is_credit=False, on_date=None):
    """
    Issue the next number of a family, e.g. "FA-2026-007" or "AV-2026-008".

    The increment runs under a row lock in the caller's transaction when
    there is one, so the counter bump commits (or rolls back) together with
    the document insert. The counter is first raised to the highest number
    actually persisted, so it never re-issues a number that exists.
    """
    _check_family(family)
    on_date = on_date or timezone.localdate()
    prefix, config = _prefixes(family, is_credit)
    year = _scope_year(config, on_date)

    try:
        with transaction.atomic():
            counter = _locked_counter(company, family, year)
            persisted = _persisted_max(company, family, year)
            if persisted > counter.current_value:
                logger.warning(
                    "Counter %s/%s/%s behind persisted numbers (%s < %s), reconciling",
                    company.pk, family, year, counter.current_value, persisted,
                )
            counter.current_value = max(counter.current_value, persisted) + 1
            counter.save(update_fields=["current_value", "updated_at"])
    except DatabaseError as exc:
        raise PersistenceError(f"Could not issue a {family} number: {exc}") from exc

    return _format(prefix, year, counter.current_value, config["padding"])


def next_number_for_kind(company, kind, on_date=None):
    return next_number(
        company, DOCUMENT_FAMILY[kind], is_credit=(kind == "credit_note"), on_date=on_date
    )


def preview_number(company, family, is_credit=False, on_date=None):
    """The number next_number() would issue now, without incrementing anything."""
    _check_family(family)
    on_date = on_date or timezone.localdate()
    prefix, config = _prefixes(family, is_credit)
    year = _scope_year(config, on_date)
    counter = DocumentCounter.objects.filter(
        company=company, family=family, year=year
    ).first()
    current = counter.current_value if counter else 0
    sequence = max(current, _persisted_max(company, family, year)) + 1
    return _format(prefix, year, sequence, config["padding"])


def reconcile_counters(company):
    """
    Raise every counter of a company to its highest persisted number.

    Returns {(family, year): new_value} for the counters that moved.
    """
    changed = {}
    try:
        with transaction.atomic():
            counters = DocumentCounter.objects.select_for_update().filter(company=company)
            for counter in counters:
                persisted = _persisted_max(company, counter.family, counter.year)
                if persisted > counter.current_value:
                    counter.current_value = persisted
                    counter.save(update_fields=["current_value", "updated_at"])
                    changed[(counter.family, counter.year)] = persisted
    except DatabaseError as exc:
        raise PersistenceError(f"Could not reconcile counters: {exc}") from exc

    if changed:
        logger.warning("Reconciled counters for company %s: %s", company.pk, changed)
    return changed
