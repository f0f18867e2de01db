from decimal import Decimal
from typing import NamedTuple

from .tax import ZERO


class DocumentTotals(NamedTuple):
    total_excl_tax: Decimal
    total_fodec: Decimal
    total_vat: Decimal
    total_incl_tax: Decimal

    @classmethod
    def zero(cls):
        return cls(ZERO, ZERO, ZERO, ZERO)


def aggregate(lines):
    """
    Sum per-line derived amounts into document totals.

    `lines` may hold DocumentLine rows or LineAmounts tuples; an empty
    iterable gives all-zero totals. Plain Decimal addition, so the result
    does not depend on line order.
    """
    total_excl_tax = ZERO
    total_fodec = ZERO
    total_vat = ZERO
    total_incl_tax = ZERO
    for line in lines:
        total_excl_tax += line.amount_excl_tax
        total_fodec += line.fodec_amount
        total_vat += line.vat_amount
        total_incl_tax += line.amount_incl_tax
    return DocumentTotals(total_excl_tax, total_fodec, total_vat, total_incl_tax)
