"""
Line tax calculator.

Derives the five monetary fields of a document line from its inputs, in the
fiscal order: HT -> FODEC -> VAT base -> VAT -> TTC. Every monetary step is
quantized to 3 decimal places (the currency subunit used for per-unit prices),
so the TTC amount is always the exact sum of the three amounts before it.
"""
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext
from typing import NamedTuple

from django.core.exceptions import ValidationError

MONEY_PLACES = Decimal("0.001")
ZERO = Decimal("0.000")
ONE = Decimal("1")
HUNDRED = Decimal("100")
# half a subunit: balances closer than this to zero count as settled
EPSILON = Decimal("0.0005")

# Fixed arithmetic context so results never depend on the caller's context
_CONTEXT = Context(prec=28, rounding=ROUND_HALF_UP)


class LineAmounts(NamedTuple):
    amount_excl_tax: Decimal
    fodec_amount: Decimal
    vat_base: Decimal
    vat_amount: Decimal
    amount_incl_tax: Decimal

    def negated(self):
        """Same amounts as a negative adjustment (credit notes)."""
        return LineAmounts(*(-value for value in self))


def to_decimal(value, field="value"):
    """Convert user input to Decimal; floats go through str() to avoid binary noise."""
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError(f"{field} must be a number, got {value!r}")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantize_money(value):
    with localcontext(_CONTEXT):
        return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def compute_line_amounts(
    quantity,
    unit_price,
    discount_percent=0,
    vat_percent=0,
    fodec_applicable=False,
    fodec_percent=0,
):
    """
    Compute HT, FODEC, VAT base, VAT and TTC for one line.

    Raises ValidationError on negative quantity, price or rates, or a
    discount outside [0, 100]. Pure: identical inputs give identical outputs.
    """
    quantity = to_decimal(quantity, "quantity")
    unit_price = to_decimal(unit_price, "unit_price")
    discount = to_decimal(discount_percent, "discount_percent")
    vat = to_decimal(vat_percent, "vat_percent")
    fodec = to_decimal(fodec_percent, "fodec_percent")

    if quantity < 0:
        raise ValidationError("Quantity must be >= 0")
    if unit_price < 0:
        raise ValidationError("Unit price must be >= 0")
    if discount < 0 or discount > HUNDRED:
        raise ValidationError("Discount percent must be between 0 and 100")
    if vat < 0:
        raise ValidationError("VAT percent must be >= 0")
    if fodec < 0:
        raise ValidationError("FODEC percent must be >= 0")

    with localcontext(_CONTEXT):
        # 1. HT after discount
        amount_excl_tax = (quantity * unit_price * (ONE - discount / HUNDRED)).quantize(
            MONEY_PLACES
        )
        # 2. FODEC on HT
        if fodec_applicable:
            fodec_amount = (amount_excl_tax * fodec / HUNDRED).quantize(MONEY_PLACES)
        else:
            fodec_amount = ZERO
        # 3. VAT base includes FODEC
        vat_base = amount_excl_tax + fodec_amount
        # 4. VAT on the base
        vat_amount = (vat_base * vat / HUNDRED).quantize(MONEY_PLACES)
        # 5. TTC
        amount_incl_tax = amount_excl_tax + fodec_amount + vat_amount

    return LineAmounts(
        amount_excl_tax=amount_excl_tax,
        fodec_amount=fodec_amount,
        vat_base=vat_base,
        vat_amount=vat_amount,
        amount_incl_tax=amount_incl_tax,
    )
