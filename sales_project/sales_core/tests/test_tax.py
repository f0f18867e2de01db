from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from ..services.tax import LineAmounts, compute_line_amounts, quantize_money
from ..services.totals import aggregate


class LineTaxTests(SimpleTestCase):
    def test_plain_line_without_fodec(self):
        amounts = compute_line_amounts(3, Decimal("10.000"), vat_percent=19)
        self.assertEqual(amounts.amount_excl_tax, Decimal("30.000"))
        self.assertEqual(amounts.fodec_amount, Decimal("0.000"))
        # without FODEC the VAT base is the HT amount
        self.assertEqual(amounts.vat_base, amounts.amount_excl_tax)
        self.assertEqual(amounts.vat_amount, Decimal("5.700"))
        self.assertEqual(amounts.amount_incl_tax, Decimal("35.700"))

    def test_fodec_is_added_to_the_vat_base(self):
        amounts = compute_line_amounts(
            1, Decimal("100.000"), vat_percent=19, fodec_applicable=True, fodec_percent=1
        )
        self.assertEqual(amounts.fodec_amount, Decimal("1.000"))
        self.assertEqual(amounts.vat_base, Decimal("101.000"))
        self.assertEqual(amounts.vat_amount, Decimal("19.190"))
        self.assertEqual(amounts.amount_incl_tax, Decimal("120.190"))

    def test_fodec_percent_ignored_when_not_applicable(self):
        amounts = compute_line_amounts(2, Decimal("50"), vat_percent=7, fodec_percent=1)
        self.assertEqual(amounts.fodec_amount, Decimal("0"))
        self.assertEqual(amounts.vat_base, Decimal("100.000"))

    def test_discount_and_rounding_per_step(self):
        # 2 * 12.345 * 0.9 = 22.221; VAT 7% = 1.55547 -> 1.555
        amounts = compute_line_amounts(2, Decimal("12.345"), discount_percent=10, vat_percent=7)
        self.assertEqual(amounts.amount_excl_tax, Decimal("22.221"))
        self.assertEqual(amounts.vat_amount, Decimal("1.555"))
        self.assertEqual(amounts.amount_incl_tax, Decimal("23.776"))

    def test_half_up_rounding(self):
        self.assertEqual(compute_line_amounts(1, "0.0005").amount_excl_tax, Decimal("0.001"))
        self.assertEqual(quantize_money("2.0045"), Decimal("2.005"))

    def test_float_inputs_do_not_leak_binary_noise(self):
        amounts = compute_line_amounts(3, 0.1, vat_percent=19.0)
        self.assertEqual(amounts.amount_excl_tax, Decimal("0.300"))
        self.assertEqual(amounts.vat_amount, Decimal("0.057"))

    def test_total_is_exact_sum_of_parts(self):
        cases = [
            (Decimal("7"), Decimal("3.333"), Decimal("12.5"), Decimal("19"), True, Decimal("1")),
            (Decimal("0.125"), Decimal("999.999"), Decimal("0"), Decimal("13"), False, Decimal("0")),
            (Decimal("13"), Decimal("0.071"), Decimal("33.3"), Decimal("7"), True, Decimal("3")),
        ]
        for args in cases:
            a = compute_line_amounts(*args)
            self.assertEqual(a.amount_incl_tax, a.amount_excl_tax + a.fodec_amount + a.vat_amount)
            self.assertEqual(a.vat_base, a.amount_excl_tax + a.fodec_amount)

    def test_same_inputs_same_outputs(self):
        first = compute_line_amounts(4, "2.5", 5, 19, True, 1)
        second = compute_line_amounts(4, "2.5", 5, 19, True, 1)
        self.assertEqual(first, second)

    def test_zero_quantity_gives_zero_amounts(self):
        amounts = compute_line_amounts(0, "10", vat_percent=19)
        self.assertEqual(amounts.amount_incl_tax, Decimal("0"))

    def test_invalid_inputs_raise(self):
        with self.assertRaises(ValidationError):
            compute_line_amounts(-1, "10")
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, "-10")
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, "10", discount_percent=101)
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, "10", discount_percent=-1)
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, "10", vat_percent=-19)
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, "10", fodec_applicable=True, fodec_percent=-1)
        with self.assertRaises(ValidationError):
            compute_line_amounts("abc", "10")
        with self.assertRaises(ValidationError):
            compute_line_amounts(1, None)

    def test_negated_amounts(self):
        amounts = compute_line_amounts(1, "100", vat_percent=19).negated()
        self.assertEqual(amounts.amount_incl_tax, Decimal("-119.000"))
        self.assertEqual(amounts.vat_base, Decimal("-100.000"))


class AggregateTests(SimpleTestCase):
    def test_empty_lines_give_zero_totals(self):
        totals = aggregate([])
        self.assertEqual(totals.total_excl_tax, Decimal("0"))
        self.assertEqual(totals.total_incl_tax, Decimal("0"))

    def test_sum_of_line_amounts(self):
        lines = [
            compute_line_amounts(5, "10", vat_percent=19),
            compute_line_amounts(1, "100", vat_percent=19, fodec_applicable=True, fodec_percent=1),
        ]
        totals = aggregate(lines)
        self.assertEqual(totals.total_excl_tax, Decimal("150.000"))
        self.assertEqual(totals.total_fodec, Decimal("1.000"))
        self.assertEqual(totals.total_vat, Decimal("28.690"))
        self.assertEqual(totals.total_incl_tax, Decimal("179.690"))

    def test_order_does_not_matter(self):
        lines = [
            compute_line_amounts(3, "1.111", vat_percent=19),
            compute_line_amounts(7, "2.222", 10, 7, True, 1),
            LineAmounts(*(Decimal("-1.000"),) * 5),
        ]
        self.assertEqual(aggregate(lines), aggregate(reversed(lines)))
        self.assertEqual(aggregate(lines), aggregate(sorted(lines, key=lambda a: a.vat_amount)))
