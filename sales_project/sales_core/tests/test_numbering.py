import datetime

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase, override_settings

from ..models import CommercialDocument, Company, DocumentCounter
from ..services.numbering import (next_number, next_number_for_kind,
                                  preview_number, reconcile_counters)
from .helpers import ISSUE_DATE, DocumentFixtures


class NumberingTests(DocumentFixtures, TestCase):
    def test_numbers_are_formatted_and_sequential(self):
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-001")
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-002")
        self.assertEqual(next_number(self.company, "quote", on_date=ISSUE_DATE), "DV-2026-001")
        self.assertEqual(next_number(self.company, "delivery_note", on_date=ISSUE_DATE), "BL-2026-001")
        self.assertEqual(next_number(self.company, "purchase_order", on_date=ISSUE_DATE), "CF-2026-001")

    def test_many_calls_give_distinct_increasing_numbers(self):
        numbers = [next_number(self.company, "quote", on_date=ISSUE_DATE) for _ in range(25)]
        self.assertEqual(len(set(numbers)), 25)
        sequences = [int(n.rsplit("-", 1)[1]) for n in numbers]
        self.assertEqual(sequences, sorted(sequences))
        self.assertEqual(sequences, list(range(1, 26)))

    def test_interleaved_calls_in_one_transaction_stay_distinct(self):
        other = Company.objects.create(name="Other Co", slug="other-co")
        issued = {"quote": [], "invoice": [], "other": []}
        with transaction.atomic():
            for i in range(10):
                issued["quote"].append(next_number(self.company, "quote", on_date=ISSUE_DATE))
                issued["invoice"].append(
                    next_number(self.company, "invoice", is_credit=bool(i % 2), on_date=ISSUE_DATE)
                )
                issued["other"].append(next_number(other, "quote", on_date=ISSUE_DATE))

        for numbers in issued.values():
            sequences = [int(n.rsplit("-", 1)[1]) for n in numbers]
            self.assertEqual(sequences, list(range(1, 11)))
        # credit notes take every other invoice sequence value
        self.assertEqual(issued["invoice"][:3], ["FA-2026-001", "AV-2026-002", "FA-2026-003"])

    def test_number_taken_by_another_writer_is_skipped(self):
        with transaction.atomic():
            self.assertEqual(next_number(self.company, "quote", on_date=ISSUE_DATE), "DV-2026-001")
            # another session stored DV-2026-002 without touching the counter
            CommercialDocument.objects.create(
                company=self.company,
                kind="quote",
                number="DV-2026-002",
                date=ISSUE_DATE,
                customer=self.customer,
            )
            self.assertEqual(next_number(self.company, "quote", on_date=ISSUE_DATE), "DV-2026-003")

    def test_credit_notes_share_the_invoice_counter(self):
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-001")
        self.assertEqual(
            next_number(self.company, "invoice", is_credit=True, on_date=ISSUE_DATE), "AV-2026-002"
        )
        self.assertEqual(next_number_for_kind(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-003")
        self.assertEqual(
            next_number_for_kind(self.company, "credit_note", on_date=ISSUE_DATE), "AV-2026-004"
        )
        self.assertEqual(DocumentCounter.objects.get(family="invoice").current_value, 4)

    def test_year_scoped_counters_restart(self):
        next_number(self.company, "invoice", on_date=ISSUE_DATE)
        self.assertEqual(
            next_number(self.company, "invoice", on_date=datetime.date(2027, 1, 2)), "FA-2027-001"
        )

    def test_counters_are_per_company(self):
        other = Company.objects.create(name="Other Co", slug="other-co")
        next_number(self.company, "invoice", on_date=ISSUE_DATE)
        self.assertEqual(next_number(other, "invoice", on_date=ISSUE_DATE), "FA-2026-001")

    @override_settings(SALES_NUMBERING={"quote": {"prefix": "Q", "include_year": False, "padding": 5}})
    def test_configured_prefix_without_year(self):
        self.assertEqual(next_number(self.company, "quote", on_date=ISSUE_DATE), "Q-00001")
        self.assertEqual(DocumentCounter.objects.get(family="quote").year, 0)

    def test_counter_catches_up_with_persisted_numbers(self):
        # a number written outside the service, e.g. by an import
        CommercialDocument.objects.create(
            company=self.company,
            kind="invoice",
            number="FA-2026-010",
            date=ISSUE_DATE,
            customer=self.customer,
        )
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-011")

    def test_persisted_credit_note_numbers_count(self):
        CommercialDocument.objects.create(
            company=self.company,
            kind="credit_note",
            number="AV-2026-007",
            date=ISSUE_DATE,
            customer=self.customer,
        )
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-008")

    def test_preview_does_not_increment(self):
        self.assertEqual(preview_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-001")
        self.assertEqual(preview_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-001")
        self.assertFalse(DocumentCounter.objects.exists())
        self.assertEqual(next_number(self.company, "invoice", on_date=ISSUE_DATE), "FA-2026-001")
        self.assertEqual(
            preview_number(self.company, "invoice", is_credit=True, on_date=ISSUE_DATE), "AV-2026-002"
        )

    def test_unknown_family_raises(self):
        with self.assertRaises(ValidationError):
            next_number(self.company, "receipt")
        with self.assertRaises(ValidationError):
            next_number(self.company, "credit_note")

    def test_reconcile_counters(self):
        next_number(self.company, "delivery_note", on_date=ISSUE_DATE)
        CommercialDocument.objects.create(
            company=self.company,
            kind="delivery_note",
            number="BL-2026-005",
            date=ISSUE_DATE,
            customer=self.customer,
        )
        self.assertEqual(reconcile_counters(self.company), {("delivery_note", 2026): 5})
        self.assertEqual(DocumentCounter.objects.get(family="delivery_note").current_value, 5)
        # second run has nothing to do
        self.assertEqual(reconcile_counters(self.company), {})

    def test_documents_created_by_the_service_are_numbered(self):
        quote = self.make_document("quote", [(self.product, 1)])
        note = self.make_document("delivery_note", [(self.product, 1)])
        self.assertEqual(quote.number, "DV-2026-001")
        self.assertEqual(note.number, "BL-2026-001")
