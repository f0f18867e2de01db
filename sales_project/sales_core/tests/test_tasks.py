from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ..models import CommercialDocument, DocumentCounter, DocumentLine
from ..services.lifecycle import send_document
from ..services.payment import record_payment
from ..tasks import reconcile_document_counters, recompute_document_totals
from .helpers import DocumentFixtures


class RecomputeTotalsTaskTests(DocumentFixtures, TestCase):
    def test_nothing_to_repair(self):
        self.make_document("invoice", [(self.product, 2)])
        self.assertEqual(recompute_document_totals(self.company.pk), 0)

    def test_corrupted_amounts_are_repaired(self):
        invoice = self.make_document("invoice", [(self.product, 10)])
        send_document(invoice)
        record_payment(invoice, Decimal("100.000"))
        line = invoice.lines.get()

        # bypass save() to simulate rows written by an old import
        DocumentLine.objects.filter(pk=line.pk).update(
            amount_excl_tax=Decimal("1.000"), amount_incl_tax=Decimal("1.190")
        )
        CommercialDocument.objects.filter(pk=invoice.pk).update(
            total_incl_tax=Decimal("1.190"), outstanding_amount=Decimal("0")
        )

        self.assertEqual(recompute_document_totals(self.company.pk), 1)

        line.refresh_from_db()
        invoice.refresh_from_db()
        self.assertEqual(line.amount_excl_tax, Decimal("100.000"))
        self.assertEqual(line.amount_incl_tax, Decimal("119.000"))
        self.assertEqual(invoice.total_incl_tax, Decimal("119.000"))
        self.assertEqual(invoice.outstanding_amount, Decimal("19.000"))
        # second pass finds everything consistent
        self.assertEqual(recompute_document_totals(self.company.pk), 0)

    def test_other_companies_are_untouched(self):
        invoice = self.make_document("invoice", [(self.product, 1)])
        DocumentLine.objects.filter(document=invoice).update(amount_incl_tax=Decimal("0"))
        self.assertEqual(recompute_document_totals(self.company.pk + 1000), 0)


class ReconcileCountersTaskTests(DocumentFixtures, TestCase):
    def test_counters_catch_up_with_documents(self):
        self.make_document("invoice", [(self.product, 1)])
        self.make_document("invoice", [(self.product, 1)])
        DocumentCounter.objects.filter(company=self.company, family="invoice").update(
            current_value=0
        )

        self.assertEqual(reconcile_document_counters(self.company.pk), {"invoice/2026": 2})
        self.assertEqual(reconcile_document_counters(self.company.pk), {})
        self.assertEqual(self.make_document("invoice").number, "FA-2026-003")

    def test_management_command(self):
        self.make_document("quote", [(self.product, 1)])
        DocumentCounter.objects.filter(company=self.company, family="quote").update(
            current_value=0
        )
        call_command("reconcile_counters", company=self.company.slug, verbosity=0)
        counter = DocumentCounter.objects.get(company=self.company, family="quote", year=2026)
        self.assertEqual(counter.current_value, 1)


class SeedDemoCommandTests(TestCase):
    def test_seed_demo_builds_a_partly_paid_invoice(self):
        out = StringIO()
        call_command("seed_demo", company="Demo SARL", stdout=out)

        invoice = CommercialDocument.objects.invoices().get()
        # 5 cables (59.500) + 1 panel with FODEC (300.475)
        self.assertEqual(invoice.total_incl_tax, Decimal("359.975"))
        self.assertEqual(invoice.status, "sent")
        self.assertEqual(invoice.outstanding_amount, Decimal("179.987"))
        self.assertEqual(
            CommercialDocument.objects.filter(related_document=invoice).count(), 2
        )
        self.assertIn("Demo data seeded successfully", out.getvalue())

        # running it again reuses the tenant
        call_command("seed_demo", company="Demo SARL", stdout=StringIO())
        self.assertEqual(CommercialDocument.objects.invoices().count(), 1)
