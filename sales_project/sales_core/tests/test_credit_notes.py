from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase

from ..exceptions import LifecycleError
from ..models import AuditLog, CommercialDocument
from ..services.credit_notes import issue_credit_note
from ..services.documents import add_line, delete_document
from ..services.lifecycle import cancel_invoice, send_document
from ..services.payment import record_payment
from ..services.reports import revenue_total
from .helpers import ISSUE_DATE, DocumentFixtures


class CreditNoteTests(DocumentFixtures, TestCase):
    def setUp(self):
        super().setUp()
        # 5 x 10.000 at 19% = 59.500
        self.invoice = self.make_document("invoice", [(self.product, 5)])
        send_document(self.invoice)
        self.line = self.invoice.lines.get()

    def test_full_credit_negates_the_invoice(self):
        credit = issue_credit_note(self.invoice, issue_date=ISSUE_DATE)

        self.assertEqual(credit.kind, "credit_note")
        self.assertEqual(credit.status, "issued")
        self.assertEqual(credit.number, "AV-2026-002")
        self.assertEqual(credit.related_document, self.invoice)
        self.assertEqual(credit.customer, self.customer)
        self.assertEqual(credit.total_excl_tax, Decimal("-50.000"))
        self.assertEqual(credit.total_vat, Decimal("-9.500"))
        self.assertEqual(credit.total_incl_tax, Decimal("-59.500"))

        line = credit.lines.get()
        # quantity stays positive, amounts carry the sign
        self.assertEqual(line.quantity, Decimal("5"))
        self.assertEqual(line.unit_price, Decimal("10.000"))
        self.assertEqual(line.amount_incl_tax, Decimal("-59.500"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.outstanding_amount, Decimal("0"))
        # nothing was paid, so the invoice is not paid
        self.assertEqual(self.invoice.status, "sent")

    def test_partial_credit_reduces_outstanding(self):
        credit = issue_credit_note(self.invoice, {self.line.pk: 1})
        self.assertEqual(credit.total_incl_tax, Decimal("-11.900"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.outstanding_amount, Decimal("47.600"))
        self.assertEqual(revenue_total(self.company), Decimal("47.600"))

        log = AuditLog.objects.get(action="issue_credit_note", object_id=str(credit.pk))
        self.assertEqual(log.changes["invoice_outstanding"], "47.600")

    def test_cannot_credit_more_than_billed(self):
        with self.assertRaises(ValidationError):
            issue_credit_note(self.invoice, {self.line.pk: 6})

        issue_credit_note(self.invoice, {self.line.pk: 3})
        # only 2 left
        with self.assertRaises(ValidationError):
            issue_credit_note(self.invoice, {self.line.pk: 3})
        issue_credit_note(self.invoice, {self.line.pk: 2})
        with self.assertRaises(ValidationError):
            issue_credit_note(self.invoice)
        self.assertEqual(CommercialDocument.objects.credit_notes().count(), 2)

    def test_unknown_line_is_rejected(self):
        other = self.make_document("invoice", [(self.product, 1)])
        with self.assertRaises(ValidationError):
            issue_credit_note(self.invoice, {other.lines.get().pk: 1})

    def test_draft_and_cancelled_invoices_cannot_be_credited(self):
        draft = self.make_document("invoice", [(self.product, 1)])
        with self.assertRaises(LifecycleError):
            issue_credit_note(draft)

        cancel_invoice(draft)
        with self.assertRaises(LifecycleError):
            issue_credit_note(draft)

    def test_only_invoices_can_be_credited(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        with self.assertRaises(ValidationError):
            issue_credit_note(note)

    def test_paid_invoice_stays_paid(self):
        record_payment(self.invoice, Decimal("59.500"))
        issue_credit_note(self.invoice, {self.line.pk: 2})
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, "paid")
        self.assertEqual(self.invoice.outstanding_amount, Decimal("0"))

    def test_credit_note_blocks_cancellation(self):
        issue_credit_note(self.invoice, {self.line.pk: 1})
        with self.assertRaises(LifecycleError):
            cancel_invoice(self.invoice)

    def test_credit_note_is_read_only(self):
        credit = issue_credit_note(self.invoice, {self.line.pk: 1})
        with self.assertRaises(LifecycleError):
            add_line(credit, self.product, 1)
        with self.assertRaises(LifecycleError):
            delete_document(credit)

        credit.refresh_from_db()
        credit.number = "AV-2026-999"
        with self.assertRaises(ValidationError):
            credit.save()

    def test_credit_note_cannot_be_deleted_directly(self):
        credit = issue_credit_note(self.invoice, {self.line.pk: 1})
        with self.assertRaises(ValidationError):
            with transaction.atomic():
                credit.delete()
        self.assertTrue(CommercialDocument.objects.filter(pk=credit.pk).exists())

    def test_credited_invoice_cannot_be_deleted(self):
        issue_credit_note(self.invoice, {self.line.pk: 1})
        with self.assertRaises(LifecycleError):
            delete_document(self.invoice)
