from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import ProtectedError
from django.test import TestCase

from ..exceptions import LifecycleError
from ..models import AuditLog, CommercialDocument, DocumentLine, Payment
from ..services.consolidation import consolidate_documents
from ..services.documents import (add_line, create_document, delete_document,
                                  remove_line, update_line)
from ..services.lifecycle import (accept_quote, cancel_invoice,
                                  cancel_purchase_order, confirm_purchase_order,
                                  deliver_delivery_note, expire_quote,
                                  refuse_quote, send_document,
                                  ship_delivery_note, transition_document)
from ..services.payment import record_payment, void_payment
from ..services.reports import overdue_invoices, revenue_total
from .helpers import ISSUE_DATE, DocumentFixtures


class QuoteAndDeliveryLifecycleTests(DocumentFixtures, TestCase):
    def test_sending_requires_at_least_one_line(self):
        quote = self.make_document("quote", [])
        with self.assertRaises(LifecycleError):
            send_document(quote)
        quote.refresh_from_db()
        self.assertEqual(quote.status, "draft")

    def test_quote_workflow(self):
        quote = self.make_document("quote", [(self.product, 1)])
        # draft -> accepted skips sending
        with self.assertRaises(LifecycleError):
            accept_quote(quote)

        send_document(quote)
        quote = accept_quote(quote)
        self.assertEqual(quote.status, "accepted")
        # accepted is final
        with self.assertRaises(LifecycleError):
            refuse_quote(quote)

    def test_quote_can_be_refused_or_expire(self):
        refused = self.make_document("quote", [(self.product, 1)])
        send_document(refused)
        self.assertEqual(refuse_quote(refused).status, "refused")

        expired = self.make_document("quote", [(self.product, 1)])
        send_document(expired)
        self.assertEqual(expire_quote(expired).status, "expired")

    def test_wrong_kind_helpers_raise(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        with self.assertRaises(ValidationError):
            accept_quote(note)

    def test_lines_are_locked_outside_editable_statuses(self):
        quote = self.make_document("quote", [(self.product, 1)])
        line = add_line(quote, self.fodec_product, 2)
        quote.refresh_from_db()
        # 11.900 + 2 * 120.190
        self.assertEqual(quote.total_incl_tax, Decimal("252.280"))

        send_document(quote)
        with self.assertRaises(LifecycleError):
            add_line(quote, self.product, 1)
        with self.assertRaises(LifecycleError):
            update_line(line, quantity=Decimal("3"))
        with self.assertRaises(LifecycleError):
            remove_line(line)
        # model level guard as well
        line.refresh_from_db()
        line.quantity = Decimal("9")
        with self.assertRaises(LifecycleError):
            line.save()

    def test_line_edits_recompute_totals(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        line = note.lines.get()
        update_line(line, quantity=Decimal("3"), discount_percent=Decimal("10"))
        note.refresh_from_db()
        # 3 * 10 * 0.9 = 27.000, VAT 5.130
        self.assertEqual(note.total_excl_tax, Decimal("27.000"))
        self.assertEqual(note.total_incl_tax, Decimal("32.130"))

        remove_line(line)
        note.refresh_from_db()
        self.assertEqual(note.total_incl_tax, Decimal("0"))

    def test_derived_amounts_are_not_user_settable(self):
        note = self.make_document("delivery_note", [(self.product, 2)])
        line = note.lines.get()
        line.amount_incl_tax = Decimal("1.000")
        line.save()
        line.refresh_from_db()
        self.assertEqual(line.amount_incl_tax, Decimal("23.800"))

    def test_delivery_note_workflow(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        with self.assertRaises(LifecycleError):
            deliver_delivery_note(note)
        ship_delivery_note(note)
        note = deliver_delivery_note(note)
        self.assertEqual(note.status, "delivered")
        with self.assertRaises(LifecycleError):
            transition_document(note, "prepared")

    def test_purchase_order_workflow(self):
        order = self.make_document("purchase_order", [(self.product, 5)])
        self.assertEqual(order.status, "draft")
        self.assertEqual(order.number, "CF-2026-001")
        send_document(order)
        confirm_purchase_order(order)
        self.assertEqual(cancel_purchase_order(order).status, "cancelled")

    def test_party_rules(self):
        with self.assertRaises(ValidationError):
            create_document(self.company, "purchase_order", customer=self.customer)
        with self.assertRaises(ValidationError):
            create_document(self.company, "invoice", supplier=self.supplier)
        with self.assertRaises(ValidationError):
            create_document(self.company, "credit_note", customer=self.customer)

    def test_customer_cannot_change_after_creation(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        note.customer = self.other_customer
        with self.assertRaises(ValidationError):
            note.save()

    def test_transitions_are_audited(self):
        quote = self.make_document("quote", [(self.product, 1)])
        send_document(quote)
        self.assertTrue(
            AuditLog.objects.filter(
                action="transition", object_type="CommercialDocument", object_id=str(quote.pk)
            ).exists()
        )


class InvoiceLifecycleTests(DocumentFixtures, TestCase):
    def make_invoice(self, quantity=10):
        # 10 x 10.000 at 19% = 119.000
        return self.make_document("invoice", [(self.product, quantity)])

    def test_new_invoice_has_due_date_and_balance(self):
        invoice = self.make_invoice()
        self.assertEqual(invoice.status, "draft")
        self.assertEqual(invoice.number, "FA-2026-001")
        self.assertEqual(str(invoice.due_date), "2026-04-14")
        self.assertEqual(invoice.total_incl_tax, Decimal("119.000"))
        self.assertEqual(invoice.outstanding_amount, Decimal("119.000"))

    def test_paid_cannot_be_forced(self):
        invoice = self.make_invoice()
        with self.assertRaises(LifecycleError):
            transition_document(invoice, "paid")
        send_document(invoice)
        with self.assertRaises(LifecycleError):
            transition_document(invoice, "paid")
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "sent")

    def test_sent_invoice_lines_stay_editable(self):
        invoice = self.make_invoice()
        send_document(invoice)
        add_line(invoice, self.product, 1)
        invoice.refresh_from_db()
        self.assertEqual(invoice.total_incl_tax, Decimal("130.900"))
        self.assertEqual(invoice.outstanding_amount, Decimal("130.900"))

    def test_total_cannot_drop_below_amount_paid(self):
        invoice = self.make_invoice()
        send_document(invoice)
        record_payment(invoice, Decimal("100.000"))
        line = invoice.lines.get()
        with self.assertRaises(ValidationError):
            update_line(line, quantity=Decimal("5"))
        invoice.refresh_from_db()
        self.assertEqual(invoice.total_incl_tax, Decimal("119.000"))
        self.assertEqual(invoice.outstanding_amount, Decimal("19.000"))

    def test_paid_invoice_lines_are_frozen(self):
        invoice = self.make_invoice()
        send_document(invoice)
        record_payment(invoice, Decimal("119.000"))
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "paid")
        # paid invoices are frozen
        with self.assertRaises(LifecycleError):
            add_line(invoice, self.product, 1)

    def test_cancel_without_payments(self):
        invoice = self.make_invoice()
        send_document(invoice)
        self.assertEqual(revenue_total(self.company), Decimal("119.000"))

        invoice = cancel_invoice(invoice)
        self.assertEqual(invoice.status, "cancelled")
        self.assertEqual(invoice.outstanding_amount, Decimal("0"))
        self.assertEqual(revenue_total(self.company), Decimal("0"))
        # cancelled is final
        with self.assertRaises(LifecycleError):
            send_document(invoice)

    def test_cancel_with_valid_payment_is_refused(self):
        invoice = self.make_invoice()
        send_document(invoice)
        payment = record_payment(invoice, Decimal("50.000"))

        with self.assertRaises(LifecycleError):
            cancel_invoice(invoice)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "sent")

        # once the payment is void the invoice can go
        void_payment(payment)
        self.assertEqual(cancel_invoice(invoice).status, "cancelled")

    def test_cancel_paid_invoice_is_refused(self):
        invoice = self.make_invoice()
        send_document(invoice)
        record_payment(invoice, Decimal("119.000"))
        with self.assertRaises(LifecycleError):
            cancel_invoice(invoice)

    def test_revenue_period_and_overdue(self):
        invoice = self.make_invoice()
        send_document(invoice)
        self.assertEqual(revenue_total(self.company, start=ISSUE_DATE, end=ISSUE_DATE), Decimal("119.000"))
        self.assertEqual(revenue_total(self.company, start=ISSUE_DATE.replace(day=16)), Decimal("0"))

        self.assertEqual(list(overdue_invoices(self.company, on_date=ISSUE_DATE)), [])
        late = overdue_invoices(self.company, on_date=ISSUE_DATE.replace(month=5))
        self.assertEqual([inv.pk for inv in late], [invoice.pk])


class DeleteDocumentTests(DocumentFixtures, TestCase):
    def test_delete_delivery_note_with_lines(self):
        note = self.make_document("delivery_note", [(self.product, 1), (self.fodec_product, 1)])
        delete_document(note)
        self.assertFalse(CommercialDocument.objects.filter(pk=note.pk).exists())
        self.assertFalse(DocumentLine.objects.filter(document_id=note.pk).exists())

    def test_deleting_an_invoice_frees_its_sources(self):
        note = self.make_document("delivery_note", [(self.product, 1)])
        invoice = consolidate_documents([note], issue_date=ISSUE_DATE).document
        delete_document(invoice)
        note.refresh_from_db()
        self.assertIsNone(note.related_document)

    def test_invoice_with_valid_payment_cannot_be_deleted(self):
        invoice = self.make_document("invoice", [(self.product, 10)])
        send_document(invoice)
        payment = record_payment(invoice, Decimal("10.000"))
        with self.assertRaises(LifecycleError):
            delete_document(invoice)
        # payments are protected at the database level too
        with self.assertRaises(ProtectedError):
            CommercialDocument.objects.get(pk=invoice.pk).delete()

        void_payment(payment)
        delete_document(invoice)
        self.assertFalse(Payment.objects.filter(pk=payment.pk).exists())

    def test_paid_invoice_cannot_be_deleted(self):
        invoice = self.make_document("invoice", [(self.product, 10)])
        send_document(invoice)
        record_payment(invoice, Decimal("119.000"))
        with self.assertRaises(LifecycleError):
            delete_document(invoice)
