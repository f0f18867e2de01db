from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import LifecycleError
from ..managers import DocumentLineManager, DocumentManager
from ..services.tax import ZERO, compute_line_amounts, quantize_money
from ..services.totals import aggregate
from .company import Company
from .customer import Customer
from .product import Product
from .supplier import Supplier

DOCUMENT_KIND_CHOICES = [
    ("quote", "Quote"),
    ("delivery_note", "Delivery note"),
    ("purchase_order", "Purchase order"),
    ("invoice", "Invoice"),
    ("credit_note", "Credit note"),
]

# Numbering namespace of each kind: credit notes share the invoice counter
DOCUMENT_FAMILY = {
    "quote": "quote",
    "delivery_note": "delivery_note",
    "purchase_order": "purchase_order",
    "invoice": "invoice",
    "credit_note": "invoice",
}

DOCUMENT_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("accepted", "Accepted"),
    ("refused", "Refused"),
    ("expired", "Expired"),
    ("prepared", "Prepared"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("confirmed", "Confirmed"),
    ("received", "Received"),
    ("paid", "Paid"),
    ("cancelled", "Cancelled"),
    ("issued", "Issued"),
]

INITIAL_STATUS = {
    "quote": "draft",
    "delivery_note": "prepared",
    "purchase_order": "draft",
    "invoice": "draft",
    "credit_note": "issued",
}

""" Workflow per kind: current status → allowed next statuses.
    Invoice paid/sent moves are driven by settlement (see services.lifecycle). """
ALLOWED_TRANSITIONS = {
    "quote": {
        "draft": ["sent"],
        "sent": ["accepted", "refused", "expired"],
        "accepted": [],
        "refused": [],
        "expired": [],
    },
    "delivery_note": {
        "prepared": ["shipped"],
        "shipped": ["delivered"],
        "delivered": [],
    },
    "purchase_order": {
        "draft": ["sent", "cancelled"],
        "sent": ["confirmed", "cancelled"],
        "confirmed": ["received", "cancelled"],
        "received": [],
        "cancelled": [],
    },
    "invoice": {
        "draft": ["sent", "cancelled"],
        "sent": ["paid", "cancelled"],
        "paid": ["sent"],
        "cancelled": [],
    },
    "credit_note": {
        "issued": [],
    },
}

# Lines may only be added/edited/removed in these statuses
EDITABLE_STATUSES = {
    "quote": {"draft"},
    "delivery_note": {"prepared"},
    "purchase_order": {"draft"},
    "invoice": {"draft", "sent"},
    "credit_note": set(),
}

# Fields that never change once the document exists
IMMUTABLE_FIELDS = ["company_id", "kind", "customer_id", "supplier_id"]


class CommercialDocument(models.Model):  # Quote, delivery note, order, invoice or credit note

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    kind = models.CharField(max_length=20, choices=DOCUMENT_KIND_CHOICES)

    # human-readable (e.g. "FA-2026-001"), issued by services.numbering
    number = models.CharField(max_length=64)
    date = models.DateField()  # issue date
    due_date = models.DateField(null=True, blank=True)  # invoices only

    # Sales documents point at a customer, purchase orders at a supplier
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting a customer who has documents
        on_delete=models.PROTECT,
        related_name="documents",
    )
    supplier = models.ForeignKey(
        Supplier,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="documents",
    )

    status = models.CharField(max_length=20, choices=DOCUMENT_STATUS_CHOICES)

    # Sum of the lines' derived amounts (recomputed, never typed in)
    total_excl_tax = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )
    total_fodec = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )
    total_vat = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )
    total_incl_tax = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )
    # Unpaid amount of an invoice after payments and credit notes
    outstanding_amount = models.DecimalField(
        max_digits=18, decimal_places=3, default=Decimal("0.000")
    )

    notes = models.TextField(blank=True)

    # Lookup only: consolidated delivery note → invoice, converted quote →
    # spawned document, credit note → origin invoice. Never cascades.
    related_document = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="derived_documents",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = DocumentManager()

    class Meta:
        ordering = ("-date", "-id")
        indexes = [
            models.Index(fields=["company", "kind", "date"], name="ix_doc_company_kind_date"),
            models.Index(fields=["company", "customer"], name="ix_doc_company_customer"),
            models.Index(fields=["company", "status"], name="ix_doc_company_status"),
        ]
        constraints = [
            # Within one company, a number is used once per kind
            models.UniqueConstraint(
                fields=["company", "kind", "number"],
                name="uq_document_company_kind_number",
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.number or self.pk}"

    @property
    def family(self):
        return DOCUMENT_FAMILY[self.kind]

    @property
    def party(self):
        return self.supplier if self.kind == "purchase_order" else self.customer

    @property
    def lines_editable(self):
        return self.status in EDITABLE_STATUSES.get(self.kind, set())

    # ----------------------------
    # Totals and balance
    # ----------------------------
    def valid_payments_total(self):
        if not self.pk:
            return ZERO
        total = self.payments.filter(status="valid").aggregate(
            total=models.Sum("amount")
        )["total"]
        return total or ZERO

    def credited_total(self):
        """Sum of issued credit notes against this invoice (zero or negative)."""
        if not self.pk:
            return ZERO
        total = self.derived_documents.filter(
            kind="credit_note", status="issued"
        ).aggregate(total=models.Sum("total_incl_tax"))["total"]
        return total or ZERO

    def compute_outstanding(self):
        if self.kind != "invoice" or self.status == "cancelled":
            return ZERO
        balance = self.total_incl_tax + self.credited_total() - self.valid_payments_total()
        # if credits/payments overshoot, it caps at 0, not negative
        return quantize_money(max(balance, ZERO))

    def apply_totals(self, totals):
        self.total_excl_tax = totals.total_excl_tax
        self.total_fodec = totals.total_fodec
        self.total_vat = totals.total_vat
        self.total_incl_tax = totals.total_incl_tax

    def recalc_totals(self):
        """Recompute totals from the current lines, then the outstanding balance."""
        if not getattr(self, "pk", None):
            self.apply_totals(aggregate([]))
            self.outstanding_amount = ZERO
            return
        self.apply_totals(aggregate(self.lines.all()))
        self.outstanding_amount = self.compute_outstanding()

    # ----------------------------
    # Validation
    # ----------------------------
    def clean(self):
        if not self.status and self.kind in INITIAL_STATUS:
            self.status = INITIAL_STATUS[self.kind]
        statuses = ALLOWED_TRANSITIONS.get(self.kind)
        if statuses is None:
            raise ValidationError(f"Unknown document kind {self.kind!r}")
        if self.status not in statuses:
            raise ValidationError(
                f"Status {self.status!r} is not valid for a {self.get_kind_display()}"
            )

        if self.kind == "purchase_order":
            if not self.supplier_id or self.customer_id:
                raise ValidationError("A purchase order needs a supplier and no customer.")
        elif not self.customer_id or self.supplier_id:
            raise ValidationError(
                f"A {self.get_kind_display()} needs a customer and no supplier."
            )

        party = self.party
        if party is not None and party.company_id != self.company_id:
            raise ValidationError("Customer/supplier must belong to the same company.")
        if self.related_document_id:
            if self.related_document_id == self.pk:
                raise ValidationError("A document cannot reference itself.")
            if self.related_document.company_id != self.company_id:
                raise ValidationError("Related document must belong to the same company.")

        if self.due_date and self.date and self.due_date < self.date:
            raise ValidationError("Due date cannot be before the issue date.")

        if self.pk:
            orig = type(self).objects.filter(pk=self.pk).first()
            if orig is not None:
                self._check_immutable(orig)

    def _check_immutable(self, orig):
        changed_fields = [
            f for f in IMMUTABLE_FIELDS if getattr(orig, f) != getattr(self, f)
        ]
        if changed_fields:
            raise ValidationError(f"Cannot modify {changed_fields} after creation.")

        # Issued credit notes and paid invoices are frozen
        if orig.kind == "credit_note" or orig.status == "paid":
            frozen = ["number", "date", "total_incl_tax", "related_document_id"]
            changed_fields = [f for f in frozen if getattr(orig, f) != getattr(self, f)]
            if changed_fields:
                raise LifecycleError(
                    f"Cannot modify {changed_fields} on {orig}: it is {orig.status}."
                )

    def save(self, *args, **kwargs):
        if not self.status and self.kind in INITIAL_STATUS:
            self.status = INITIAL_STATUS[self.kind]
        # partial saves come from services that already validated the change
        if kwargs.get("update_fields") is None:
            self.full_clean()
        return super().save(*args, **kwargs)

    def transition_to(self, new_status):
        # Look up what states are allowed from current self.status
        allowed = ALLOWED_TRANSITIONS.get(self.kind, {}).get(self.status, [])
        if new_status not in allowed:
            raise LifecycleError(
                f"Cannot go from {self.status} to {new_status} on {self}"
            )
        self.status = new_status
        if self.kind == "invoice":
            self.outstanding_amount = self.compute_outstanding()
        self.save(update_fields=["status", "outstanding_amount", "updated_at"])


class DocumentLine(models.Model):  # One product row of a document

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    document = models.ForeignKey(
        CommercialDocument, on_delete=models.CASCADE, related_name="lines"
    )
    # Weak reference: lines never own the product
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="document_lines"
    )
    description = models.TextField(blank=True)

    # Inputs
    quantity = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("1"))
    # captured at creation, independent of later product price changes
    unit_price = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))
    discount_percent = models.DecimalField(
        max_digits=6, decimal_places=3, default=Decimal("0.000")
    )
    vat_percent = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("0.000"))
    fodec_applicable = models.BooleanField(default=False)
    fodec_percent = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal("0.000"))

    # Derived by services.tax on every save
    amount_excl_tax = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))
    fodec_amount = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))
    vat_base = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))
    vat_amount = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))
    amount_incl_tax = models.DecimalField(max_digits=18, decimal_places=3, default=Decimal("0.000"))

    # Enforce tenant scoping
    objects = DocumentLineManager()

    class Meta:
        ordering = ("id",)  # lines keep their insertion order
        indexes = [
            models.Index(fields=["company", "document"], name="ix_docline_company_doc"),
            models.Index(fields=["company", "product"], name="ix_docline_company_product"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0)
                & models.Q(unit_price__gte=0)
                & models.Q(discount_percent__gte=0)
                & models.Q(discount_percent__lte=100),
                name="docline_valid_inputs",
            ),
        ]

    def __str__(self):
        return f"{self.document}: {self.product} x {self.quantity} = {self.amount_incl_tax}"

    def compute_amounts(self):
        amounts = compute_line_amounts(
            self.quantity,
            self.unit_price,
            self.discount_percent,
            self.vat_percent,
            self.fodec_applicable,
            self.fodec_percent,
        )
        # Credit notes are negative adjustments of the same amounts
        if self.document.kind == "credit_note":
            amounts = amounts.negated()
        return amounts

    def apply_amounts(self, amounts):
        self.amount_excl_tax = amounts.amount_excl_tax
        self.fodec_amount = amounts.fodec_amount
        self.vat_base = amounts.vat_base
        self.vat_amount = amounts.vat_amount
        self.amount_incl_tax = amounts.amount_incl_tax

    def refresh_amounts(self):
        self.apply_amounts(self.compute_amounts())

    def clean(self):
        if self.document.company_id != self.company_id:
            raise ValidationError("DocumentLine.company must match document.company")
        if self.product.company_id != self.company_id:
            raise ValidationError("DocumentLine.company must match product.company")

    def _ensure_editable(self):
        if not self.document.lines_editable:
            raise LifecycleError(
                f"Lines of {self.document} are read-only in status {self.document.status}."
            )

    """ Ensure no inconsistent line can ever be persisted """

    def save(self, *args, **kwargs):
        if not self.company_id and self.document_id:
            self.company_id = self.document.company_id
        self._ensure_editable()
        # derived fields always recomputed from the inputs
        self.refresh_amounts()
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._ensure_editable()
        return super().delete(*args, **kwargs)
