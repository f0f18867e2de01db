import datetime
from decimal import Decimal

from ..models import Company, Customer, Product, Supplier
from ..services.documents import create_document

ISSUE_DATE = datetime.date(2026, 3, 15)


class DocumentFixtures:
    """Company with two customers, a supplier and two products."""

    def setUp(self):
        super().setUp()
        self.company = Company.objects.create(name="Test Co", slug="test-co")
        self.customer = Customer.objects.create(company=self.company, name="Client A")
        self.other_customer = Customer.objects.create(company=self.company, name="Client B")
        self.supplier = Supplier.objects.create(company=self.company, name="Supplier A")
        # 10.000 a unit, VAT 19%, no FODEC
        self.product = Product.objects.create(
            company=self.company,
            reference="P1",
            name="Widget",
            unit_price=Decimal("10.000"),
            vat_percent=Decimal("19"),
            stock_quantity=Decimal("100"),
        )
        # 100.000 a unit, FODEC 1%, VAT 19%
        self.fodec_product = Product.objects.create(
            company=self.company,
            reference="P2",
            name="Panel",
            unit_price=Decimal("100.000"),
            vat_percent=Decimal("19"),
            fodec_applicable=True,
            fodec_percent=Decimal("1"),
        )

    def make_document(self, kind, lines=(), customer=None, supplier=None, date=ISSUE_DATE):
        """
        Create a document through the service. `lines` is a list of
        (product, quantity) or (product, quantity, unit_price) tuples.
        """
        rows = []
        for line in lines:
            row = {"product": line[0], "quantity": Decimal(str(line[1]))}
            if len(line) > 2:
                row["unit_price"] = Decimal(str(line[2]))
            rows.append(row)
        if kind == "purchase_order":
            return create_document(
                self.company, kind, supplier=supplier or self.supplier, date=date, lines=rows
            )
        return create_document(
            self.company, kind, customer=customer or self.customer, date=date, lines=rows
        )
