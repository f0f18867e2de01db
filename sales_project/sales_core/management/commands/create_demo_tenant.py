import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify

from sales_core.models import CommercialDocument, Company, CompanyMembership, Customer, Product, Supplier
from sales_core.services.consolidation import consolidate_documents
from sales_core.services.documents import create_document
from sales_core.services.lifecycle import send_document
from sales_core.services.payment import record_payment

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), user, catalog and a few documents "
        "(delivery notes consolidated into a partly paid invoice)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument("--username", default="demo", help="Username for the demo user.")
        parser.add_argument("--password", default="demo123", help="Password for the demo user.")

    @transaction.atomic
    def handle(self, *args, **options):
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]

        # 1. Company (reused when it already exists)
        company = Company.objects.filter(name=company_name).first()
        if company is None:
            company = Company.objects.create(
                name=company_name, slug=self._unique_slug(company_name)
            )
        self.stdout.write(self.style.SUCCESS(f"Company: {company}"))

        # 2. User with an owner membership
        user, created = User.objects.get_or_create(
            username=username, defaults={"email": f"{username}@example.com"}
        )
        if created:
            user.set_password(password)
            user.is_staff = True
            user.save()
        CompanyMembership.objects.get_or_create(
            user=user, company=company, defaults={"role": "owner"}
        )
        self.stdout.write(self.style.SUCCESS(f"User: {user.username} (pw={password})"))

        if CommercialDocument.objects.for_company(company).exists():
            self.stdout.write(self.style.WARNING("Company already has documents, skipping samples."))
            return

        # 3. Parties and catalog
        customer, _ = Customer.objects.get_or_create(
            company=company, name="Client Démo", defaults={"code": "C001", "city": "Tunis"}
        )
        Supplier.objects.get_or_create(company=company, name="Fournisseur Démo")
        cable, _ = Product.objects.get_or_create(
            company=company,
            reference="P-CABLE",
            defaults={"name": "Câble 2.5mm", "unit_price": Decimal("10.000"), "vat_percent": Decimal("19")},
        )
        panel, _ = Product.objects.get_or_create(
            company=company,
            reference="P-PANEL",
            defaults={
                "name": "Tableau électrique",
                "unit_price": Decimal("250.000"),
                "vat_percent": Decimal("19"),
                "fodec_applicable": True,
                "fodec_percent": Decimal("1"),
            },
        )

        # 4. Two delivery notes merged into one invoice, half paid
        today = datetime.date.today()
        notes = [
            create_document(
                company,
                "delivery_note",
                customer=customer,
                date=today,
                lines=[{"product": cable, "quantity": Decimal("3")}],
                user=user,
            ),
            create_document(
                company,
                "delivery_note",
                customer=customer,
                date=today,
                lines=[
                    {"product": cable, "quantity": Decimal("2")},
                    {"product": panel, "quantity": Decimal("1")},
                ],
                user=user,
            ),
        ]
        invoice = consolidate_documents(notes, "invoice", user=user).document
        send_document(invoice, user=user)
        record_payment(invoice, (invoice.total_incl_tax / 2).quantize(Decimal("0.001")), user=user)
        invoice.refresh_from_db()

        self.stdout.write(
            self.style.SUCCESS(
                f"Created {invoice}: total {invoice.total_incl_tax}, "
                f"outstanding {invoice.outstanding_amount}"
            )
        )

    def _unique_slug(self, name, max_tries=100):
        # "Test Ltd" -> "test-ltd", then "test-ltd-1", "test-ltd-2", ...
        base = slugify(name) or "company"
        slug = base
        i = 1
        while Company.objects.filter(slug=slug).exists():
            slug = f"{base}-{i}"
            i += 1
            if i > max_tries:
                raise RuntimeError("Couldn't generate unique slug")
        return slug
