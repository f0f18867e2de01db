from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("currency_code", models.CharField(default="TND", max_length=10)),
                ("payment_terms_days", models.PositiveIntegerField(default=30)),
                ("tax_id", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "companies",
            },
        ),
        migrations.CreateModel(
            name="CompanyMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("owner", "Owner"),
                            ("admin", "Admin"),
                            ("accountant", "Accountant"),
                            ("viewer", "Viewer"),
                        ],
                        default="viewer",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="sales_core.company",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="company_memberships",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="ix_membership_company_user")],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_membership")
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(blank=True, max_length=40)),
                ("name", models.CharField(max_length=200)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("postal_code", models.CharField(blank=True, max_length=20)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("tax_id", models.CharField(blank=True, max_length=64)),
                ("payment_terms_days", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="ix_customer_company_name")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_company_customer_name")
                ],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("postal_code", models.CharField(blank=True, max_length=20)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("tax_id", models.CharField(blank=True, max_length=64)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="ix_supplier_company_name")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "name"), name="uq_company_supplier_name")
                ],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference", models.CharField(blank=True, max_length=80, null=True)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("unit_price", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("vat_percent", models.DecimalField(decimal_places=3, default=Decimal("19.000"), max_digits=6)),
                ("fodec_applicable", models.BooleanField(default=False)),
                ("fodec_percent", models.DecimalField(decimal_places=3, default=Decimal("1.000"), max_digits=6)),
                ("stock_quantity", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14)),
                (
                    "product_type",
                    models.CharField(
                        choices=[("sale", "Sale"), ("purchase", "Purchase")], default="sale", max_length=10
                    ),
                ),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="ix_product_company_name")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "reference"), name="uq_company_product_ref"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("unit_price__gte", 0), ("vat_percent__gte", 0), ("fodec_percent__gte", 0)
                        ),
                        name="product_non_negative_rates",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "family",
                    models.CharField(
                        choices=[
                            ("quote", "Quote"),
                            ("delivery_note", "Delivery note"),
                            ("purchase_order", "Purchase order"),
                            ("invoice", "Invoice / credit note"),
                        ],
                        max_length=20,
                    ),
                ),
                ("year", models.PositiveIntegerField(default=0)),
                ("current_value", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "family", "year"), name="uq_counter_company_family_year"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CommercialDocument",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("quote", "Quote"),
                            ("delivery_note", "Delivery note"),
                            ("purchase_order", "Purchase order"),
                            ("invoice", "Invoice"),
                            ("credit_note", "Credit note"),
                        ],
                        max_length=20,
                    ),
                ),
                ("number", models.CharField(max_length=64)),
                ("date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
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
                        ],
                        max_length=20,
                    ),
                ),
                ("total_excl_tax", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("total_fodec", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("total_vat", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("total_incl_tax", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                (
                    "outstanding_amount",
                    models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18),
                ),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="sales_core.customer",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="sales_core.supplier",
                    ),
                ),
                (
                    "related_document",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="derived_documents",
                        to="sales_core.commercialdocument",
                    ),
                ),
            ],
            options={
                "ordering": ("-date", "-id"),
                "indexes": [
                    models.Index(fields=["company", "kind", "date"], name="ix_doc_company_kind_date"),
                    models.Index(fields=["company", "customer"], name="ix_doc_company_customer"),
                    models.Index(fields=["company", "status"], name="ix_doc_company_status"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "kind", "number"), name="uq_document_company_kind_number"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.TextField(blank=True)),
                ("quantity", models.DecimalField(decimal_places=3, default=Decimal("1"), max_digits=14)),
                ("unit_price", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("discount_percent", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=6)),
                ("vat_percent", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=6)),
                ("fodec_applicable", models.BooleanField(default=False)),
                ("fodec_percent", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=6)),
                ("amount_excl_tax", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("fodec_amount", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("vat_base", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("vat_amount", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                ("amount_incl_tax", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=18)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="sales_core.commercialdocument",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="document_lines",
                        to="sales_core.product",
                    ),
                ),
            ],
            options={
                "ordering": ("id",),
                "indexes": [
                    models.Index(fields=["company", "document"], name="ix_docline_company_doc"),
                    models.Index(fields=["company", "product"], name="ix_docline_company_product"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity__gte", 0),
                            ("unit_price__gte", 0),
                            ("discount_percent__gte", 0),
                            ("discount_percent__lte", 100),
                        ),
                        name="docline_valid_inputs",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=3, max_digits=18)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("cheque", "Cheque"),
                            ("transfer", "Bank transfer"),
                            ("card", "Card"),
                            ("other", "Other"),
                        ],
                        default="transfer",
                        max_length=10,
                    ),
                ),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                ("reference", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("valid", "Valid"), ("pending", "Pending"), ("void", "Void")],
                        default="valid",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="sales_core.commercialdocument",
                    ),
                ),
            ],
            options={
                "ordering": ("date", "id"),
                "indexes": [
                    models.Index(fields=["company", "invoice"], name="ix_payment_company_invoice"),
                    models.Index(fields=["company", "date"], name="ix_payment_company_date"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="payment_positive_amount")
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "direction",
                    models.CharField(choices=[("in", "Stock in"), ("out", "Stock out")], max_length=3),
                ),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="sales_core.company"),
                ),
                (
                    "document",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to="sales_core.commercialdocument",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_movements",
                        to="sales_core.product",
                    ),
                ),
            ],
            options={
                "ordering": ("date", "id"),
                "indexes": [models.Index(fields=["company", "product"], name="ix_stock_company_product")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gt", 0)), name="stock_movement_positive_quantity"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="sales_core.company",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="ix_audit_company_user"),
                    models.Index(fields=["company", "created_at"], name="ix_audit_company_created"),
                ],
            },
        ),
    ]
