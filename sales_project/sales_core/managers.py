from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(company=company)


class TenantManager(models.Manager):
    # ensure every model gets TenantQuerySet (so .for_company() is always available)
    def get_queryset(self):
        return TenantQuerySet(self.model, using=self._db)

    def for_company(self, company):
        return self.get_queryset().for_company(company)


class DocumentQuerySet(TenantQuerySet):
    def of_kind(self, *kinds):
        return self.filter(kind__in=kinds)

    def invoices(self):
        return self.filter(kind="invoice")

    def credit_notes(self):
        return self.filter(kind="credit_note")

    # Everything that counts towards revenue: invoices and credit notes,
    # cancelled invoices excluded
    def revenue_bearing(self):
        return self.filter(kind__in=("invoice", "credit_note")).exclude(
            status="cancelled"
        )


class DocumentManager(TenantManager):
    def get_queryset(self):
        return DocumentQuerySet(self.model, using=self._db)

    def of_kind(self, *kinds):
        return self.get_queryset().of_kind(*kinds)

    def invoices(self):
        return self.get_queryset().invoices()

    def credit_notes(self):
        return self.get_queryset().credit_notes()

    def revenue_bearing(self):
        return self.get_queryset().revenue_bearing()


# Create a DocumentLine, defaulting price and tax terms from the Product if not given.
class DocumentLineManager(TenantManager):
    def create_from_product(self, document, product, **kwargs):
        kwargs.setdefault("unit_price", product.unit_price)
        kwargs.setdefault("vat_percent", product.vat_percent)
        kwargs.setdefault("fodec_applicable", product.fodec_applicable)
        kwargs.setdefault("fodec_percent", product.fodec_percent)
        kwargs.setdefault("description", product.name)
        return self.create(document=document, product=product, **kwargs)
