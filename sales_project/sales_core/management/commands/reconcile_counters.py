from django.core.management.base import BaseCommand, CommandError

from sales_core.models import Company
from sales_core.services.numbering import reconcile_counters


class Command(BaseCommand):
    help = "Raise numbering counters to the highest document numbers actually stored."

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            type=str,
            help="Slug of a single company (default: every company)",
        )

    def handle(self, *args, **options):
        companies = Company.objects.order_by("id")
        if options["company"]:
            companies = companies.filter(slug=options["company"])
            if not companies.exists():
                raise CommandError(f"No company with slug {options['company']!r}")

        for company in companies:
            changed = reconcile_counters(company)
            if not changed:
                self.stdout.write(f"{company}: counters up to date")
                continue
            for (family, year), value in sorted(changed.items()):
                self.stdout.write(
                    self.style.WARNING(f"{company}: {family}/{year or '-'} raised to {value}")
                )
