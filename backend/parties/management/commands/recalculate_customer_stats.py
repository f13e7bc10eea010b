from django.core.management.base import BaseCommand
from django.db import transaction

from backend.parties.models import Customer
from backend.parties.services import recalculate_customer_stats


class Command(BaseCommand):
    help = 'Recomputes total_orders and delivered revenue of customers from their orders'

    def add_arguments(self, parser):
        parser.add_argument('--business', type=int, help='Only customers of this workspace id')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report differences without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        customers = Customer.objects.all()
        if options.get('business'):
            customers = customers.filter(business_id=options['business'])
        self.stdout.write(f"Recalculating stats for {customers.count()} customers...")

        changed = 0
        with transaction.atomic():
            for customer in customers.iterator():
                old = (customer.total_orders, customer.total_revenue)
                recalculate_customer_stats(customer, commit=not dry_run)
                if old != (customer.total_orders, customer.total_revenue):
                    changed += 1
                    self.stdout.write(
                        f"  - {customer}: orders {old[0]} -> {customer.total_orders}, "
                        f"revenue {old[1]} -> {customer.total_revenue}"
                    )

        self.stdout.write(self.style.SUCCESS(f"Done. {changed} customers {'would change' if dry_run else 'updated'}."))
