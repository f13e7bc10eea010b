"""
Management command to import orders from a CSV/Excel file into a workspace
"""
import os

from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model

from backend.core.exceptions import ServiceError
from backend.orders.importers import import_orders
from backend.workspaces.models import Business


class Command(BaseCommand):
    help = "Imports orders from a CSV or Excel file"

    def add_arguments(self, parser):
        parser.add_argument('file', type=str, help='Path to the .csv / .xlsx file')
        parser.add_argument('--business', type=int, required=True, help='Workspace id')
        parser.add_argument('--user', type=str, required=True, help='Email of the importing user')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate and report without creating orders',
        )

    def handle(self, *args, **options):
        path = options['file']
        if not os.path.exists(path):
            raise CommandError(f"File not found: {path}")

        business = Business.objects.filter(pk=options['business']).first()
        if business is None:
            raise CommandError(f"Workspace {options['business']} does not exist")
        user = get_user_model().objects.filter(email__iexact=options['user']).first()
        if user is None:
            raise CommandError(f"User {options['user']} does not exist")

        dry_run = options['dry_run']
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS(f"IMPORTING ORDERS INTO {business.name}{' (DRY RUN)' if dry_run else ''}"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        with open(path, 'rb') as f:
            content = f.read()
        try:
            result = import_orders(business, user, os.path.basename(path), content, commit=not dry_run)
        except ServiceError as e:
            raise CommandError(e.message)

        for error in result['errors']:
            self.stdout.write(self.style.WARNING(f"  Row {error['row']}: {'; '.join(str(m) for m in error['errors'])}"))

        if dry_run:
            self.stdout.write(f"Orders in file: {result.get('orders_count', 0)}, with errors: {result['failed']}")
        else:
            self.stdout.write(self.style.SUCCESS(f"Created: {result['created']}"))
            self.stdout.write(f"Failed: {result['failed']}")
