from django.core.management.base import BaseCommand

from backend.orders.services import release_expired_locks


class Command(BaseCommand):
    help = 'Releases order processing locks whose timeout has passed'

    def handle(self, *args, **options):
        released = release_expired_locks()
        self.stdout.write(self.style.SUCCESS(f"Released {released} expired locks"))
