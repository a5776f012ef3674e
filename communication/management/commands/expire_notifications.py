from django.core.management.base import BaseCommand

from communication.services import expire_stale


class Command(BaseCommand):
    help = "Mark notifications past their expiry as EXPIRED."

    def handle(self, *args, **options):
        count = expire_stale()
        self.stdout.write(self.style.SUCCESS(f"Notifications expired: {count}"))
