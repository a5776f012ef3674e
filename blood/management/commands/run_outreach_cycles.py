from django.core.cache import cache
from django.core.management.base import BaseCommand

from blood.models import BloodRequest
from blood.outreach import run_outreach_cycle
from communication.dispatch import get_dispatcher


class Command(BaseCommand):
    help = "Notify more donors for PENDING requests that are still awaiting donations."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=50, help="Max requests handled in one run.")

    def handle(self, *args, **options):
        # Prevent overlapping executions
        lock_key = "bb:run_outreach_cycles:lock"
        if not cache.add(lock_key, 1, timeout=300):
            self.stdout.write("Another run_outreach_cycles run is active. Exiting.")
            return

        try:
            qs = (
                BloodRequest.objects
                .filter(status="PENDING", awaiting_donations=True)
                .order_by("created_at")[: options["limit"]]
            )

            dispatcher = get_dispatcher()
            requests_done = 0
            notified = 0
            for req in qs:
                sent = run_outreach_cycle(req, dispatcher=dispatcher)
                notified += len(sent)
                requests_done += 1

            self.stdout.write(self.style.SUCCESS(
                f"Outreach ran for {requests_done} request(s); donors notified: {notified}"
            ))
        finally:
            cache.delete(lock_key)
