from django.core.cache import cache
from django.core.management.base import BaseCommand

from blood.outreach import run_replenishment
from inventory.thresholds import stock_levels


class Command(BaseCommand):
    help = "Report blood groups below their minimum stock; --notify asks eligible donors to come in."

    def add_arguments(self, parser):
        parser.add_argument("--notify", action="store_true", help="Send REPLENISHMENT notifications.")

    def handle(self, *args, **options):
        lock_key = "bb:check_inventory_thresholds:lock"
        if not cache.add(lock_key, 1, timeout=300):
            self.stdout.write("Another check_inventory_thresholds run is active. Exiting.")
            return

        try:
            short = 0
            notified = 0
            for row in stock_levels():
                line = (
                    f"{row['blood_group']:>3}: {row['units']} unit(s) "
                    f"[min {row['minimum_units']}, target {row['target_units']}] {row['status'].upper()}"
                )
                if not row["needs_donors"]:
                    self.stdout.write(line)
                    continue

                short += 1
                self.stdout.write(self.style.WARNING(line))
                if options["notify"]:
                    notified += len(run_replenishment(row["blood_group"], shortage=row["shortage"]))

            msg = f"Groups below minimum: {short}"
            if options["notify"]:
                msg += f"; donors notified: {notified}"
            self.stdout.write(self.style.SUCCESS(msg))
        finally:
            cache.delete(lock_key)
