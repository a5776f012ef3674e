from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import DonorProfile
from blood.eligibility import cooldown_cutoff, next_eligible_date
from communication.dispatch import get_dispatcher
from communication.models import Notification
from communication.services import notify


class Command(BaseCommand):
    help = "Remind donors on the day their 90-day cooldown ends."

    def handle(self, *args, **options):
        now = timezone.localtime(timezone.now())
        today = now.date()

        days_before = int(getattr(settings, "BB_ELIGIBILITY_REMIND_DAYS_BEFORE", 0))  # 0 = same day
        repeat_days = int(getattr(settings, "BB_ELIGIBILITY_REMIND_REPEAT_DAYS", 7))
        recent_cutoff = now - timedelta(days=repeat_days)

        target_date = today + timedelta(days=days_before)

        donors = (
            DonorProfile.objects
            .filter(is_active=True, user__is_active=True, last_donation_date=cooldown_cutoff(target_date))
            .select_related("user")
        )

        # anti-spam
        recently_reminded = set(
            Notification.objects
            .filter(kind="ELIGIBILITY_REMINDER", created_at__gte=recent_cutoff)
            .values_list("recipient_id", flat=True)
        )

        dispatcher = get_dispatcher()
        sent = 0

        for d in donors:
            if d.user_id in recently_reminded:
                continue

            eligible_date = next_eligible_date(d.last_donation_date)
            notify(
                d.user,
                "ELIGIBILITY_REMINDER",
                title="You can donate blood again",
                body=f"You are eligible to donate again from {eligible_date}.",
                blood_group=d.blood_group,
                dispatcher=dispatcher,
            )
            sent += 1

        self.stdout.write(self.style.SUCCESS(f"Eligibility reminders sent: {sent}"))
