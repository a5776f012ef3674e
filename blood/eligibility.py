from dataclasses import dataclass
from datetime import date, timedelta

from django.utils import timezone

from .models import Appointment

ELIGIBILITY_DAYS = 90


@dataclass(frozen=True)
class Eligibility:
    is_eligible: bool
    days_until_eligible: int
    is_active: bool
    is_available: bool
    next_eligible_date: date = None

    def as_dict(self):
        return {
            "is_eligible": self.is_eligible,
            "days_until_eligible": self.days_until_eligible,
            "is_active": self.is_active,
            "is_available": self.is_available,
            "next_eligible_date": self.next_eligible_date.isoformat() if self.next_eligible_date else None,
        }


def cooldown_cutoff(on):
    """Latest last-donation date that still allows a donation on `on`."""
    return on - timedelta(days=ELIGIBILITY_DAYS)


def next_eligible_date(last_donation_date):
    if not last_donation_date:
        return None
    return last_donation_date + timedelta(days=ELIGIBILITY_DAYS)


def days_until_eligible(last_donation_date, on):
    if not last_donation_date:
        return 0
    return max(0, ELIGIBILITY_DAYS - (on - last_donation_date).days)


def has_open_appointment(donor):
    return Appointment.objects.filter(donor=donor, status__in=Appointment.OPEN).exists()


def check_eligibility(donor, on=None):
    """
    Cooldown and availability of `donor` on day `on` (today by default).

    Nothing is stored: the answer is recomputed from last_donation_date,
    the admin's is_active flag and the donor's open appointments.
    """
    on = on or timezone.localdate()
    wait = days_until_eligible(donor.last_donation_date, on)
    is_active = bool(donor.is_active and donor.user.is_active)

    return Eligibility(
        is_eligible=wait == 0,
        days_until_eligible=wait,
        is_active=is_active,
        is_available=is_active and not has_open_appointment(donor),
        next_eligible_date=next_eligible_date(donor.last_donation_date),
    )
