import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.models import DonorProfile
from core.exceptions import IneligibleDonorError, ValidationError
from core.validation import clean_date, clean_units
from inventory.ledger import deposit
from .eligibility import days_until_eligible
from .lifecycle import reevaluate_fulfillment
from .models import Donation

logger = logging.getLogger(__name__)

MIN_DONATION_UNITS = 1
MAX_DONATION_UNITS = 2


def record_donation(donor, units, recorded_by=None, collected_on=None, location=None, notes="",
                    request=None, appointment=None, today=None):
    """
    Book one collection: donation history row, donor's last donation date,
    ledger deposit and (when linked) the request's fulfillment check.

    An inactive donor is refused. A donor still inside the cooldown is
    recorded anyway with an eligibility_warning; the admin is overriding.
    """
    units = clean_units(units, minimum=MIN_DONATION_UNITS, maximum=MAX_DONATION_UNITS)
    today = today or timezone.localdate()
    collected_on = clean_date(collected_on, field="collected_on") or today
    if collected_on > today:
        raise ValidationError("A donation cannot be recorded in the future.", field="collected_on")
    location = (location or "").strip() or getattr(settings, "BB_DEFAULT_COLLECTION_LOCATION", "Main blood bank")

    with transaction.atomic():
        donor = DonorProfile.objects.select_for_update().select_related("user").get(pk=donor.pk)
        if not donor.is_active:
            raise IneligibleDonorError(f"Donor {donor.user.username} is deactivated.", days_until_eligible=0)

        warning = ""
        wait = days_until_eligible(donor.last_donation_date, collected_on)
        if wait:
            warning = f"Recorded {wait} day(s) before the donor's cooldown ended."
            logger.warning(
                "Donation by %s recorded inside cooldown (%s day(s) left), by %s",
                donor.user.username, wait, recorded_by,
            )

        batch = deposit(donor.blood_group, units, collection_date=collected_on, location=location,
                        donor=donor, today=today)

        if not donor.last_donation_date or collected_on > donor.last_donation_date:
            donor.last_donation_date = collected_on
            donor.save(update_fields=["last_donation_date", "updated_at"])

        donation = Donation.objects.create(
            donor=donor,
            units=units,
            collected_on=collected_on,
            location=location,
            request=request,
            appointment=appointment,
            batch=batch,
            recorded_by=recorded_by,
            notes=(notes or "").strip(),
            eligibility_warning=warning,
        )

        if request is not None:
            reevaluate_fulfillment(request.pk, units, today=today)

    logger.info("Donation #%s: %s gave %s x%s", donation.pk, donor.user.username, donor.blood_group, units)
    return donation
