"""
Donor appointments.

    SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED
    any open status -> CANCELLED / NO_SHOW

Transitions only move forward; CANCELLED, NO_SHOW and COMPLETED are final.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import DonorProfile
from communication.services import notify
from core.exceptions import IneligibleDonorError, StaleStateError, ValidationError
from core.transitions import atomic_transition, compare_and_set
from core.validation import clean_date, clean_reason, clean_units
from .donations import MAX_DONATION_UNITS, MIN_DONATION_UNITS, record_donation
from .eligibility import check_eligibility
from .models import Appointment, BloodRequest

logger = logging.getLogger(__name__)

KINDS = {code for code, _ in Appointment.KIND}


def schedule(donor, scheduled_date, scheduled_time=None, location=None, created_by=None,
             request=None, notification=None, kind=None, dispatcher=None, today=None):
    """
    Book a donor visit. The donor must be active, free of other open
    appointments and past the cooldown on the scheduled date.
    """
    today = today or timezone.localdate()
    scheduled_date = clean_date(scheduled_date, field="scheduled_date")
    if scheduled_date is None or scheduled_date < today:
        raise ValidationError("scheduled_date must be today or later.", field="scheduled_date")

    kind = (kind or ("REACTIVE" if request is not None else "PROACTIVE")).upper()
    if kind not in KINDS:
        raise ValidationError(f"Unknown appointment kind: {kind!r}.", field="kind")

    if request is not None and request.status not in ("PENDING", "APPROVED"):
        raise StaleStateError(
            f"Request #{request.pk} is {request.status}; donations can no longer be booked for it.",
            expected=("PENDING", "APPROVED"),
            actual=request.status,
        )

    location = (location or "").strip() or getattr(settings, "BB_DEFAULT_COLLECTION_LOCATION", "Main blood bank")

    with transaction.atomic():
        # serializes bookings of the same donor
        donor = DonorProfile.objects.select_for_update().select_related("user").get(pk=donor.pk)

        elig = check_eligibility(donor, on=scheduled_date)
        if not elig.is_active:
            raise IneligibleDonorError(f"Donor {donor.user.username} is deactivated.")
        if not elig.is_available:
            raise IneligibleDonorError(f"Donor {donor.user.username} already has an open appointment.")
        if not elig.is_eligible:
            raise IneligibleDonorError(
                f"Donor {donor.user.username} is not eligible until {elig.next_eligible_date}.",
                days_until_eligible=elig.days_until_eligible,
            )

        appt = Appointment.objects.create(
            donor=donor,
            request=request,
            notification=notification,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            location=location,
            kind=kind,
            created_by=created_by,
        )

        if request is not None:
            BloodRequest.objects.filter(pk=request.pk).update(
                appointments_scheduled=F("appointments_scheduled") + 1,
                updated_at=timezone.now(),
            )

    logger.info("Appointment #%s booked for %s on %s (%s)", appt.pk, donor.user.username, scheduled_date, kind)

    when = f"{scheduled_date:%Y-%m-%d}" + (f" at {scheduled_time:%H:%M}" if scheduled_time else "")
    notify(
        donor.user,
        "APPOINTMENT_CONFIRMATION",
        title="Your donation appointment",
        body=f"You are booked to donate on {when} at {location}.",
        request=request,
        appointment=appt,
        blood_group=donor.blood_group,
        created_by=created_by,
        dispatcher=dispatcher,
    )
    return appt


def schedule_from_response(notification, scheduled_date, scheduled_time=None, location=None,
                           created_by=None, dispatcher=None, today=None):
    """Turn an accepted outreach notification into a reactive appointment."""
    if notification.status != "RESPONDED" or notification.response_action != "ACCEPT":
        raise StaleStateError(
            f"Notification #{notification.pk} was not accepted by the donor.",
            expected=("RESPONDED",),
            actual=notification.status,
        )

    donor = DonorProfile.objects.get(user_id=notification.recipient_id)
    return schedule(
        donor,
        scheduled_date,
        scheduled_time=scheduled_time,
        location=location,
        created_by=created_by,
        request=notification.request,
        notification=notification,
        kind="REACTIVE" if notification.request_id else "PROACTIVE",
        dispatcher=dispatcher,
        today=today,
    )


def confirm(appt):
    return compare_and_set(appt, ("SCHEDULED",), "CONFIRMED", confirmed_at=timezone.now())


def start(appt):
    return compare_and_set(appt, ("SCHEDULED", "CONFIRMED"), "IN_PROGRESS", started_at=timezone.now())


def cancel(appt, reason):
    reason = clean_reason(reason)
    return compare_and_set(appt, Appointment.OPEN, "CANCELLED", cancellation_reason=reason)


def mark_no_show(appt):
    return compare_and_set(appt, Appointment.OPEN, "NO_SHOW")


def complete_donation(appt, units_collected, location=None, notes="", recorded_by=None,
                      dispatcher=None, today=None):
    """
    Close the appointment and book what was collected, all in one
    transaction: status, donor history, ledger deposit and the linked
    request's fulfillment. The thank-you goes out after commit.
    """
    units = clean_units(units_collected, field="units_collected",
                        minimum=MIN_DONATION_UNITS, maximum=MAX_DONATION_UNITS)

    with atomic_transition(appt):
        compare_and_set(
            appt, Appointment.OPEN, "COMPLETED",
            completed_at=timezone.now(),
            units_collected=units,
            admin_notes=(notes or "").strip(),
        )
        donation = record_donation(
            appt.donor,
            units,
            recorded_by=recorded_by,
            location=location or appt.location,
            notes=notes,
            request=appt.request,
            appointment=appt,
            today=today,
        )

    donor_user = appt.donor.user
    transaction.on_commit(lambda: notify(
        donor_user,
        "DONATION_THANKS",
        title="Thank you for donating",
        body=f"Your {units} unit(s) of {appt.donor.blood_group} are now in stock.",
        request=appt.request,
        appointment=appt,
        blood_group=appt.donor.blood_group,
        created_by=recorded_by,
        dispatcher=dispatcher,
    ))
    return donation
