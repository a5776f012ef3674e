"""
Donor outreach: find donors of a group who can give now, notify them, and
take their ACCEPT/DECLINE answers.
"""
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import F, Max, Q
from django.utils import timezone

from accounts.models import DonorProfile
from communication.dispatch import deliver, get_dispatcher
from communication.models import Notification
from communication.services import URGENCY_PRIORITY, default_expiry
from core.exceptions import StaleStateError, ValidationError
from core.validation import clean_blood_group
from inventory.models import InventoryThreshold
from inventory.thresholds import stock_levels
from .eligibility import cooldown_cutoff
from .models import Appointment, BloodRequest

logger = logging.getLogger(__name__)

ACTIONS = {code for code, _ in Notification.ACTIONS}


def find_candidates(blood_group, exclude_request=None, limit=None, today=None):
    """
    Active donors of exactly `blood_group` who are past their cooldown and
    have no open appointment. Never-donated and longest-rested donors first.
    """
    group = clean_blood_group(blood_group)
    today = today or timezone.localdate()

    qs = (
        DonorProfile.objects
        .filter(blood_group=group, is_active=True, user__is_active=True)
        .filter(Q(last_donation_date__isnull=True) | Q(last_donation_date__lte=cooldown_cutoff(today)))
        .exclude(appointments__status__in=Appointment.OPEN)
        .select_related("user")
        .order_by(F("last_donation_date").asc(nulls_first=True), "id")
    )

    if exclude_request is not None:
        already = (
            Notification.objects.active()
            .filter(request=exclude_request, kind="DONATION_REQUEST")
            .values("recipient_id")
        )
        qs = qs.exclude(user_id__in=already)

    if limit is not None:
        qs = qs[:limit]
    return list(qs)


def _target_count(units):
    per_unit = int(getattr(settings, "BB_OUTREACH_DONORS_PER_UNIT", 3))
    cap = int(getattr(settings, "BB_OUTREACH_MAX_DONORS", 10))
    return min(units * per_unit, cap)


def run_outreach_cycle(req, created_by=None, dispatcher=None, today=None):
    """
    Notify donors for a PENDING request that still needs donations.

    Donors who already hold an active notification for this request are
    skipped. Returns the notifications created in this cycle.
    """
    if req.status != "PENDING":
        raise StaleStateError(
            f"Request #{req.pk} is {req.status}; outreach only runs for PENDING requests.",
            expected=("PENDING",),
            actual=req.status,
        )

    outstanding = req.units_outstanding
    if outstanding <= 0:
        return []

    now = timezone.now()
    expires_at = default_expiry(now)

    with transaction.atomic():
        # one cycle per request at a time
        list(BloodRequest.objects.select_for_update().filter(pk=req.pk).values_list("pk", flat=True))

        donors = find_candidates(req.blood_group, exclude_request=req, limit=_target_count(outstanding), today=today)
        if not donors:
            logger.info("Outreach for request #%s: no eligible %s donors", req.pk, req.blood_group)
            return []

        cycle = (Notification.objects.filter(request=req).aggregate(m=Max("outreach_cycle"))["m"] or 0) + 1
        title = f"{req.blood_group} blood needed"
        body = (
            f"A patient needs {req.units_requested} unit(s) of {req.blood_group}. "
            f"You are eligible to donate. Can you come in?"
        )

        notifications = [
            Notification.objects.create(
                recipient=donor.user,
                kind="DONATION_REQUEST",
                priority=URGENCY_PRIORITY.get(req.urgency, "NORMAL"),
                title=title,
                body=body,
                blood_group=req.blood_group,
                request=req,
                outreach_cycle=cycle,
                expires_at=expires_at,
                created_by=created_by,
            )
            for donor in donors
        ]

        BloodRequest.objects.filter(pk=req.pk).update(
            donors_notified=F("donors_notified") + len(notifications),
            updated_at=now,
        )
        req.donors_notified += len(notifications)

    dispatcher = dispatcher or get_dispatcher()
    sent = sum(1 for n in notifications if deliver(n, dispatcher=dispatcher))

    logger.info(
        "Outreach cycle %s for request #%s: %s donor(s) notified, %s dispatched",
        cycle, req.pk, len(notifications), sent,
    )
    return notifications


def record_response(notification, action, message="", user=None):
    """
    Store a donor's ACCEPT/DECLINE. An expired notification is persisted as
    EXPIRED and refused with StaleStateError.
    """
    if user is not None and user.pk != notification.recipient_id and not user.is_bank_admin:
        raise PermissionDenied("This notification belongs to another user.")

    action = (action or "").strip().upper() if isinstance(action, str) else ""
    if action not in ACTIONS:
        raise ValidationError("action must be ACCEPT or DECLINE.", field="action")

    now = timezone.now()
    with transaction.atomic():
        n = Notification.objects.select_for_update().get(pk=notification.pk)

        expired = n.status in Notification.LIVE and n.is_expired(now)
        if expired:
            Notification.objects.filter(pk=n.pk).update(status="EXPIRED")
        elif n.status not in Notification.LIVE:
            raise StaleStateError(
                f"Notification #{n.pk} is {n.status}; it can no longer be answered.",
                expected=Notification.LIVE,
                actual=n.status,
            )
        else:
            Notification.objects.filter(pk=n.pk).update(
                status="RESPONDED",
                responded_at=now,
                response_action=action,
                response_message=(message or "").strip(),
            )
            if n.request_id:
                BloodRequest.objects.filter(pk=n.request_id).update(
                    donors_responded=F("donors_responded") + 1,
                    updated_at=now,
                )

    if expired:
        notification.status = "EXPIRED"
        raise StaleStateError(
            f"Notification #{n.pk} expired at {n.expires_at:%Y-%m-%d %H:%M}.",
            expected=Notification.LIVE,
            actual="EXPIRED",
        )

    notification.status = "RESPONDED"
    notification.responded_at = now
    notification.response_action = action
    notification.response_message = (message or "").strip()
    logger.info("Notification #%s answered %s by user %s", n.pk, action, n.recipient_id)
    return notification


def run_replenishment(blood_group, shortage=None, created_by=None, dispatcher=None, today=None):
    """
    Proactive REPLENISHMENT notifications for a group below its threshold.
    Not tied to any request; donors with a live replenishment notice for the
    group are skipped.
    """
    group = clean_blood_group(blood_group)
    today = today or timezone.localdate()

    if shortage is None:
        level = next((row for row in stock_levels(today=today) if row["blood_group"] == group), None)
        shortage = level["shortage"] if level else 0
    if shortage <= 0:
        return []

    live = (
        Notification.objects.active()
        .filter(kind="REPLENISHMENT", blood_group=group)
        .values_list("recipient_id", flat=True)
    )
    skip = set(live)
    donors = [d for d in find_candidates(group, today=today) if d.user_id not in skip][:_target_count(shortage)]
    if not donors:
        return []

    now = timezone.now()
    expires_at = default_expiry(now)
    notifications = [
        Notification.objects.create(
            recipient=donor.user,
            kind="REPLENISHMENT",
            priority="HIGH",
            title=f"{group} stock is running low",
            body=f"Our {group} stock is below its safe level. Please book a donation if you can.",
            blood_group=group,
            expires_at=expires_at,
            created_by=created_by,
        )
        for donor in donors
    ]
    InventoryThreshold.objects.filter(blood_group=group).update(last_alert_at=now)

    dispatcher = dispatcher or get_dispatcher()
    for n in notifications:
        deliver(n, dispatcher=dispatcher)

    logger.info("Replenishment outreach for %s: %s donor(s) notified", group, len(notifications))
    return notifications
