import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .dispatch import deliver
from .models import Notification

logger = logging.getLogger(__name__)

URGENCY_PRIORITY = {
    "LOW": "LOW",
    "MEDIUM": "NORMAL",
    "HIGH": "HIGH",
    "CRITICAL": "URGENT",
}


def default_expiry(now=None):
    hours = int(getattr(settings, "BB_NOTIFICATION_EXPIRY_HOURS", 24))
    return (now or timezone.now()) + timedelta(hours=hours)


def notify(recipient, kind, title, body="", priority="NORMAL", request=None, appointment=None,
           blood_group="", expires_at=None, outreach_cycle=0, created_by=None, dispatcher=None):
    """Persist one notification and hand it to the dispatcher."""
    n = Notification.objects.create(
        recipient=recipient,
        kind=kind,
        priority=priority,
        title=title,
        body=body,
        blood_group=blood_group or "",
        request=request,
        appointment=appointment,
        outreach_cycle=outreach_cycle,
        expires_at=expires_at,
        created_by=created_by,
    )
    deliver(n, dispatcher=dispatcher)
    return n


def expire_stale(now=None):
    """Persist the expiry that reads already compute lazily."""
    count = Notification.objects.stale(now).update(status="EXPIRED")
    if count:
        logger.info("Expired %s notification(s)", count)
    return count
