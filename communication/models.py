from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from accounts.models import BLOOD_GROUPS


class NotificationQuerySet(models.QuerySet):
    def active(self, now=None):
        """Not responded to and not past expires_at."""
        now = now or timezone.now()
        return self.filter(status__in=Notification.LIVE).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gt=now)
        )

    def stale(self, now=None):
        """Still marked live in the table although expires_at has passed."""
        now = now or timezone.now()
        return self.filter(status__in=Notification.LIVE, expires_at__lte=now)


class Notification(models.Model):
    KINDS = [
        ("DONATION_REQUEST", "Donation request"),
        ("APPOINTMENT_CONFIRMATION", "Appointment confirmation"),
        ("DONATION_THANKS", "Donation thanks"),
        ("ELIGIBILITY_REMINDER", "Eligibility reminder"),
        ("REPLENISHMENT", "Stock replenishment"),
    ]
    PRIORITIES = [("LOW", "Low"), ("NORMAL", "Normal"), ("HIGH", "High"), ("URGENT", "Urgent")]
    STATUS = [
        ("PENDING", "Pending"),
        ("SENT", "Sent"),
        ("READ", "Read"),
        ("RESPONDED", "Responded"),
        ("EXPIRED", "Expired"),
    ]
    ACTIONS = [("ACCEPT", "Accept"), ("DECLINE", "Decline")]

    # statuses a donor can still respond from
    LIVE = ("PENDING", "SENT", "READ")

    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")

    kind = models.CharField(max_length=30, choices=KINDS, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITIES, default="NORMAL")
    status = models.CharField(max_length=10, choices=STATUS, default="PENDING")

    title = models.CharField(max_length=120)
    body = models.TextField(blank=True)
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS, blank=True)

    request = models.ForeignKey(
        "blood.BloodRequest",
        null=True, blank=True,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    appointment = models.ForeignKey(
        "blood.Appointment",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="notifications",
    )
    outreach_cycle = models.PositiveIntegerField(default=0)

    expires_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    response_action = models.CharField(max_length=10, choices=ACTIONS, blank=True)
    response_message = models.TextField(blank=True)
    dispatch_reference = models.CharField(max_length=120, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="notifications_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "created_at"], name="notif_recipient_created_idx"),
            models.Index(fields=["request", "recipient", "status"], name="notif_request_recipient_idx"),
            models.Index(fields=["status", "expires_at"], name="notif_status_expiry_idx"),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} -> {self.recipient} ({self.effective_status})"

    def is_expired(self, now=None):
        if self.status not in self.LIVE or self.expires_at is None:
            return self.status == "EXPIRED"
        return self.expires_at <= (now or timezone.now())

    @property
    def effective_status(self):
        return "EXPIRED" if self.is_expired() else self.status

    def mark_read(self):
        if self.status in ("PENDING", "SENT") and not self.is_expired():
            self.read_at = timezone.now()
            self.status = "READ"
            self.save(update_fields=["read_at", "status"])

    def as_payload(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "priority": self.priority,
            "title": self.title,
            "body": self.body,
            "blood_group": self.blood_group,
            "request_id": self.request_id,
            "appointment_id": self.appointment_id,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
