from django.conf import settings
from django.db import models
from django.utils import timezone

from accounts.models import BLOOD_GROUPS

MIN_REQUEST_UNITS = 1
MAX_REQUEST_UNITS = 10


class BloodRequest(models.Model):
    """
    A requester's ask for units of one blood group.

    Status only moves through blood.lifecycle; rows are never deleted, they end
    VERIFIED, REJECTED, CANCELLED or NO_SHOW.
    """
    STATUS = [
        ("PENDING", "Pending"),
        ("APPROVED", "Approved"),
        ("REJECTED", "Rejected"),
        ("COLLECTED", "Collected"),
        ("VERIFIED", "Verified"),
        ("CANCELLED", "Cancelled"),
        ("NO_SHOW", "No show"),
    ]
    URGENCY = [
        ("LOW", "Low"),
        ("MEDIUM", "Medium"),
        ("HIGH", "High"),
        ("CRITICAL", "Critical"),
    ]
    TERMINAL = ("REJECTED", "VERIFIED", "CANCELLED", "NO_SHOW")

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="blood_requests",
    )

    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    units_requested = models.PositiveSmallIntegerField()
    urgency = models.CharField(max_length=10, choices=URGENCY, default="MEDIUM")
    status = models.CharField(max_length=12, choices=STATUS, default="PENDING")

    patient_name = models.CharField(max_length=100, blank=True)
    hospital_name = models.CharField(max_length=150, blank=True)
    contact_number = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)

    # capped at units_requested; surplus stays in general stock
    units_collected = models.PositiveSmallIntegerField(default=0)
    awaiting_donations = models.BooleanField(default=False)

    allocation = models.OneToOneField(
        "inventory.AllocationReceipt",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="blood_request",
    )

    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="blood_requests_approved",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    collection_date = models.DateField(null=True, blank=True)
    collection_location = models.CharField(max_length=120, blank=True)
    collection_instructions = models.TextField(blank=True)

    fulfilled_at = models.DateTimeField(null=True, blank=True)
    collected_at = models.DateTimeField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="blood_requests_verified",
    )

    reschedule_requested = models.BooleanField(default=False)
    reschedule_reason = models.TextField(blank=True)
    requested_collection_date = models.DateField(null=True, blank=True)
    original_collection_date = models.DateField(null=True, blank=True)

    no_show_at = models.DateTimeField(null=True, blank=True)
    no_show_reason = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    donors_notified = models.PositiveIntegerField(default=0)
    donors_responded = models.PositiveIntegerField(default=0)
    appointments_scheduled = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "blood_group"], name="request_status_group_idx"),
            models.Index(fields=["awaiting_donations", "status"], name="request_awaiting_idx"),
        ]

    def __str__(self):
        return f"Request#{self.id} {self.blood_group} x{self.units_requested} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL

    @property
    def is_fulfilled(self):
        return self.fulfilled_at is not None

    @property
    def units_outstanding(self):
        return max(0, self.units_requested - self.units_collected)


class Appointment(models.Model):
    STATUS = [
        ("SCHEDULED", "Scheduled"),
        ("CONFIRMED", "Confirmed"),
        ("IN_PROGRESS", "In progress"),
        ("COMPLETED", "Completed"),
        ("NO_SHOW", "No show"),
        ("CANCELLED", "Cancelled"),
    ]
    KIND = [
        ("REACTIVE", "Reactive (for a request)"),
        ("PROACTIVE", "Proactive"),
        ("WALK_IN", "Walk-in"),
    ]
    OPEN = ("SCHEDULED", "CONFIRMED", "IN_PROGRESS")

    donor = models.ForeignKey("accounts.DonorProfile", on_delete=models.PROTECT, related_name="appointments")
    request = models.ForeignKey(
        BloodRequest,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="appointments",
    )
    notification = models.ForeignKey(
        "communication.Notification",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="appointments",
    )

    scheduled_date = models.DateField()
    scheduled_time = models.TimeField(null=True, blank=True)
    location = models.CharField(max_length=120, blank=True)

    status = models.CharField(max_length=12, choices=STATUS, default="SCHEDULED", db_index=True)
    kind = models.CharField(max_length=10, choices=KIND, default="PROACTIVE")

    units_collected = models.PositiveSmallIntegerField(default=0)
    admin_notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="appointments_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["scheduled_date", "scheduled_time", "id"]

    def __str__(self):
        return f"Appointment#{self.id} {self.donor} on {self.scheduled_date} ({self.status})"

    @property
    def is_open(self):
        return self.status in self.OPEN


class Donation(models.Model):
    """
    Append-only donation history. One row per collection, whether it came
    through an appointment or was recorded directly by an admin.
    """
    donor = models.ForeignKey("accounts.DonorProfile", on_delete=models.PROTECT, related_name="donations")
    units = models.PositiveSmallIntegerField()
    collected_on = models.DateField(default=timezone.localdate)
    location = models.CharField(max_length=120, blank=True)

    request = models.ForeignKey(
        BloodRequest,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations",
    )
    appointment = models.OneToOneField(
        Appointment,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donation",
    )
    batch = models.ForeignKey(
        "inventory.InventoryBatch",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations",
    )

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations_recorded",
    )
    notes = models.TextField(blank=True)
    # set when an admin recorded the donation inside the cooldown window
    eligibility_warning = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-collected_on", "-id"]

    def __str__(self):
        return f"Donation#{self.id} {self.donor} x{self.units} on {self.collected_on}"
