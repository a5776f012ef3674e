from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

BLOOD_GROUPS = [
    ("A+", "A+"), ("A-", "A-"),
    ("B+", "B+"), ("B-", "B-"),
    ("AB+", "AB+"), ("AB-", "AB-"),
    ("O+", "O+"), ("O-", "O-"),
]
BLOOD_GROUP_CODES = {code for code, _ in BLOOD_GROUPS}


class CustomUser(AbstractUser):
    """
    Core User model.
    Admins run the bank, hospitals and external requesters ask for blood,
    donors give it.
    """
    ROLE = [
        ("ADMIN", "Blood bank admin"),
        ("HOSPITAL", "Hospital"),
        ("DONOR", "Donor"),
        ("EXTERNAL", "External requester"),
    ]

    role = models.CharField(max_length=10, choices=ROLE, default="EXTERNAL", db_index=True)
    phone_number = models.CharField(max_length=15, blank=True)

    def __str__(self):
        return self.username

    @property
    def is_bank_admin(self):
        return self.is_superuser or self.role == "ADMIN"

    @property
    def is_hospital(self):
        return self.role == "HOSPITAL"

    @property
    def is_donor(self):
        return self.role == "DONOR"


class DonorProfile(models.Model):
    """
    Medical side of a donor.

    Eligibility is never stored here: it is derived from last_donation_date
    (see blood.eligibility).
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="donor_profile")

    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    is_active = models.BooleanField(default=True, help_text="Admin control. Inactive donors are never contacted.")
    last_donation_date = models.DateField(null=True, blank=True)
    eligibility_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["blood_group", "is_active"], name="donor_group_active_idx"),
        ]

    def __str__(self):
        return f"Donor {self.user.username} ({self.blood_group})"
