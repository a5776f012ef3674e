from datetime import timedelta

from django.db import models
from django.utils import timezone

from accounts.models import BLOOD_GROUPS

SHELF_LIFE_DAYS = 35


def expiry_for(collection_date):
    return collection_date + timedelta(days=SHELF_LIFE_DAYS)


class InventoryBatch(models.Model):
    """
    Units of one blood group sharing a collection date (and so an expiry).
    A batch at 0 units is exhausted; expired batches stay until purged elsewhere.
    """
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS, db_index=True)
    units = models.PositiveIntegerField(default=0)

    collection_date = models.DateField()
    expiry_date = models.DateField(db_index=True)
    location = models.CharField(max_length=120, blank=True)

    donor = models.ForeignKey(
        "accounts.DonorProfile",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="batches",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["expiry_date", "id"]
        indexes = [
            models.Index(fields=["blood_group", "expiry_date"], name="batch_group_expiry_idx"),
        ]

    def __str__(self):
        return f"Batch#{self.id} {self.blood_group} x{self.units} (exp {self.expiry_date})"

    def save(self, *args, **kwargs):
        if not self.expiry_date and self.collection_date:
            self.expiry_date = expiry_for(self.collection_date)
        super().save(*args, **kwargs)

    def is_expired(self, today=None):
        today = today or timezone.localdate()
        return self.expiry_date <= today


class AllocationReceipt(models.Model):
    """
    Proof of one all-or-nothing allocation. restore() consumes it exactly once.
    """
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    units = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    restored_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        state = "restored" if self.restored_at else "open"
        return f"Receipt#{self.id} {self.blood_group} x{self.units} ({state})"

    @property
    def is_restored(self):
        return self.restored_at is not None


class AllocationLine(models.Model):
    receipt = models.ForeignKey(AllocationReceipt, on_delete=models.CASCADE, related_name="lines")
    batch = models.ForeignKey(
        InventoryBatch,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="allocation_lines",
    )
    # snapshot so a purged batch can be re-created on restore
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    expiry_date = models.DateField()
    units = models.PositiveIntegerField()

    def __str__(self):
        return f"Receipt#{self.receipt_id} <- Batch#{self.batch_id} x{self.units}"


class InventoryThreshold(models.Model):
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS, unique=True)
    minimum_units = models.PositiveIntegerField(default=5)
    target_units = models.PositiveIntegerField(default=20)
    alert_enabled = models.BooleanField(default=True)
    last_alert_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["blood_group"]

    def __str__(self):
        return f"{self.blood_group}: min {self.minimum_units} / target {self.target_units}"
