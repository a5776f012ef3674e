from django.utils import timezone

from core.exceptions import ValidationError
from core.validation import clean_blood_group, clean_units
from .ledger import total_available
from .models import InventoryThreshold

# (minimum, target) per group
DEFAULT_THRESHOLDS = {
    "A+": (10, 25),
    "A-": (5, 15),
    "B+": (10, 25),
    "B-": (5, 15),
    "AB+": (3, 10),
    "AB-": (2, 8),
    "O+": (15, 35),
    "O-": (8, 20),
}


def ensure_thresholds():
    """Create the default row for any group that has none."""
    existing = set(InventoryThreshold.objects.values_list("blood_group", flat=True))
    rows = [
        InventoryThreshold(blood_group=group, minimum_units=minimum, target_units=target)
        for group, (minimum, target) in DEFAULT_THRESHOLDS.items()
        if group not in existing
    ]
    if rows:
        InventoryThreshold.objects.bulk_create(rows)
    return len(rows)


def classify(units, threshold):
    if not threshold.alert_enabled:
        return "normal"
    if units < threshold.minimum_units / 2:
        return "critical"
    if units < threshold.minimum_units:
        return "low"
    if units >= threshold.target_units:
        return "optimal"
    return "normal"


def stock_levels(today=None):
    today = today or timezone.localdate()
    ensure_thresholds()

    levels = []
    for t in InventoryThreshold.objects.all():
        units = total_available(t.blood_group, today=today)
        status = classify(units, t)
        levels.append({
            "blood_group": t.blood_group,
            "units": units,
            "minimum_units": t.minimum_units,
            "target_units": t.target_units,
            "status": status,
            "needs_donors": status in ("low", "critical"),
            "shortage": max(0, t.target_units - units) if status in ("low", "critical") else 0,
        })
    return levels


def groups_needing_donors(today=None):
    return [row for row in stock_levels(today=today) if row["needs_donors"]]


def update_threshold(blood_group, minimum_units=None, target_units=None, alert_enabled=None):
    """Create or change the threshold row of one group; omitted values keep their current setting."""
    group = clean_blood_group(blood_group)
    minimum, target = DEFAULT_THRESHOLDS[group]
    threshold, _ = InventoryThreshold.objects.get_or_create(
        blood_group=group,
        defaults={"minimum_units": minimum, "target_units": target},
    )

    if minimum_units is not None:
        threshold.minimum_units = clean_units(minimum_units, field="minimum_units", minimum=0)
    if target_units is not None:
        threshold.target_units = clean_units(target_units, field="target_units", minimum=0)
    if alert_enabled is not None:
        if not isinstance(alert_enabled, bool):
            raise ValidationError("alert_enabled must be true or false.", field="alert_enabled")
        threshold.alert_enabled = alert_enabled

    if threshold.target_units < threshold.minimum_units:
        raise ValidationError("target_units cannot be below minimum_units.", field="target_units")

    threshold.save(update_fields=["minimum_units", "target_units", "alert_enabled", "updated_at"])
    return threshold
