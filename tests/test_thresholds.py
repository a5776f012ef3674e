import pytest

from core.exceptions import ValidationError
from inventory.models import InventoryThreshold
from inventory.thresholds import DEFAULT_THRESHOLDS, classify, ensure_thresholds, stock_levels, update_threshold


@pytest.mark.parametrize("units,expected", [(0, "critical"), (4, "critical"), (5, "low"), (9, "low"), (10, "normal"), (25, "optimal")])
def test_classify(units, expected):
    threshold = InventoryThreshold(blood_group="A+", minimum_units=10, target_units=25)
    assert classify(units, threshold) == expected


def test_disabled_alerts_are_normal():
    threshold = InventoryThreshold(blood_group="A+", minimum_units=10, target_units=25, alert_enabled=False)
    assert classify(0, threshold) == "normal"


@pytest.mark.django_db
def test_defaults_created_once():
    InventoryThreshold.objects.create(blood_group="O-", minimum_units=2, target_units=4)

    assert ensure_thresholds() == len(DEFAULT_THRESHOLDS) - 1
    assert ensure_thresholds() == 0
    assert InventoryThreshold.objects.get(blood_group="O-").minimum_units == 2


@pytest.mark.django_db
def test_stock_levels_report_shortage(make_batch, today):
    make_batch("AB-", 1)

    row = next(r for r in stock_levels(today=today) if r["blood_group"] == "AB-")

    assert row["units"] == 1
    assert row["status"] == "low"
    assert row["needs_donors"]
    assert row["shortage"] == 7


@pytest.mark.django_db
def test_update_threshold_upserts_and_keeps_omitted_values():
    t = update_threshold("b-", minimum_units=7)

    assert t.blood_group == "B-"
    assert t.minimum_units == 7
    assert t.target_units == DEFAULT_THRESHOLDS["B-"][1]

    update_threshold("B-", alert_enabled=False)
    stored = InventoryThreshold.objects.get(blood_group="B-")
    assert stored.minimum_units == 7
    assert stored.alert_enabled is False


@pytest.mark.django_db
def test_update_threshold_validation():
    with pytest.raises(ValidationError):
        update_threshold("B-", minimum_units=20, target_units=10)
    with pytest.raises(ValidationError):
        update_threshold("B-", minimum_units=-1)
    with pytest.raises(ValidationError):
        update_threshold("B-", alert_enabled="yes")
    with pytest.raises(ValidationError):
        update_threshold("C+", minimum_units=1)
