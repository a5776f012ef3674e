from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from blood import lifecycle
from blood.models import BloodRequest
from communication.models import Notification
from inventory.models import InventoryThreshold


def run(name, *args):
    out = StringIO()
    call_command(name, *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
def test_run_outreach_cycles_picks_up_waiting_requests(hospital, make_donor):
    make_donor("B-")
    req = lifecycle.create_request(hospital, "B-", 1)
    BloodRequest.objects.filter(pk=req.pk).update(awaiting_donations=True)
    lifecycle.create_request(hospital, "B-", 1)  # not awaiting

    out = run("run_outreach_cycles")

    assert "donors notified: 1" in out
    assert Notification.objects.filter(request=req).count() == 1


@pytest.mark.django_db
def test_threshold_check_reports_and_notifies(make_donor, make_batch):
    InventoryThreshold.objects.create(blood_group="O-", minimum_units=8, target_units=20)
    make_batch("O-", 3)
    make_donor("O-")

    out = run("check_inventory_thresholds", "--notify")

    assert "O-: 3 unit(s)" in out
    assert "CRITICAL" in out
    assert "donors notified: 1" in out
    assert Notification.objects.filter(kind="REPLENISHMENT", blood_group="O-").count() == 1


@pytest.mark.django_db
def test_eligibility_reminders_once_per_window(make_donor, today):
    due = make_donor(last_donation_date=today - timedelta(days=90))
    make_donor(last_donation_date=today - timedelta(days=89))

    assert "sent: 1" in run("send_donor_eligibility_reminders")
    assert "sent: 0" in run("send_donor_eligibility_reminders")
    assert Notification.objects.get(kind="ELIGIBILITY_REMINDER").recipient_id == due.user_id


@pytest.mark.django_db
def test_expire_notifications(requester):
    Notification.objects.create(
        recipient=requester, kind="DONATION_REQUEST", title="old",
        expires_at=timezone.now() - timedelta(hours=2),
    )
    Notification.objects.create(
        recipient=requester, kind="DONATION_REQUEST", title="fresh",
        expires_at=timezone.now() + timedelta(hours=2),
    )

    assert "expired: 1" in run("expire_notifications")
    assert Notification.objects.get(title="old").status == "EXPIRED"
    assert Notification.objects.get(title="fresh").status == "PENDING"
