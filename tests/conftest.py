from datetime import timedelta

import pytest
from django.utils import timezone

from accounts.models import CustomUser, DonorProfile
from communication.dispatch import DispatchAck, DispatchError, NotificationDispatcher
from inventory.models import InventoryBatch


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, accept=True, fail=False):
        self.accept = accept
        self.fail = fail
        self.sent = []

    def send(self, user_id, payload):
        if self.fail:
            raise DispatchError("gateway down")
        self.sent.append((user_id, payload))
        return DispatchAck(accepted=self.accept, reference=f"rec-{len(self.sent)}")

    def kinds_for(self, user_id):
        return [p["kind"] for uid, p in self.sent if uid == user_id]


@pytest.fixture(autouse=True)
def _quiet_dispatch(settings):
    settings.BB_NOTIFICATION_DISPATCHER = "communication.dispatch.NullDispatcher"


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)


@pytest.fixture
def refusing_dispatcher():
    return RecordingDispatcher(accept=False)


@pytest.fixture
def make_user(db):
    def _make(username, role="EXTERNAL", **extra):
        return CustomUser.objects.create_user(username=username, password="pass-1234", role=role, **extra)
    return _make


@pytest.fixture
def bank_admin(make_user):
    return make_user("bank_admin", role="ADMIN")


@pytest.fixture
def hospital(make_user):
    return make_user("city_hospital", role="HOSPITAL")


@pytest.fixture
def requester(make_user):
    return make_user("family_member", role="EXTERNAL")


@pytest.fixture
def make_donor(make_user):
    counter = {"n": 0}

    def _make(blood_group="O+", last_donation_date=None, is_active=True):
        counter["n"] += 1
        user = make_user(f"donor{counter['n']}", role="DONOR")
        return DonorProfile.objects.create(
            user=user,
            blood_group=blood_group,
            last_donation_date=last_donation_date,
            is_active=is_active,
        )
    return _make


@pytest.fixture
def make_batch(db, today):
    def _make(blood_group, units, expires_in=30, location=""):
        expiry = today + timedelta(days=expires_in)
        return InventoryBatch.objects.create(
            blood_group=blood_group,
            units=units,
            collection_date=expiry - timedelta(days=35),
            expiry_date=expiry,
            location=location,
        )
    return _make
