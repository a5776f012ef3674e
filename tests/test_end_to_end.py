from datetime import timedelta

import pytest

from blood import appointments, lifecycle
from blood.models import BloodRequest
from blood.outreach import record_response
from communication.models import Notification
from core.exceptions import InsufficientInventoryError
from inventory.ledger import total_available


@pytest.mark.django_db
def test_o_positive_request_fulfilled_by_two_donors(hospital, bank_admin, make_donor, dispatcher, today):
    alice = make_donor("O+")
    bob = make_donor("O+", last_donation_date=today - timedelta(days=120))
    assert total_available("O+", today=today) == 0

    req = lifecycle.create_request(hospital, "O+", 2, urgency="HIGH", hospital_name="Bir Hospital")
    assert req.status == "PENDING"

    # no stock: approval fails, the request waits and outreach starts
    with pytest.raises(InsufficientInventoryError):
        lifecycle.approve(req, bank_admin, dispatcher=dispatcher, today=today)
    req.refresh_from_db()
    assert req.status == "PENDING"
    assert req.awaiting_donations
    assert req.donors_notified == 2

    notes = {n.recipient_id: n for n in Notification.objects.filter(request=req, kind="DONATION_REQUEST")}
    assert set(notes) == {alice.user_id, bob.user_id}

    # both donors accept and get booked
    booked = []
    for donor in (alice, bob):
        n = notes[donor.user_id]
        record_response(n, "ACCEPT", user=donor.user)
        booked.append(appointments.schedule_from_response(
            n, today, created_by=bank_admin, dispatcher=dispatcher, today=today,
        ))
    req.refresh_from_db()
    assert req.donors_responded == 2
    assert req.appointments_scheduled == 2

    first, second = booked
    appointments.confirm(first)
    appointments.start(first)
    appointments.complete_donation(first, 1, recorded_by=bank_admin, today=today)
    req.refresh_from_db()
    assert req.status == "PENDING"
    assert req.units_collected == 1

    appointments.complete_donation(second, 1, recorded_by=bank_admin, today=today)
    req.refresh_from_db()
    assert req.status == "APPROVED"
    assert req.fulfilled_at is not None
    assert req.collection_date == today + timedelta(days=1)
    assert not req.awaiting_donations
    assert total_available("O+", today=today) == 0

    lifecycle.confirm_collection(req, hospital)
    assert BloodRequest.objects.get(pk=req.pk).status == "COLLECTED"

    lifecycle.verify(req, bank_admin)
    assert BloodRequest.objects.get(pk=req.pk).status == "VERIFIED"
