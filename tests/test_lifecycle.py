from datetime import timedelta

import pytest
from django.core.exceptions import PermissionDenied

from blood import lifecycle
from blood.models import BloodRequest
from core.exceptions import (
    ConcurrentModificationError,
    InsufficientInventoryError,
    StaleStateError,
    ValidationError,
)
from inventory.ledger import deposit, total_available
from inventory.models import InventoryBatch


@pytest.fixture
def a_plus_request(hospital):
    return lifecycle.create_request(hospital, "A+", 3, urgency="HIGH", patient_name="R. Shrestha")


@pytest.mark.django_db
def test_create_request_is_pending_even_without_stock(requester):
    req = lifecycle.create_request(requester, "O-", 4)

    assert req.status == "PENDING"
    assert req.units_collected == 0
    assert lifecycle.shortage_for(req) == 4


@pytest.mark.django_db
@pytest.mark.parametrize("units", [0, 11, "2"])
def test_create_request_validates_units(requester, units):
    with pytest.raises(ValidationError):
        lifecycle.create_request(requester, "O-", units)


@pytest.mark.django_db
def test_only_hospitals_raise_critical_requests(requester, hospital):
    with pytest.raises(ValidationError):
        lifecycle.create_request(requester, "B+", 1, urgency="CRITICAL")

    assert lifecycle.create_request(hospital, "B+", 1, urgency="critical").urgency == "CRITICAL"


@pytest.mark.django_db
def test_donors_cannot_open_requests(make_donor):
    donor = make_donor()
    with pytest.raises(PermissionDenied):
        lifecycle.create_request(donor.user, "O+", 1)


@pytest.mark.django_db
def test_approve_allocates_and_sets_collection(a_plus_request, bank_admin, make_batch, today):
    make_batch("A+", 5)

    lifecycle.approve(a_plus_request, bank_admin, today=today)

    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.status == "APPROVED"
    assert req.approved_by == bank_admin
    assert req.collection_date == today + timedelta(days=1)
    assert req.allocation.units == 3
    assert total_available("A+", today=today) == 2


@pytest.mark.django_db
def test_approve_on_shortage_keeps_request_pending(a_plus_request, bank_admin, make_batch, dispatcher, settings, today):
    settings.BB_AUTO_OUTREACH = False
    make_batch("A+", 2)

    with pytest.raises(InsufficientInventoryError) as exc:
        lifecycle.approve(a_plus_request, bank_admin, dispatcher=dispatcher, today=today)

    assert exc.value.available == 2
    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.status == "PENDING"
    assert req.awaiting_donations
    assert req.allocation is None
    assert total_available("A+", today=today) == 2
    assert dispatcher.sent == []


@pytest.mark.django_db
def test_approve_twice_is_stale(a_plus_request, bank_admin, make_batch, today):
    make_batch("A+", 10)
    lifecycle.approve(a_plus_request, bank_admin, today=today)

    with pytest.raises(StaleStateError):
        lifecycle.approve(a_plus_request, bank_admin, today=today)
    assert total_available("A+", today=today) == 7


@pytest.mark.django_db
def test_stale_instance_loses_compare_and_set(a_plus_request, bank_admin, hospital, make_batch, today):
    make_batch("A+", 10)
    stale = BloodRequest.objects.get(pk=a_plus_request.pk)

    lifecycle.cancel(a_plus_request, hospital, "Patient transferred")

    with pytest.raises(ConcurrentModificationError):
        lifecycle.approve(stale, bank_admin, today=today)
    # the allocation taken before the failed write was rolled back
    assert total_available("A+", today=today) == 10
    assert BloodRequest.objects.get(pk=a_plus_request.pk).status == "CANCELLED"


@pytest.mark.django_db
def test_cancel_restores_exactly_what_was_allocated(a_plus_request, bank_admin, hospital, make_batch, today):
    batch = make_batch("A+", 5)
    lifecycle.approve(a_plus_request, bank_admin, today=today)
    assert InventoryBatch.objects.get(pk=batch.pk).units == 2

    lifecycle.cancel(a_plus_request, hospital, "No longer needed")

    assert InventoryBatch.objects.get(pk=batch.pk).units == 5
    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.status == "CANCELLED"
    assert req.allocation.is_restored


@pytest.mark.django_db
def test_cancel_requires_reason_and_right_user(a_plus_request, requester):
    with pytest.raises(ValidationError):
        lifecycle.cancel(a_plus_request, a_plus_request.requester, "  ")
    with pytest.raises(PermissionDenied):
        lifecycle.cancel(a_plus_request, requester, "not mine")


@pytest.mark.django_db
def test_reject_needs_reason(a_plus_request, bank_admin):
    with pytest.raises(ValidationError):
        lifecycle.reject(a_plus_request, bank_admin, "")

    lifecycle.reject(a_plus_request, bank_admin, "Duplicate of #12")

    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.status == "REJECTED"
    assert req.rejection_reason == "Duplicate of #12"


@pytest.mark.django_db
def test_collect_then_verify(a_plus_request, bank_admin, hospital, make_batch, today):
    make_batch("A+", 3)
    lifecycle.approve(a_plus_request, bank_admin, today=today)

    with pytest.raises(PermissionDenied):
        lifecycle.confirm_collection(a_plus_request, bank_admin)
    lifecycle.confirm_collection(a_plus_request, hospital)
    assert a_plus_request.status == "COLLECTED"
    # collection does not deduct a second time
    assert total_available("A+", today=today) == 0

    with pytest.raises(PermissionDenied):
        lifecycle.verify(a_plus_request, hospital)
    lifecycle.verify(a_plus_request, bank_admin)
    assert BloodRequest.objects.get(pk=a_plus_request.pk).status == "VERIFIED"


@pytest.mark.django_db
def test_reschedule_accept_moves_collection_date(a_plus_request, bank_admin, hospital, make_batch, today):
    make_batch("A+", 3)
    lifecycle.approve(a_plus_request, bank_admin, today=today)
    original = a_plus_request.collection_date
    new_date = today + timedelta(days=4)

    with pytest.raises(ValidationError):
        lifecycle.request_reschedule(a_plus_request, hospital, today, "traffic", today=today)
    lifecycle.request_reschedule(a_plus_request, hospital, new_date.isoformat(), "Ambulance unavailable", today=today)
    assert a_plus_request.reschedule_requested

    lifecycle.resolve_reschedule(a_plus_request, bank_admin, accept=True)

    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.status == "APPROVED"
    assert req.collection_date == new_date
    assert req.original_collection_date == original
    assert not req.reschedule_requested


@pytest.mark.django_db
def test_reschedule_decline_keeps_date(a_plus_request, bank_admin, hospital, make_batch, today):
    make_batch("A+", 3)
    lifecycle.approve(a_plus_request, bank_admin, today=today)
    original = a_plus_request.collection_date
    lifecycle.request_reschedule(a_plus_request, hospital, today + timedelta(days=3), "Family travelling", today=today)

    lifecycle.resolve_reschedule(a_plus_request, bank_admin, accept=False)

    req = BloodRequest.objects.get(pk=a_plus_request.pk)
    assert req.collection_date == original
    assert req.requested_collection_date is None
    assert not req.reschedule_requested

    with pytest.raises(StaleStateError):
        lifecycle.resolve_reschedule(req, bank_admin, accept=True)


@pytest.mark.django_db
def test_no_show_after_collection_date_restores_units(a_plus_request, bank_admin, make_batch, today):
    batch = make_batch("A+", 4)
    lifecycle.approve(a_plus_request, bank_admin, collection_date=today, today=today)

    with pytest.raises(ValidationError):
        lifecycle.mark_no_show(a_plus_request, bank_admin, today=today)

    lifecycle.mark_no_show(a_plus_request, bank_admin, today=today + timedelta(days=1))

    assert BloodRequest.objects.get(pk=a_plus_request.pk).status == "NO_SHOW"
    assert InventoryBatch.objects.get(pk=batch.pk).units == 4


@pytest.mark.django_db
def test_fulfillment_from_donations_counts_once(hospital, today):
    req = lifecycle.create_request(hospital, "B+", 2)

    deposit("B+", 1, today=today)
    lifecycle.reevaluate_fulfillment(req.pk, 1, today=today)
    assert BloodRequest.objects.get(pk=req.pk).status == "PENDING"

    deposit("B+", 2, today=today)
    lifecycle.reevaluate_fulfillment(req.pk, 2, today=today)
    req.refresh_from_db()
    assert req.status == "APPROVED"
    assert req.units_collected == 2
    assert req.collection_date == today + timedelta(days=1)
    fulfilled_at = req.fulfilled_at

    deposit("B+", 1, today=today)
    lifecycle.reevaluate_fulfillment(req.pk, 1, today=today)
    req.refresh_from_db()
    assert req.fulfilled_at == fulfilled_at
    assert req.units_collected == 2
    assert total_available("B+", today=today) == 2
