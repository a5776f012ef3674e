import json
from datetime import timedelta

import pytest
from django.test import Client

from blood import appointments, lifecycle
from blood.models import BloodRequest
from blood.outreach import record_response
from communication.models import Notification
from inventory.ledger import total_available


def post(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json")


@pytest.fixture
def hospital_client(client, hospital):
    client.force_login(hospital)
    return client


@pytest.fixture
def bank_client(client, bank_admin):
    client.force_login(bank_admin)
    return client


@pytest.mark.django_db
def test_anonymous_calls_get_401(client):
    resp = post(client, "/api/requests/", {"blood_group": "O+", "units_requested": 1})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthenticated"


@pytest.mark.django_db
def test_create_request_over_http(hospital_client):
    resp = post(hospital_client, "/api/requests/", {
        "blood_group": "ab-",
        "units_requested": 2,
        "urgency": "CRITICAL",
        "patient_name": "S. Tamang",
    })

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["blood_group"] == "AB-"
    assert BloodRequest.objects.get(pk=body["id"]).patient_name == "S. Tamang"


@pytest.mark.django_db
def test_validation_error_maps_to_400(hospital_client):
    resp = post(hospital_client, "/api/requests/", {"blood_group": "O+", "units_requested": 11})

    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"
    assert resp.json()["field"] == "units_requested"


@pytest.mark.django_db
def test_malformed_json_is_400(hospital_client):
    resp = hospital_client.post("/api/requests/", data="{not json", content_type="application/json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_donor_cannot_approve(client, make_donor, hospital):
    req = lifecycle.create_request(hospital, "O+", 1)
    client.force_login(make_donor().user)

    resp = post(client, f"/api/requests/{req.pk}/approve/")
    assert resp.status_code == 403


@pytest.mark.django_db
def test_shortage_on_approve_is_409(bank_client, hospital, settings):
    settings.BB_AUTO_OUTREACH = False
    req = lifecycle.create_request(hospital, "O-", 3)

    resp = post(bank_client, f"/api/requests/{req.pk}/approve/")

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "insufficient_inventory"
    assert body["requested"] == 3
    assert body["available"] == 0
    assert BloodRequest.objects.get(pk=req.pk).awaiting_donations


@pytest.mark.django_db
def test_approve_then_approve_again_is_stale(bank_client, hospital, make_batch):
    make_batch("A+", 4)
    req = lifecycle.create_request(hospital, "A+", 2)

    first = post(bank_client, f"/api/requests/{req.pk}/approve/", {"location": "Counter 4"})
    second = post(bank_client, f"/api/requests/{req.pk}/approve/")

    assert first.status_code == 200
    assert first.json()["collection_location"] == "Counter 4"
    assert second.status_code == 409
    assert second.json()["error"] == "stale_state"


@pytest.mark.django_db
def test_other_requesters_requests_are_hidden(client, make_user, hospital):
    req = lifecycle.create_request(hospital, "B-", 1)
    client.force_login(make_user("someone_else"))

    assert client.get(f"/api/requests/{req.pk}/").status_code == 404
    assert post(client, f"/api/requests/{req.pk}/cancel/", {"reason": "x"}).status_code == 404


@pytest.mark.django_db
def test_requester_cancels_over_http(hospital_client, hospital, bank_admin, make_batch, today):
    make_batch("B+", 3)
    req = lifecycle.create_request(hospital, "B+", 3)
    lifecycle.approve(req, bank_admin, today=today)

    resp = post(hospital_client, f"/api/requests/{req.pk}/cancel/", {"reason": "Surgery postponed"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert total_available("B+", today=today) == 3


@pytest.mark.django_db
def test_eligibility_endpoint(client, make_donor, today):
    donor = make_donor(last_donation_date=today - timedelta(days=89))
    client.force_login(donor.user)

    body = client.get(f"/api/donors/{donor.pk}/eligibility/").json()

    assert body["is_eligible"] is False
    assert body["days_until_eligible"] == 1


@pytest.mark.django_db
def test_schedule_and_complete_over_http(bank_client, make_donor, today):
    donor = make_donor("O-")

    resp = post(bank_client, "/api/appointments/", {
        "donor_id": donor.pk,
        "scheduled_date": today.isoformat(),
        "scheduled_time": "10:30",
    })
    assert resp.status_code == 201
    appt_id = resp.json()["id"]
    assert resp.json()["scheduled_time"] == "10:30"

    done = post(bank_client, f"/api/appointments/{appt_id}/complete/", {"units_collected": 1})
    assert done.status_code == 200
    assert done.json()["status"] == "COMPLETED"
    assert total_available("O-", today=today) == 1


@pytest.mark.django_db
def test_ineligible_schedule_is_422(bank_client, make_donor, today):
    donor = make_donor(last_donation_date=today - timedelta(days=10))

    resp = post(bank_client, "/api/appointments/", {"donor_id": donor.pk, "scheduled_date": today.isoformat()})

    assert resp.status_code == 422
    assert resp.json()["days_until_eligible"] == 80


@pytest.mark.django_db
def test_donor_responds_to_notification(client, make_donor, hospital):
    donor = make_donor("A+")
    req = lifecycle.create_request(hospital, "A+", 1)
    n = Notification.objects.create(recipient=donor.user, kind="DONATION_REQUEST", title="A+ needed", request=req)
    client.force_login(donor.user)

    resp = post(client, f"/api/notifications/{n.pk}/respond/", {"action": "DECLINE", "message": "Travelling"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "RESPONDED"
    assert resp.json()["response_action"] == "DECLINE"


@pytest.mark.django_db
def test_inventory_endpoints(bank_client, today):
    resp = post(bank_client, "/api/inventory/deposit/", {"blood_group": "O-", "units": 4, "location": "Fridge 1"})
    assert resp.status_code == 201
    assert resp.json()["expiry_date"] == (today + timedelta(days=35)).isoformat()

    avail = bank_client.get("/api/inventory/O-/available/").json()
    assert avail == {"blood_group": "O-", "available_units": 4}

    stock = bank_client.get("/api/inventory/").json()
    row = next(g for g in stock["groups"] if g["blood_group"] == "O-")
    assert row["total_units"] == 4


@pytest.mark.django_db
def test_inbox_and_mark_read(client, make_donor, make_user):
    donor = make_donor()
    n = Notification.objects.create(recipient=donor.user, kind="ELIGIBILITY_REMINDER", title="Donate again")
    client.force_login(donor.user)

    items = client.get("/api/notifications/").json()["items"]
    assert [i["id"] for i in items] == [n.pk]

    resp = post(client, f"/api/notifications/{n.pk}/read/")
    assert resp.json()["status"] == "READ"

    client.force_login(make_user("nosy"))
    assert post(client, f"/api/notifications/{n.pk}/read/").status_code == 404


@pytest.mark.django_db
def test_request_listing_scopes_and_filters(client, bank_admin, hospital, make_user):
    mine = lifecycle.create_request(hospital, "A-", 1)
    waiting = lifecycle.create_request(hospital, "B-", 2)
    BloodRequest.objects.filter(pk=waiting.pk).update(awaiting_donations=True)
    other = lifecycle.create_request(make_user("clinic", role="HOSPITAL"), "A-", 1)
    client.force_login(bank_admin)

    all_ids = [r["id"] for r in client.get("/api/requests/").json()["items"]]
    assert set(all_ids) == {mine.pk, waiting.pk, other.pk}

    awaiting = client.get("/api/requests/?awaiting=1").json()["items"]
    assert [r["id"] for r in awaiting] == [waiting.pk]
    by_group = client.get("/api/requests/?blood_group=A-&status=pending").json()["items"]
    assert {r["id"] for r in by_group} == {mine.pk, other.pk}

    client.force_login(hospital)
    own = client.get("/api/requests/").json()["items"]
    assert {r["id"] for r in own} == {mine.pk, waiting.pk}


@pytest.mark.django_db
def test_admin_runs_outreach_and_reads_responses(bank_client, hospital, make_donor):
    donors = [make_donor("AB-") for _ in range(2)]
    req = lifecycle.create_request(hospital, "AB-", 1)

    candidates = bank_client.get(f"/api/requests/{req.pk}/candidates/").json()["items"]
    assert {c["donor_id"] for c in candidates} == {d.pk for d in donors}

    resp = post(bank_client, f"/api/requests/{req.pk}/outreach/")
    assert resp.status_code == 200
    assert resp.json()["notified"] == 2
    assert resp.json()["request"]["donors_notified"] == 2
    assert bank_client.get(f"/api/requests/{req.pk}/candidates/").json()["items"] == []

    n = Notification.objects.get(request=req, recipient=donors[0].user)
    record_response(n, "ACCEPT", message="After work", user=donors[0].user)

    body = bank_client.get(f"/api/requests/{req.pk}/responses/").json()
    assert body["notified"] == 2
    assert body["accepted"] == 1
    assert body["declined"] == 0
    accepted = next(i for i in body["items"] if i["recipient_id"] == donors[0].user_id)
    assert accepted["response_message"] == "After work"


@pytest.mark.django_db
def test_outreach_route_is_admin_only(hospital_client, hospital):
    req = lifecycle.create_request(hospital, "AB-", 1)
    assert post(hospital_client, f"/api/requests/{req.pk}/outreach/").status_code == 403


@pytest.mark.django_db
def test_appointment_and_donation_history(client, make_donor, bank_admin, today):
    donor = make_donor("O-")
    other = make_donor("O-")
    appt = appointments.schedule(donor, today, today=today)
    appointments.schedule(other, today, today=today)
    appointments.complete_donation(appt, 1, recorded_by=bank_admin, today=today)
    client.force_login(bank_admin)

    listed = client.get(f"/api/appointments/?donor_id={donor.pk}").json()["items"]
    assert [a["id"] for a in listed] == [appt.pk]
    open_ones = client.get("/api/appointments/?status=SCHEDULED").json()["items"]
    assert len(open_ones) == 1

    all_donations = client.get("/api/donations/").json()["items"]
    assert [d["appointment_id"] for d in all_donations] == [appt.pk]

    client.force_login(donor.user)
    mine = client.get("/api/appointments/").json()["items"]
    assert [a["status"] for a in mine] == ["COMPLETED"]
    history = client.get(f"/api/donors/{donor.pk}/donations/").json()
    assert history["last_donation_date"] == today.isoformat()
    assert [d["units"] for d in history["items"]] == [1]
    assert client.get(f"/api/donors/{other.pk}/donations/").status_code == 404


@pytest.mark.django_db
def test_threshold_settings_over_http(bank_client):
    resp = post(bank_client, "/api/inventory/thresholds/O-/", {"minimum_units": 12, "target_units": 30})
    assert resp.status_code == 200
    assert resp.json()["minimum_units"] == 12

    bad = post(bank_client, "/api/inventory/thresholds/O-/", {"target_units": 5})
    assert bad.status_code == 400

    levels = bank_client.get("/api/inventory/thresholds/").json()["levels"]
    row = next(r for r in levels if r["blood_group"] == "O-")
    assert (row["minimum_units"], row["target_units"]) == (12, 30)


@pytest.mark.django_db
def test_json_clients_need_the_csrf_token(hospital):
    client = Client(enforce_csrf_checks=True)
    client.force_login(hospital)
    payload = json.dumps({"blood_group": "A+", "units_requested": 1})

    refused = client.post("/api/requests/", data=payload, content_type="application/json")
    assert refused.status_code == 403
    assert refused.json()["error"] == "csrf_failed"

    token = client.get("/api/csrf/").json()["csrf_token"]
    resp = client.post("/api/requests/", data=payload, content_type="application/json", HTTP_X_CSRFTOKEN=token)
    assert resp.status_code == 201
