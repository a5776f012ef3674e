from django.shortcuts import get_object_or_404
from django.http import Http404, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from accounts.models import DonorProfile
from accounts.permissions import admin_required, requester_required, role_required
from communication.models import Notification
from communication.views import notification_json
from core.exceptions import ValidationError
from core.http import api_errors, iso, json_body
from core.validation import clean_blood_group, clean_time

from . import appointments, lifecycle
from .donations import record_donation
from .eligibility import check_eligibility
from .models import Appointment, BloodRequest, Donation
from .outreach import find_candidates, run_outreach_cycle


def request_json(req):
    return {
        "id": req.id,
        "requester_id": req.requester_id,
        "blood_group": req.blood_group,
        "units_requested": req.units_requested,
        "units_collected": req.units_collected,
        "urgency": req.urgency,
        "status": req.status,
        "awaiting_donations": req.awaiting_donations,
        "fulfilled": req.is_fulfilled,
        "patient_name": req.patient_name,
        "hospital_name": req.hospital_name,
        "collection_date": iso(req.collection_date),
        "collection_location": req.collection_location,
        "collection_instructions": req.collection_instructions,
        "reschedule_requested": req.reschedule_requested,
        "requested_collection_date": iso(req.requested_collection_date),
        "rejection_reason": req.rejection_reason,
        "cancellation_reason": req.cancellation_reason,
        "no_show_reason": req.no_show_reason,
        "donors_notified": req.donors_notified,
        "donors_responded": req.donors_responded,
        "appointments_scheduled": req.appointments_scheduled,
        "created_at": iso(req.created_at),
    }


def appointment_json(appt):
    return {
        "id": appt.id,
        "donor_id": appt.donor_id,
        "request_id": appt.request_id,
        "scheduled_date": iso(appt.scheduled_date),
        "scheduled_time": appt.scheduled_time.strftime("%H:%M") if appt.scheduled_time else None,
        "location": appt.location,
        "kind": appt.kind,
        "status": appt.status,
        "units_collected": appt.units_collected,
    }


def _int(value, field):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an id.", field=field) from None


def donation_json(d):
    return {
        "id": d.id,
        "donor_id": d.donor_id,
        "units": d.units,
        "collected_on": iso(d.collected_on),
        "location": d.location,
        "request_id": d.request_id,
        "appointment_id": d.appointment_id,
        "batch_id": d.batch_id,
        "eligibility_warning": d.eligibility_warning,
    }


def _statuses(request):
    raw = request.GET.get("status") or ""
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


def _visible_request(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    if not (request.user.is_bank_admin or req.requester_id == request.user.pk):
        # don't reveal other requesters' records
        raise Http404("No such request.")
    return req


# ---------------- Requests ----------------
def requests_root(request):
    if request.method == "POST":
        return request_create(request)
    return request_list(request)


@require_GET
@role_required()
@api_errors
def request_list(request):
    """Admins see every request; everyone else only their own."""
    qs = BloodRequest.objects.order_by("-created_at")
    if not request.user.is_bank_admin:
        qs = qs.filter(requester=request.user)

    statuses = _statuses(request)
    if statuses:
        qs = qs.filter(status__in=statuses)
    if request.GET.get("blood_group"):
        qs = qs.filter(blood_group=clean_blood_group(request.GET["blood_group"]))
    if request.GET.get("awaiting") in ("1", "true"):
        qs = qs.filter(awaiting_donations=True)

    return JsonResponse({"items": [request_json(r) for r in qs[:200]]})


@require_POST
@requester_required
@api_errors
def request_create(request):
    data = json_body(request)
    req = lifecycle.create_request(
        request.user,
        data.get("blood_group"),
        data.get("units_requested"),
        urgency=data.get("urgency") or "MEDIUM",
        **{k: data[k] for k in lifecycle.REQUEST_DETAILS if k in data},
    )
    return JsonResponse(request_json(req), status=201)


@require_GET
@role_required()
@api_errors
def request_detail(request, pk):
    req = _visible_request(request, pk)
    data = request_json(req)
    data["shortage"] = lifecycle.shortage_for(req)
    return JsonResponse(data)


@require_POST
@admin_required
@api_errors
def request_approve(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    data = json_body(request)
    lifecycle.approve(
        req,
        request.user,
        collection_date=data.get("collection_date"),
        location=data.get("location"),
        instructions=data.get("instructions") or "",
    )
    return JsonResponse(request_json(req))


@require_POST
@admin_required
@api_errors
def request_reject(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    lifecycle.reject(req, request.user, json_body(request).get("reason"))
    return JsonResponse(request_json(req))


@require_POST
@role_required()
@api_errors
def request_cancel(request, pk):
    req = _visible_request(request, pk)
    lifecycle.cancel(req, request.user, json_body(request).get("reason"))
    return JsonResponse(request_json(req))


@require_POST
@role_required()
@api_errors
def request_confirm_collection(request, pk):
    req = _visible_request(request, pk)
    lifecycle.confirm_collection(req, request.user)
    return JsonResponse(request_json(req))


@require_POST
@admin_required
@api_errors
def request_verify(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    lifecycle.verify(req, request.user)
    return JsonResponse(request_json(req))


@require_POST
@role_required()
@api_errors
def request_reschedule(request, pk):
    req = _visible_request(request, pk)
    data = json_body(request)
    lifecycle.request_reschedule(req, request.user, data.get("new_date"), data.get("reason"))
    return JsonResponse(request_json(req))


@require_POST
@admin_required
@api_errors
def request_resolve_reschedule(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    accept = json_body(request).get("accept")
    if not isinstance(accept, bool):
        raise ValidationError("accept must be true or false.", field="accept")
    lifecycle.resolve_reschedule(req, request.user, accept)
    return JsonResponse(request_json(req))


@require_POST
@admin_required
@api_errors
def request_no_show(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    lifecycle.mark_no_show(req, request.user, json_body(request).get("reason") or "")
    return JsonResponse(request_json(req))


@require_POST
@admin_required
@api_errors
def request_outreach(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    sent = run_outreach_cycle(req, created_by=request.user)
    req.refresh_from_db()
    return JsonResponse({
        "request": request_json(req),
        "notified": len(sent),
        "notification_ids": [n.id for n in sent],
    })


@require_GET
@admin_required
@api_errors
def request_candidates(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    limit = _int(request.GET.get("limit"), "limit") or 50
    donors = find_candidates(req.blood_group, exclude_request=req, limit=limit)
    return JsonResponse({"items": [
        {
            "donor_id": d.id,
            "user_id": d.user_id,
            "username": d.user.username,
            "blood_group": d.blood_group,
            "last_donation_date": iso(d.last_donation_date),
        }
        for d in donors
    ]})


@require_GET
@admin_required
@api_errors
def request_responses(request, pk):
    req = get_object_or_404(BloodRequest, pk=pk)
    notes = list(
        Notification.objects
        .filter(request=req, kind="DONATION_REQUEST")
        .select_related("recipient")
        .order_by("created_at", "id")
    )

    items = []
    for n in notes:
        row = notification_json(n)
        row["recipient_id"] = n.recipient_id
        row["recipient"] = n.recipient.username
        row["outreach_cycle"] = n.outreach_cycle
        row["response_message"] = n.response_message
        row["responded_at"] = iso(n.responded_at)
        items.append(row)

    return JsonResponse({
        "request_id": req.id,
        "notified": len(notes),
        "accepted": sum(1 for n in notes if n.response_action == "ACCEPT"),
        "declined": sum(1 for n in notes if n.response_action == "DECLINE"),
        "items": items,
    })


# ---------------- Appointments ----------------
def appointments_root(request):
    if request.method == "POST":
        return appointment_create(request)
    return appointment_list(request)


@require_GET
@role_required()
@api_errors
def appointment_list(request):
    """Admins filter across donors; a donor only sees their own bookings."""
    qs = Appointment.objects.order_by("scheduled_date", "scheduled_time", "id")
    if not request.user.is_bank_admin:
        qs = qs.filter(donor__user=request.user)

    statuses = _statuses(request)
    if statuses:
        qs = qs.filter(status__in=statuses)
    donor_id = _int(request.GET.get("donor_id"), "donor_id")
    if donor_id:
        qs = qs.filter(donor_id=donor_id)
    request_id = _int(request.GET.get("request_id"), "request_id")
    if request_id:
        qs = qs.filter(request_id=request_id)

    return JsonResponse({"items": [appointment_json(a) for a in qs[:200]]})


@require_POST
@admin_required
@api_errors
def appointment_create(request):
    data = json_body(request)

    notification_id = _int(data.get("notification_id"), "notification_id")
    when = dict(
        scheduled_date=data.get("scheduled_date"),
        scheduled_time=clean_time(data.get("scheduled_time"), field="scheduled_time"),
        location=data.get("location"),
        created_by=request.user,
    )

    if notification_id:
        n = get_object_or_404(Notification, pk=notification_id)
        appt = appointments.schedule_from_response(n, **when)
    else:
        donor = get_object_or_404(DonorProfile, pk=_int(data.get("donor_id"), "donor_id"))
        request_id = _int(data.get("request_id"), "request_id")
        req = get_object_or_404(BloodRequest, pk=request_id) if request_id else None
        appt = appointments.schedule(donor, request=req, kind=data.get("kind"), **when)

    return JsonResponse(appointment_json(appt), status=201)


@require_POST
@admin_required
@api_errors
def appointment_confirm(request, pk):
    appt = get_object_or_404(Appointment, pk=pk)
    appointments.confirm(appt)
    return JsonResponse(appointment_json(appt))


@require_POST
@admin_required
@api_errors
def appointment_start(request, pk):
    appt = get_object_or_404(Appointment, pk=pk)
    appointments.start(appt)
    return JsonResponse(appointment_json(appt))


@require_POST
@admin_required
@api_errors
def appointment_complete(request, pk):
    appt = get_object_or_404(Appointment.objects.select_related("donor__user", "request"), pk=pk)
    data = json_body(request)
    donation = appointments.complete_donation(
        appt,
        data.get("units_collected"),
        location=data.get("location"),
        notes=data.get("notes") or "",
        recorded_by=request.user,
    )
    payload = appointment_json(appt)
    payload["donation_id"] = donation.id
    payload["eligibility_warning"] = donation.eligibility_warning
    return JsonResponse(payload)


@require_POST
@admin_required
@api_errors
def appointment_cancel(request, pk):
    appt = get_object_or_404(Appointment, pk=pk)
    appointments.cancel(appt, json_body(request).get("reason"))
    return JsonResponse(appointment_json(appt))


@require_POST
@admin_required
@api_errors
def appointment_no_show(request, pk):
    appt = get_object_or_404(Appointment, pk=pk)
    appointments.mark_no_show(appt)
    return JsonResponse(appointment_json(appt))


# ---------------- Donors ----------------
@require_GET
@role_required()
@api_errors
def donor_eligibility(request, pk):
    donor = get_object_or_404(DonorProfile.objects.select_related("user"), pk=pk)
    if not (request.user.is_bank_admin or donor.user_id == request.user.pk):
        raise Http404("No such donor.")
    data = check_eligibility(donor).as_dict()
    data["donor_id"] = donor.id
    data["blood_group"] = donor.blood_group
    return JsonResponse(data)


@require_GET
@role_required()
@api_errors
def donor_history(request, pk):
    donor = get_object_or_404(DonorProfile, pk=pk)
    if not (request.user.is_bank_admin or donor.user_id == request.user.pk):
        raise Http404("No such donor.")
    donations = Donation.objects.filter(donor=donor).order_by("-collected_on", "-id")
    return JsonResponse({
        "donor_id": donor.id,
        "last_donation_date": iso(donor.last_donation_date),
        "items": [donation_json(d) for d in donations],
    })


def donations_root(request):
    if request.method == "POST":
        return donation_record(request)
    return donation_list(request)


@require_GET
@admin_required
@api_errors
def donation_list(request):
    qs = Donation.objects.order_by("-collected_on", "-id")
    donor_id = _int(request.GET.get("donor_id"), "donor_id")
    if donor_id:
        qs = qs.filter(donor_id=donor_id)
    request_id = _int(request.GET.get("request_id"), "request_id")
    if request_id:
        qs = qs.filter(request_id=request_id)
    return JsonResponse({"items": [donation_json(d) for d in qs[:200]]})


@require_POST
@admin_required
@api_errors
def donation_record(request):
    data = json_body(request)
    donor = get_object_or_404(DonorProfile, pk=_int(data.get("donor_id"), "donor_id"))
    request_id = _int(data.get("request_id"), "request_id")
    req = get_object_or_404(BloodRequest, pk=request_id) if request_id else None

    donation = record_donation(
        donor,
        data.get("units"),
        recorded_by=request.user,
        collected_on=data.get("collected_on"),
        location=data.get("location"),
        notes=data.get("notes") or "",
        request=req,
    )
    return JsonResponse(donation_json(donation), status=201)
