"""
Request lifecycle.

    PENDING --approve--> APPROVED --confirm_collection--> COLLECTED --verify--> VERIFIED
    PENDING --reject--> REJECTED
    PENDING / APPROVED --cancel--> CANCELLED
    APPROVED --mark_no_show--> NO_SHOW

A request that reaches APPROVED through donations (reevaluate_fulfillment)
carries fulfilled_at. A pending reschedule is a flag on APPROVED, not a status.

Every transition is a compare-and-set on the status the caller read; see
core.transitions.compare_and_set.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import F
from django.db.models.functions import Least
from django.utils import timezone

from core.exceptions import (
    ConcurrentModificationError,
    InsufficientInventoryError,
    StaleStateError,
    ValidationError,
)
from core.transitions import atomic_transition, compare_and_set
from core.validation import clean_blood_group, clean_date, clean_reason, clean_units
from inventory.ledger import restore, total_available, try_allocate
from .models import MAX_REQUEST_UNITS, MIN_REQUEST_UNITS, BloodRequest
from .outreach import run_outreach_cycle

logger = logging.getLogger(__name__)

URGENCY_CODES = {code for code, _ in BloodRequest.URGENCY}
REQUEST_DETAILS = ("patient_name", "hospital_name", "contact_number", "notes")
REQUESTER_ROLES = ("ADMIN", "HOSPITAL", "EXTERNAL")


def _require_admin(actor):
    if not (actor and actor.is_bank_admin):
        raise PermissionDenied("Only blood bank admins can do this.")


def _require_requester(req, user):
    if not user or user.pk != req.requester_id:
        raise PermissionDenied("Only the requester can do this.")


def _default_location():
    return getattr(settings, "BB_DEFAULT_COLLECTION_LOCATION", "Main blood bank")


def shortage_for(req, today=None):
    return max(0, req.units_requested - total_available(req.blood_group, today=today))


def create_request(requester, blood_group, units_requested, urgency="MEDIUM", **details):
    """
    Open a PENDING request. Stock is not checked here beyond logging the
    current shortage; a request is never refused for lack of inventory.
    """
    if not requester or not (requester.is_superuser or requester.role in REQUESTER_ROLES):
        raise PermissionDenied("Donors cannot open blood requests.")

    group = clean_blood_group(blood_group)
    units = clean_units(units_requested, field="units_requested", minimum=MIN_REQUEST_UNITS, maximum=MAX_REQUEST_UNITS)

    urgency = (urgency or "MEDIUM").strip().upper() if isinstance(urgency, str) else ""
    if urgency not in URGENCY_CODES:
        raise ValidationError(f"Unknown urgency: {urgency!r}.", field="urgency")
    if urgency == "CRITICAL" and not (requester.is_hospital or requester.is_superuser):
        raise ValidationError("Only hospitals can raise CRITICAL requests.", field="urgency")

    unknown = set(details) - set(REQUEST_DETAILS)
    if unknown:
        raise ValidationError(f"Unexpected field(s): {', '.join(sorted(unknown))}.")

    req = BloodRequest.objects.create(
        requester=requester,
        blood_group=group,
        units_requested=units,
        urgency=urgency,
        **{k: str(details[k] or "").strip() for k in details},
    )

    shortage = shortage_for(req)
    logger.info(
        "Request #%s created by %s: %s x%s (%s), current shortage %s",
        req.pk, requester, group, units, urgency, shortage,
    )
    return req


def approve(req, actor, collection_date=None, location=None, instructions="", dispatcher=None, today=None):
    """
    Allocate the requested units and move PENDING -> APPROVED.

    On shortage nothing is allocated: the request stays PENDING flagged
    awaiting_donations, an outreach cycle starts (BB_AUTO_OUTREACH) and
    InsufficientInventoryError is re-raised for the caller.
    """
    _require_admin(actor)
    today = today or timezone.localdate()

    collection_date = clean_date(collection_date, field="collection_date") or today + timedelta(days=1)
    if collection_date < today:
        raise ValidationError("Collection date cannot be in the past.", field="collection_date")

    if req.status != "PENDING":
        raise StaleStateError(
            f"Request #{req.pk} is {req.status}; only PENDING requests can be approved.",
            expected=("PENDING",),
            actual=req.status,
        )

    try:
        with transaction.atomic():
            receipt = try_allocate(req.blood_group, req.units_requested, today=today)
            compare_and_set(
                req, ("PENDING",), "APPROVED",
                allocation=receipt,
                approved_at=timezone.now(),
                approved_by=actor,
                collection_date=collection_date,
                collection_location=(location or "").strip() or _default_location(),
                collection_instructions=(instructions or "").strip(),
                awaiting_donations=False,
            )
    except InsufficientInventoryError:
        _flag_awaiting(req)
        if getattr(settings, "BB_AUTO_OUTREACH", True):
            run_outreach_cycle(req, created_by=actor, dispatcher=dispatcher, today=today)
        raise

    return req


def _flag_awaiting(req):
    updated = (
        BloodRequest.objects
        .filter(pk=req.pk, status="PENDING")
        .update(awaiting_donations=True, updated_at=timezone.now())
    )
    if updated:
        req.awaiting_donations = True
        logger.info("Request #%s is awaiting donations", req.pk)


def reevaluate_fulfillment(request_id, units, today=None):
    """
    Attribute `units` of a completed donation to the request and fulfil it
    once enough has been collected.

    units_collected never exceeds units_requested. Only the first completion
    that finds the request PENDING and fully collected allocates and approves
    it; later completions only add to general stock. Requests that are no
    longer PENDING are left untouched.
    """
    today = today or timezone.localdate()

    with transaction.atomic():
        BloodRequest.objects.filter(pk=request_id, status="PENDING").update(
            units_collected=Least(F("units_collected") + units, F("units_requested")),
            updated_at=timezone.now(),
        )
        req = BloodRequest.objects.get(pk=request_id)

        if req.status != "PENDING" or req.units_collected < req.units_requested:
            return req

        try:
            with transaction.atomic():
                receipt = try_allocate(req.blood_group, req.units_requested, today=today)
                now = timezone.now()
                compare_and_set(
                    req, ("PENDING",), "APPROVED",
                    allocation=receipt,
                    approved_at=now,
                    fulfilled_at=now,
                    collection_date=today + timedelta(days=1),
                    collection_location=_default_location(),
                    awaiting_donations=False,
                )
        except (InsufficientInventoryError, ConcurrentModificationError) as exc:
            logger.warning("Request #%s left PENDING after full collection: %s", req.pk, exc)
            req.refresh_from_db()
            return req

    logger.info("Request #%s fulfilled through donations", req.pk)
    return req


def reject(req, actor, reason):
    _require_admin(actor)
    reason = clean_reason(reason)
    return compare_and_set(
        req, ("PENDING",), "REJECTED",
        rejected_at=timezone.now(),
        rejection_reason=reason,
        awaiting_donations=False,
    )


def confirm_collection(req, user):
    """The requester picked the units up. Inventory was already deducted on approval."""
    _require_requester(req, user)
    return compare_and_set(
        req, ("APPROVED",), "COLLECTED",
        collected_at=timezone.now(),
        reschedule_requested=False,
    )


def verify(req, actor):
    _require_admin(actor)
    return compare_and_set(
        req, ("COLLECTED",), "VERIFIED",
        verified_at=timezone.now(),
        verified_by=actor,
    )


def request_reschedule(req, user, new_date, reason, today=None):
    _require_requester(req, user)
    today = today or timezone.localdate()

    new_date = clean_date(new_date, field="new_date")
    if new_date is None or new_date <= today:
        raise ValidationError("The new collection date must be in the future.", field="new_date")
    reason = clean_reason(reason)

    return compare_and_set(
        req, ("APPROVED",), "APPROVED",
        reschedule_requested=True,
        reschedule_reason=reason,
        requested_collection_date=new_date,
    )


def resolve_reschedule(req, actor, accept):
    _require_admin(actor)
    if req.status == "APPROVED" and not req.reschedule_requested:
        raise StaleStateError(
            f"Request #{req.pk} has no pending reschedule.",
            expected=("APPROVED",),
            actual=req.status,
        )

    changes = {"reschedule_requested": False, "requested_collection_date": None}
    if accept:
        changes["original_collection_date"] = req.original_collection_date or req.collection_date
        changes["collection_date"] = req.requested_collection_date

    compare_and_set(req, ("APPROVED",), "APPROVED", **changes)
    logger.info("Reschedule of request #%s %s", req.pk, "accepted" if accept else "declined")
    return req


def cancel(req, actor, reason):
    """Requester or admin; gives any allocated units back to the ledger."""
    if not actor or not (actor.is_bank_admin or actor.pk == req.requester_id):
        raise PermissionDenied("Only the requester or an admin can cancel a request.")
    reason = clean_reason(reason)

    with atomic_transition(req):
        compare_and_set(
            req, ("PENDING", "APPROVED"), "CANCELLED",
            cancelled_at=timezone.now(),
            cancellation_reason=reason,
            awaiting_donations=False,
            reschedule_requested=False,
        )
        _release(req)
    return req


def mark_no_show(req, actor, reason="", today=None):
    _require_admin(actor)
    today = today or timezone.localdate()

    if req.status == "APPROVED" and (req.collection_date is None or req.collection_date >= today):
        raise ValidationError(
            f"Request #{req.pk} is not overdue: collection date is {req.collection_date}.",
            field="collection_date",
        )

    with atomic_transition(req):
        compare_and_set(
            req, ("APPROVED",), "NO_SHOW",
            no_show_at=timezone.now(),
            no_show_reason=(reason or "").strip() or "Units were not collected on the agreed date.",
            reschedule_requested=False,
        )
        _release(req)
    return req


def _release(req):
    if req.allocation_id and not req.allocation.is_restored:
        restore(req.allocation)
