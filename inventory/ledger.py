"""
Inventory ledger: FIFO-by-expiry allocation, restoration and deposits.

Every write takes row locks on all batches of the blood group involved
(select_for_update inside transaction.atomic), so allocations, restorations
and deposits of one group are serialized while different groups proceed in
parallel.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounts.models import BLOOD_GROUPS
from core.exceptions import InsufficientInventoryError, StaleStateError, ValidationError
from core.validation import clean_blood_group, clean_units
from .models import AllocationLine, AllocationReceipt, InventoryBatch, SHELF_LIFE_DAYS, expiry_for

logger = logging.getLogger(__name__)


def _lock_group(blood_group):
    # evaluating the queryset is what acquires the locks
    list(
        InventoryBatch.objects
        .select_for_update()
        .filter(blood_group=blood_group)
        .values_list("pk", flat=True)
    )


def _usable(blood_group, today):
    return (
        InventoryBatch.objects
        .filter(blood_group=blood_group, units__gt=0, expiry_date__gt=today)
        .order_by("expiry_date", "id")
    )


def total_available(blood_group, today=None):
    group = clean_blood_group(blood_group)
    today = today or timezone.localdate()
    return _usable(group, today).aggregate(total=Sum("units"))["total"] or 0


def try_allocate(blood_group, units, today=None):
    """
    Take `units` of `blood_group`, soonest-to-expire first.

    All-or-nothing: on shortage InsufficientInventoryError is raised and no
    batch is touched. On success returns the AllocationReceipt.
    """
    group = clean_blood_group(blood_group)
    units = clean_units(units)
    today = today or timezone.localdate()

    with transaction.atomic():
        _lock_group(group)
        batches = list(_usable(group, today))
        available = sum(b.units for b in batches)
        if available < units:
            logger.info("Allocation of %s x%s refused: only %s available", group, units, available)
            raise InsufficientInventoryError(blood_group=group, requested=units, available=available)

        receipt = AllocationReceipt.objects.create(blood_group=group, units=units)

        remaining = units
        lines = []
        for batch in batches:
            if remaining <= 0:
                break
            take = min(remaining, batch.units)
            batch.units -= take
            batch.save(update_fields=["units", "updated_at"])
            lines.append(AllocationLine(
                receipt=receipt,
                batch=batch,
                blood_group=group,
                expiry_date=batch.expiry_date,
                units=take,
            ))
            remaining -= take

        AllocationLine.objects.bulk_create(lines)

    logger.info(
        "Allocated %s x%s from %s batch(es) (receipt #%s)",
        group, units, len(lines), receipt.pk,
    )
    return receipt


def restore(receipt):
    """
    Undo an allocation by giving every line back to the batch it came from.
    Lines whose batch has been purged come back as a new batch with the
    original expiry.
    """
    now = timezone.now()

    with transaction.atomic():
        receipt = AllocationReceipt.objects.select_for_update().get(pk=receipt.pk)
        if receipt.restored_at:
            raise StaleStateError(
                f"Allocation receipt #{receipt.pk} was already restored.",
                expected=("OPEN",),
                actual="RESTORED",
            )

        _lock_group(receipt.blood_group)

        restored = 0
        for line in receipt.lines.select_related("batch"):
            batch = line.batch
            if batch is None:
                batch = InventoryBatch(
                    blood_group=line.blood_group,
                    units=0,
                    collection_date=line.expiry_date - timedelta(days=SHELF_LIFE_DAYS),
                    expiry_date=line.expiry_date,
                    location="restored",
                )
            batch.units += line.units
            batch.save()
            restored += line.units

        receipt.restored_at = now
        receipt.save(update_fields=["restored_at"])

    logger.info("Restored %s x%s from receipt #%s", receipt.blood_group, restored, receipt.pk)
    return receipt


def deposit(blood_group, units, collection_date=None, location="", donor=None, today=None):
    """
    Put collected units on the shelf. Anonymous stock with the same group,
    collection date and location is merged into one batch; donated units keep
    their own batch so provenance survives.
    """
    group = clean_blood_group(blood_group)
    units = clean_units(units)
    today = today or timezone.localdate()
    collection_date = collection_date or today
    location = (location or "").strip()

    if collection_date > today:
        raise ValidationError("Collection date cannot be in the future.", field="collection_date")
    if expiry_for(collection_date) <= today:
        raise ValidationError("These units are already past their shelf life.", field="collection_date")

    with transaction.atomic():
        _lock_group(group)

        batch = None
        if donor is None:
            batch = (
                InventoryBatch.objects
                .filter(blood_group=group, collection_date=collection_date, location=location, donor__isnull=True)
                .order_by("id")
                .first()
            )

        if batch is not None:
            batch.units += units
            batch.save(update_fields=["units", "updated_at"])
        else:
            batch = InventoryBatch.objects.create(
                blood_group=group,
                units=units,
                collection_date=collection_date,
                expiry_date=expiry_for(collection_date),
                location=location,
                donor=donor,
            )

    logger.info("Deposited %s x%s into batch #%s", group, units, batch.pk)
    return batch


def stock_summary(today=None):
    """Per-group totals with their usable lots, soonest expiry first."""
    today = today or timezone.localdate()
    summary = {
        code: {"blood_group": code, "total_units": 0, "expired_units": 0, "lots": []}
        for code, _ in BLOOD_GROUPS
    }

    for batch in InventoryBatch.objects.filter(units__gt=0).order_by("blood_group", "expiry_date", "id"):
        row = summary[batch.blood_group]
        if batch.is_expired(today):
            row["expired_units"] += batch.units
            continue
        row["total_units"] += batch.units
        row["lots"].append({
            "id": batch.id,
            "units": batch.units,
            "collection_date": batch.collection_date.isoformat(),
            "expiry_date": batch.expiry_date.isoformat(),
            "location": batch.location,
        })

    return list(summary.values())
