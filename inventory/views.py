from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from accounts.permissions import admin_required, role_required
from core.http import api_errors, json_body
from core.validation import clean_blood_group, clean_date

from .ledger import deposit, stock_summary, total_available
from .thresholds import stock_levels, update_threshold


@require_GET
@admin_required
@api_errors
def stock(request):
    return JsonResponse({"groups": stock_summary(), "levels": stock_levels()})


@require_GET
@role_required()
@api_errors
def availability(request, blood_group):
    group = clean_blood_group(blood_group)
    return JsonResponse({"blood_group": group, "available_units": total_available(group)})


@require_POST
@admin_required
@api_errors
def deposit_units(request):
    data = json_body(request)
    batch = deposit(
        data.get("blood_group"),
        data.get("units"),
        collection_date=clean_date(data.get("collection_date"), field="collection_date"),
        location=data.get("location") or "",
    )
    return JsonResponse({
        "batch_id": batch.id,
        "blood_group": batch.blood_group,
        "units": batch.units,
        "collection_date": batch.collection_date.isoformat(),
        "expiry_date": batch.expiry_date.isoformat(),
        "location": batch.location,
    }, status=201)


def threshold_json(t):
    return {
        "blood_group": t.blood_group,
        "minimum_units": t.minimum_units,
        "target_units": t.target_units,
        "alert_enabled": t.alert_enabled,
        "last_alert_at": t.last_alert_at.isoformat() if t.last_alert_at else None,
    }


@require_GET
@admin_required
@api_errors
def thresholds(request):
    return JsonResponse({"levels": stock_levels()})


@require_POST
@admin_required
@api_errors
def threshold_update(request, blood_group):
    data = json_body(request)
    t = update_threshold(
        blood_group,
        minimum_units=data.get("minimum_units"),
        target_units=data.get("target_units"),
        alert_enabled=data.get("alert_enabled"),
    )
    return JsonResponse(threshold_json(t))
