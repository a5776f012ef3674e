from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from accounts.permissions import role_required
from blood.outreach import record_response
from core.http import api_errors, iso, json_body

from .models import Notification


def notification_json(n):
    return {
        "id": n.id,
        "kind": n.kind,
        "priority": n.priority,
        "status": n.effective_status,
        "title": n.title,
        "body": n.body,
        "request_id": n.request_id,
        "appointment_id": n.appointment_id,
        "expires_at": iso(n.expires_at),
        "response_action": n.response_action or None,
        "created_at": iso(n.created_at),
    }


@require_GET
@role_required()
@api_errors
def inbox(request):
    items = request.user.notifications.order_by("-created_at")[:200]
    return JsonResponse({"items": [notification_json(n) for n in items]})


@require_POST
@role_required()
@api_errors
def mark_read(request, pk):
    n = get_object_or_404(Notification, pk=pk, recipient=request.user)
    n.mark_read()
    return JsonResponse(notification_json(n))


@require_POST
@role_required()
@api_errors
def respond(request, pk):
    n = get_object_or_404(Notification, pk=pk)
    data = json_body(request)
    record_response(n, data.get("action"), message=data.get("message") or "", user=request.user)
    return JsonResponse(notification_json(n))
