"""
JSON plumbing shared by the API views.
"""
import json
import logging
from datetime import date, datetime
from functools import wraps

from django.core.exceptions import PermissionDenied
from django.http import Http404, JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET

from .exceptions import BloodBankError, ValidationError

logger = logging.getLogger(__name__)


def json_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        raise ValidationError("Request body must be valid JSON.") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def api_errors(view_func):
    """Turn the core's typed failures into JSON error responses."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except BloodBankError as exc:
            logger.info("%s %s -> %s: %s", request.method, request.path, exc.code, exc.message)
            return JsonResponse(exc.as_dict(), status=exc.http_status)
        except PermissionDenied as exc:
            return JsonResponse(
                {"error": "forbidden", "detail": str(exc) or "You cannot perform this action."},
                status=403,
            )
        except Http404:
            return JsonResponse({"error": "not_found", "detail": "No such record."}, status=404)
    return _wrapped


@require_GET
@ensure_csrf_cookie
def csrf_token(request):
    """
    Session clients fetch this once and echo the token back in the
    X-CSRFToken header of every POST.
    """
    return JsonResponse({"csrf_token": get_token(request), "header": "X-CSRFToken"})


def csrf_failure(request, reason=""):
    return JsonResponse({"error": "csrf_failed", "detail": reason or "CSRF token missing or incorrect."}, status=403)
