from functools import wraps

from django.http import JsonResponse


def _unauthenticated():
    return JsonResponse({"error": "unauthenticated", "detail": "Login required."}, status=401)


def role_required(*roles):
    """
    JSON counterpart of login_required + a role check.
    Superusers pass every role check.
    """
    roles = set(roles)

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _unauthenticated()
            if roles and not (request.user.is_superuser or request.user.role in roles):
                return JsonResponse(
                    {"error": "forbidden", "detail": "Your role cannot perform this action."},
                    status=403,
                )
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


admin_required = role_required("ADMIN")
requester_required = role_required("ADMIN", "HOSPITAL", "EXTERNAL")
donor_required = role_required("DONOR")
