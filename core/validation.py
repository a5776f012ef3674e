from datetime import date, datetime, time

from django.utils.dateparse import parse_time

from accounts.models import BLOOD_GROUP_CODES
from .exceptions import ValidationError


def clean_blood_group(value):
    group = (value or "").strip().upper() if isinstance(value, str) else ""
    if group not in BLOOD_GROUP_CODES:
        raise ValidationError(f"Unknown blood group: {value!r}.", field="blood_group")
    return group


def clean_units(value, field="units", minimum=1, maximum=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number.", field=field)
    if value < minimum or (maximum is not None and value > maximum):
        if maximum is None:
            raise ValidationError(f"{field} must be at least {minimum}.", field=field)
        raise ValidationError(f"{field} must be between {minimum} and {maximum}.", field=field)
    return value


def clean_reason(value, field="reason"):
    reason = (value or "").strip() if isinstance(value, str) else ""
    if not reason:
        raise ValidationError(f"A {field} is required.", field=field)
    return reason


def clean_date(value, field="date"):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD).", field=field) from None


def clean_time(value, field="time"):
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        parsed = parse_time(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a time (HH:MM).", field=field)
    return parsed
