"""
Typed failures raised by the blood bank core.

Views translate these into JSON responses (see ``http_status`` / ``code``);
anything else that escapes the core is an unexpected fault.
"""


class BloodBankError(Exception):
    code = "error"
    http_status = 400

    def __init__(self, message="", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self):
        data = {"error": self.code, "detail": self.message}
        data.update({k: v for k, v in self.context.items() if _is_plain(v)})
        return data


def _is_plain(value):
    return value is None or isinstance(value, (str, int, float, bool))


class ValidationError(BloodBankError):
    """Malformed input. Nothing was changed."""
    code = "validation_error"
    http_status = 400


class StaleStateError(BloodBankError):
    """The entity is not in a status that allows the operation. Re-fetch it."""
    code = "stale_state"
    http_status = 409

    def __init__(self, message="", expected=None, actual=None, **context):
        super().__init__(message, actual=actual, **context)
        self.expected = tuple(expected or ())
        self.actual = actual


class ConcurrentModificationError(BloodBankError):
    """Compare-and-set on status lost to another writer. Retry on fresh state."""
    code = "concurrent_modification"
    http_status = 409


class InsufficientInventoryError(BloodBankError):
    code = "insufficient_inventory"
    http_status = 409

    def __init__(self, message="", blood_group=None, requested=0, available=0, **context):
        super().__init__(
            message or f"Insufficient {blood_group} stock: {available} available, {requested} requested.",
            blood_group=blood_group,
            requested=requested,
            available=available,
            **context,
        )
        self.blood_group = blood_group
        self.requested = requested
        self.available = available

    @property
    def shortage(self):
        return max(0, self.requested - self.available)


class IneligibleDonorError(BloodBankError):
    code = "ineligible_donor"
    http_status = 422

    def __init__(self, message="", days_until_eligible=0, **context):
        super().__init__(message, days_until_eligible=days_until_eligible, **context)
        self.days_until_eligible = days_until_eligible
