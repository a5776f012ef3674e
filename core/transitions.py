import logging
from contextlib import contextmanager

from django.db import transaction
from django.utils import timezone

from .exceptions import ConcurrentModificationError, StaleStateError

logger = logging.getLogger(__name__)


def compare_and_set(instance, allowed, to_status, **changes):
    """
    Move `instance` to `to_status` only if the row still holds the status that
    was read into `instance`, and that status is one of `allowed`.

    Writes `changes` in the same UPDATE and mirrors them onto `instance`.
    """
    model = type(instance)
    name = model._meta.verbose_name.capitalize()
    read_status = instance.status

    if read_status not in allowed:
        raise StaleStateError(
            f"{name} #{instance.pk} is {read_status}; expected one of {', '.join(allowed)}.",
            expected=allowed,
            actual=read_status,
        )

    changes["status"] = to_status
    if any(f.name == "updated_at" for f in model._meta.concrete_fields):
        changes.setdefault("updated_at", timezone.now())

    updated = model._default_manager.filter(pk=instance.pk, status=read_status).update(**changes)
    if not updated:
        raise ConcurrentModificationError(
            f"{name} #{instance.pk} changed while it was being updated from {read_status}.",
            expected=read_status,
        )

    for field, value in changes.items():
        setattr(instance, field, value)

    logger.info("%s #%s: %s -> %s", name, instance.pk, read_status, to_status)
    return instance


@contextmanager
def atomic_transition(*instances):
    """
    transaction.atomic for a block of compare_and_set calls and their side
    effects. If the block raises, `instances` are reloaded so their in-memory
    status matches the rolled-back row.
    """
    try:
        with transaction.atomic():
            yield
    except Exception:
        for instance in instances:
            instance.refresh_from_db()
        raise
