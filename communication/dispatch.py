"""
Notification dispatch.

The core only relies on ``send(user_id, payload) -> DispatchAck``; how the
message reaches the donor (websocket group, SMS gateway, ...) belongs to the
dispatcher. The active dispatcher class is named by
``settings.BB_NOTIFICATION_DISPATCHER`` and resolved on every call to
``get_dispatcher()``.
"""
import logging
import uuid
from dataclasses import dataclass

import requests
from asgiref.sync import async_to_sync
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from .models import Notification

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    pass


@dataclass(frozen=True)
class DispatchAck:
    accepted: bool
    reference: str = ""


class NotificationDispatcher:
    def send(self, user_id, payload):
        raise NotImplementedError


class ChannelLayerDispatcher(NotificationDispatcher):
    """Pushes to the per-donor channels group ``donor_<user_id>``."""

    def __init__(self, layer=None):
        self.layer = layer

    def send(self, user_id, payload):
        layer = self.layer or get_channel_layer()
        if layer is None:
            raise DispatchError("No channel layer configured (CHANNEL_LAYERS).")

        reference = uuid.uuid4().hex
        try:
            async_to_sync(layer.group_send)(
                f"donor_{user_id}",
                {"type": "notification.message", "reference": reference, "data": payload},
            )
        except ChannelFull as exc:
            raise DispatchError(f"Channel layer full for donor_{user_id}") from exc
        return DispatchAck(accepted=True, reference=reference)


def _safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return {}


class WebhookDispatcher(NotificationDispatcher):
    """
    POSTs ``{"user_id": ..., "notification": payload}`` to an SMS/email
    gateway. Any HTTP status >= 400 is a failed dispatch.
    """

    def __init__(self, url=None, timeout=None):
        self.url = url or getattr(settings, "BB_NOTIFICATION_WEBHOOK_URL", "")
        self.timeout = timeout or int(getattr(settings, "BB_NOTIFICATION_WEBHOOK_TIMEOUT", 10))

    def send(self, user_id, payload):
        if not self.url:
            raise DispatchError("BB_NOTIFICATION_WEBHOOK_URL missing")

        try:
            resp = requests.post(
                self.url,
                json={"user_id": user_id, "notification": payload},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DispatchError(f"Webhook unreachable: {exc}") from exc

        data = _safe_json(resp)
        if resp.status_code >= 400:
            raise DispatchError(f"Webhook failed. HTTP {resp.status_code}. {data or (resp.text or '')[:300]}")
        if not isinstance(data, dict):
            # bare list/string body: accepted, no reference
            data = {}

        return DispatchAck(
            accepted=bool(data.get("accepted", True)),
            reference=str(data.get("reference") or data.get("id") or ""),
        )


class NullDispatcher(NotificationDispatcher):
    """Accepts everything, delivers nothing. For local runs."""

    def send(self, user_id, payload):
        return DispatchAck(accepted=True, reference="null")


def get_dispatcher():
    path = getattr(settings, "BB_NOTIFICATION_DISPATCHER", "communication.dispatch.ChannelLayerDispatcher")
    return import_string(path)()


def deliver(notification, dispatcher=None):
    """
    Hand one notification to the dispatcher. On acknowledgement it becomes
    SENT; a failed or refused dispatch leaves it PENDING for a later retry.
    Returns True when the dispatcher accepted it.
    """
    dispatcher = dispatcher or get_dispatcher()

    try:
        ack = dispatcher.send(notification.recipient_id, notification.as_payload())
    except DispatchError:
        logger.exception("Dispatch of notification #%s to user %s failed", notification.pk, notification.recipient_id)
        return False
    except Exception:
        # don't break the caller if a transport misbehaves
        logger.exception("Unexpected error dispatching notification #%s", notification.pk)
        return False

    if not ack.accepted:
        logger.warning("Dispatcher refused notification #%s", notification.pk)
        return False

    now = timezone.now()
    updated = (
        Notification.objects
        .filter(pk=notification.pk, status="PENDING")
        .update(status="SENT", sent_at=now, dispatch_reference=ack.reference[:120])
    )
    if updated:
        notification.status = "SENT"
        notification.sent_at = now
        notification.dispatch_reference = ack.reference[:120]
    return True
