"""
Fire-and-forget notification dispatch.

Events are pushed onto a Redis list (the outbox); the email and WebSocket
workers consume it. The booking core never waits on delivery.
"""
import uuid
from datetime import datetime, timezone

from redis.exceptions import RedisError

from app.core.config import NOTIFICATION_QUEUE_KEY
from app.core.exceptions import CascadeNotificationFailure
from app.core.logging_config import get_logger
from app.core.redis import push_json

logger = get_logger()

VENUE_CANCELLED = "venue_cancelled"
VENUE_REPLACEMENT_FOUND = "venue_replacement_found"
AUTO_CANCELLED = "auto_cancelled"
CANCELLATION_FEE_REQUIRED = "cancellation_fee_required"
CANCELLATION_COMPLETED = "cancellation_completed"
BOOKING_ACCEPTED = "booking_accepted"
BOOKING_REJECTED = "booking_rejected"
BOOKING_REQUEST_CREATED = "booking_request_created"
DEPOSIT_DUE_REMINDER = "deposit_due_reminder"
FINAL_DUE_REMINDER = "final_due_reminder"

NOTIFICATION_KINDS = frozenset({
    VENUE_CANCELLED,
    VENUE_REPLACEMENT_FOUND,
    AUTO_CANCELLED,
    CANCELLATION_FEE_REQUIRED,
    CANCELLATION_COMPLETED,
    BOOKING_ACCEPTED,
    BOOKING_REJECTED,
    BOOKING_REQUEST_CREATED,
    DEPOSIT_DUE_REMINDER,
    FINAL_DUE_REMINDER,
})


def build_event(kind: str, recipient_user_id, payload: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": kind,
        "recipient_user_id": recipient_user_id,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": payload,
    }


class NotificationDispatcher:
    def __init__(self, queue_key: str = NOTIFICATION_QUEUE_KEY):
        self.queue_key = queue_key

    def notify(self, kind: str, recipient_user_id, payload: dict):
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")

        event = build_event(kind, recipient_user_id, payload)
        try:
            queued = push_json(self.queue_key, event)
        except RedisError as e:
            raise CascadeNotificationFailure(kind, recipient_user_id, e) from e

        log = logger.bind(log_type="notification")
        if queued:
            log.info(f"Queued {kind} | User={recipient_user_id} | Event={event['event_id']}")
        else:
            log.info(f"Outbox disabled, dropped {kind} | User={recipient_user_id} | Data={payload}")
        return event


dispatcher = NotificationDispatcher()


def notify_safely(notifier, kind: str, recipient_user_id, payload: dict) -> bool:
    """Per-recipient guard: a failed notification never aborts the caller."""
    try:
        (notifier or dispatcher).notify(kind, recipient_user_id, payload)
        return True
    except Exception as e:
        logger.bind(log_type="notification").error(
            f"Notification {kind} to user {recipient_user_id} failed: {e}"
        )
        return False
