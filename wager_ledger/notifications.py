import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from .models import Notification
from .storage import InMemoryStorage, newest_first


logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Appends user-facing messages as a side effect of ledger events.

    Dispatch is fire-and-forget: a notification that cannot be stored is
    logged and dropped, never raised into the operation that triggered it.
    Clients discover new messages by polling ``list_notifications``.
    """

    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    def add_notification(self, user_id: UUID, message: str) -> Optional[Notification]:
        row = {
            "id": uuid4(),
            "user_id": user_id,
            "message": message,
            "is_read": False,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            return Notification(**self.storage.insert_notification(row))
        except Exception:
            logger.exception("Dropped notification for user %s", user_id)
            return None

    def list_notifications(self, user_id: UUID) -> list[Notification]:
        return [Notification(**n) for n in newest_first(self.storage.list_notifications(user_id))]

    def unread_count(self, user_id: UUID) -> int:
        return sum(1 for n in self.storage.list_notifications(user_id) if not n["is_read"])

    def mark_all_notifications_read(self, user_id: UUID) -> int:
        flipped = self.storage.mark_notifications_read(user_id)
        logger.debug("Marked %d notifications read for user %s", flipped, user_id)
        return flipped


def format_money(amount, symbol: str = "₹") -> str:
    return f"{symbol}{amount}"
