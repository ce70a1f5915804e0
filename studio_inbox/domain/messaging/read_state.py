"""Read-state tracker - unread counts and mark-as-read"""

import logging
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Message
from ...shared.timeutils import utcnow

logger = logging.getLogger(__name__)


class ReadStateTracker:
    """
    Derives unread counts from the message log.

    Read state is a single flag per message, not per viewer. The only
    viewer-relative part is that your own messages never count as unread
    for you. Once any non-sender opens a thread, its messages read as seen
    for every other viewer as well, including ones who never opened it.
    """

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def unread_count_for(self, viewer_id: str, thread_ids: Iterable[int]) -> dict[int, int]:
        """Unread messages per thread, excluding the viewer's own sends"""
        ids = list(thread_ids)
        counts = {thread_id: 0 for thread_id in ids}
        if not ids:
            return counts

        rows = (
            self.db.query(Message.thread_id, func.count(Message.id).label("unread"))
            .filter(
                Message.thread_id.in_(ids),
                Message.is_read == False,  # noqa: E712
                Message.sender_id != viewer_id,
            )
            .group_by(Message.thread_id)
            .all()
        )
        for row in rows:
            counts[row.thread_id] = int(row.unread)
        return counts

    def mark_thread_read(self, viewer_id: str, thread_id: int) -> int:
        """
        Mark every message the viewer did not send as read.

        Only unread rows are touched, so repeating the call is a no-op.
        Flushes only; the caller owns the transaction.

        Returns:
            Number of messages flipped to read
        """
        updated = (
            self.db.query(Message)
            .filter(
                Message.thread_id == thread_id,
                Message.sender_id != viewer_id,
                Message.is_read == False,  # noqa: E712
            )
            .update({Message.is_read: True, Message.read_at: self.clock()}, synchronize_session="fetch")
        )
        self.db.flush()
        if updated:
            logger.debug(f"👀 {viewer_id} read {updated} message(s) in thread {thread_id}")
        return updated
