"""Inbox projector - the per-viewer thread list"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Profile, Thread
from .message_log import MessageLog
from .participants import ParticipantDirectory
from .read_state import ReadStateTracker
from .schemas import ThreadSummary
from .workflow import parse_status

logger = logging.getLogger(__name__)

INBOX_TABS = ("all", "unread", "starred", "archived")


class InboxProjector:
    """
    Composes threads, latest messages and unread counts into inbox rows.

    Staff see every thread. Clients see only threads they own or were
    added to. Archived threads are hidden unless asked for.
    """

    def __init__(
        self,
        db: Session,
        participants: ParticipantDirectory,
        message_log: MessageLog,
        read_state: ReadStateTracker,
    ):
        self.db = db
        self.participants = participants
        self.message_log = message_log
        self.read_state = read_state

    def inbox_for(
        self,
        viewer: Profile,
        *,
        include_archived: bool = False,
        tab: str = "all",
        status: Optional[str] = None,
    ) -> list[ThreadSummary]:
        """Thread summaries for a viewer, newest activity first"""
        if tab not in INBOX_TABS:
            tab = "all"

        query = self.db.query(Thread, Profile).outerjoin(Profile, Thread.client_id == Profile.id)

        if not viewer.is_staff:
            visible_ids = self.participants.visible_thread_ids(viewer.id)
            if not visible_ids:
                return []
            query = query.filter(Thread.id.in_(list(visible_ids)))

        if tab == "archived":
            query = query.filter(Thread.is_archived == True)  # noqa: E712
        elif not include_archived:
            query = query.filter(Thread.is_archived == False)  # noqa: E712

        if tab == "starred":
            query = query.filter(Thread.is_starred == True)  # noqa: E712

        if status:
            query = query.filter(Thread.status == parse_status(status))

        rows = query.order_by(Thread.last_message_at.desc(), Thread.id.desc()).all()
        if not rows:
            return []

        thread_ids = [thread.id for thread, _client in rows]
        latest = self.message_log.latest_per_thread(thread_ids)
        unread = self.read_state.unread_count_for(viewer.id, thread_ids)

        summaries = []
        for thread, client in rows:
            last = latest.get(thread.id)
            summary = ThreadSummary(
                id=thread.id,
                subject=thread.subject,
                thread_type=thread.thread_type,
                status=thread.status,
                is_starred=thread.is_starred,
                is_archived=thread.is_archived,
                is_closed=thread.is_closed,
                is_group=thread.is_group,
                client_id=thread.client_id,
                booking_id=thread.booking_id,
                assigned_staff_id=thread.assigned_staff_id,
                last_message_at=thread.last_message_at,
                created_at=thread.created_at,
                client_first_name=client.first_name if client else None,
                client_last_name=client.last_name if client else None,
                client_email=client.email if client else None,
                client_phone=client.phone if client else None,
                client_avatar_url=client.avatar_url if client else None,
                last_message_body=last.body if last else None,
                last_message_sender_id=last.sender_id if last else None,
                unread_count=unread.get(thread.id, 0),
            )
            if tab == "unread" and summary.unread_count == 0:
                continue
            summaries.append(summary)

        logger.debug(f"📥 Inbox for {viewer.id}: {len(summaries)} thread(s) (tab={tab})")
        return summaries
