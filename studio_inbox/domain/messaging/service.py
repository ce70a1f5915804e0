"""Messaging service - Business logic for the studio inbox"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import build_inbox_key, cache
from ...database import transaction
from ...exceptions import NotFound, PermissionDenied
from ...models import Profile, QuickReply, Thread
from ...services.view_invalidation import BOOKINGS_VIEW, MESSAGES_VIEW, notify_views
from ...shared.timeutils import utcnow
from .inbox import InboxProjector
from .message_log import MessageLog
from .participants import ParticipantDirectory
from .read_state import ReadStateTracker
from .schemas import MessageResponse, StatusOptionsResponse, ThreadSummary
from .threads import ThreadStore
from .workflow import StatusWorkflow, allowed_next

logger = logging.getLogger(__name__)


class MessagingService:
    """
    Service layer for inbox operations.

    Wires the per-request components together, checks who may do what,
    and owns the transaction around every write. Views are notified only
    after a commit succeeds.
    """

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock
        self.workflow = StatusWorkflow()
        self.participants = ParticipantDirectory(db, clock=clock)
        self.message_log = MessageLog(db, clock=clock)
        self.message_log.register_hook(self.workflow.on_message_appended)
        self.read_state = ReadStateTracker(db, clock=clock)
        self.threads = ThreadStore(
            db, self.participants, self.message_log, workflow=self.workflow, clock=clock
        )
        self.inbox = InboxProjector(db, self.participants, self.message_log, self.read_state)

    # ------------------------------------------------------------------
    # Access checks
    # ------------------------------------------------------------------

    def _require_staff(self, user: Profile) -> None:
        if not user.is_staff:
            logger.warning(f"⚠️ Client {user.id} attempted a staff-only action")
            raise PermissionDenied("Only studio staff can do this")

    def _get_visible_thread(self, thread_id: int, user: Profile) -> Thread:
        """Staff see every thread; anyone else gets NotFound for threads they cannot see"""
        thread = self.threads.get_thread(thread_id)
        if not user.is_staff and not self.participants.is_visible_to(user.id, thread_id):
            raise NotFound("Thread not found")
        return thread

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_inbox(
        self,
        user: Profile,
        tab: str = "all",
        status: Optional[str] = None,
        include_archived: bool = False,
    ) -> list[ThreadSummary]:
        """Inbox rows for the caller, served from cache when possible"""
        cache_key = build_inbox_key(user.id, tab, status, include_archived)
        cached = cache.get(cache_key)
        if cached is not None:
            return [ThreadSummary.model_validate(row) for row in cached]

        summaries = self.inbox.inbox_for(
            user, include_archived=include_archived, tab=tab, status=status
        )
        cache.set(cache_key, [s.model_dump(mode="json") for s in summaries])
        return summaries

    def get_thread_messages(self, thread_id: int, user: Profile) -> list[MessageResponse]:
        """Messages in a thread, oldest first, with sender profile info"""
        self._get_visible_thread(thread_id, user)
        return [self._to_message_response(m) for m in self.message_log.list_by_thread(thread_id)]

    def get_participants(self, thread_id: int, user: Profile) -> list[Profile]:
        self._get_visible_thread(thread_id, user)
        return self.participants.participant_profiles(thread_id)

    def get_contacts(self, user: Profile) -> list[Profile]:
        return self.participants.visible_contacts(user.id)

    def get_quick_replies(self, user: Profile) -> list[QuickReply]:
        """Active quick replies in display order (staff only)"""
        self._require_staff(user)
        return (
            self.db.query(QuickReply)
            .filter(QuickReply.is_active == True)  # noqa: E712
            .order_by(QuickReply.sort_order, QuickReply.id)
            .all()
        )

    def allowed_statuses(self, thread_id: int, user: Profile) -> StatusOptionsResponse:
        self._require_staff(user)
        thread = self.threads.get_thread(thread_id)
        return StatusOptionsResponse(
            thread_id=thread.id,
            current=thread.status,
            allowed=sorted(allowed_next(thread.status)),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def send_message(self, thread_id: int, body: str, user: Profile) -> MessageResponse:
        """Append a reply; a staff reply on a new client thread marks it contacted"""
        with transaction(self.db):
            thread = self._get_visible_thread(thread_id, user)
            message = self.message_log.append(thread, user.id, body)

        notify_views(MESSAGES_VIEW)
        return self._to_message_response(message)

    def mark_thread_read(self, thread_id: int, user: Profile) -> int:
        with transaction(self.db):
            self._get_visible_thread(thread_id, user)
            marked = self.read_state.mark_thread_read(user.id, thread_id)

        if marked:
            notify_views(MESSAGES_VIEW)
        return marked

    def update_status(self, thread_id: int, status, user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.set_status(thread_id, status)
        self.db.refresh(thread)

        notify_views(MESSAGES_VIEW)
        return thread

    def set_starred(self, thread_id: int, starred: bool, user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.set_starred(thread_id, starred)
        self.db.refresh(thread)

        notify_views(MESSAGES_VIEW)
        return thread

    def toggle_star(self, thread_id: int, user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.toggle_starred(thread_id)
        self.db.refresh(thread)

        notify_views(MESSAGES_VIEW)
        return thread

    def archive(self, thread_id: int, user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.set_archived(thread_id, True)
        self.db.refresh(thread)

        logger.info(f"🗄️ Thread {thread_id} archived by {user.id}")
        notify_views(MESSAGES_VIEW)
        return thread

    def unarchive(self, thread_id: int, user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.set_archived(thread_id, False)
        self.db.refresh(thread)

        notify_views(MESSAGES_VIEW)
        return thread

    def assign_staff(self, thread_id: int, staff_id: Optional[str], user: Profile) -> Thread:
        self._require_staff(user)
        with transaction(self.db):
            thread = self.threads.assign_staff(thread_id, staff_id)
        self.db.refresh(thread)

        logger.info(f"👤 Thread {thread_id} assigned to {staff_id or 'nobody'} by {user.id}")
        notify_views(MESSAGES_VIEW)
        return thread

    def create_thread(
        self, subject: str, participant_ids: list[str], body: str, user: Profile
    ) -> Thread:
        """Compose a new thread; thread, participants and first message commit together"""
        with transaction(self.db):
            thread = self.threads.create_thread(user, subject, participant_ids, body)

        notify_views(MESSAGES_VIEW)
        return thread

    def create_booking_request(
        self,
        service_id: int,
        message: str,
        user: Profile,
        preferred_dates: Optional[str] = None,
    ):
        """Client asks for a service: pending booking + request thread in one transaction"""
        with transaction(self.db):
            thread, booking = self.threads.create_from_booking_request(
                user, service_id, message, preferred_dates
            )

        notify_views(MESSAGES_VIEW, BOOKINGS_VIEW)
        return thread, booking

    @staticmethod
    def _to_message_response(message) -> MessageResponse:
        sender = message.sender
        return MessageResponse(
            id=message.id,
            thread_id=message.thread_id,
            body=message.body,
            is_read=message.is_read,
            created_at=message.created_at,
            sender_id=message.sender_id,
            sender_first_name=sender.first_name if sender else None,
            sender_last_name=sender.last_name if sender else None,
            sender_role=sender.role if sender else None,
            sender_avatar_url=sender.avatar_url if sender else None,
        )
