"""Thread store - thread creation and flag/status writes"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import ConstraintViolation, NotFound, ValidationError
from ...models import Booking, Profile, ProfileRole, Thread, ThreadStatus, ThreadType
from ...shared.timeutils import utcnow
from ...shared.validators import (
    MAX_PREFERRED_DATES_LENGTH,
    clean_text,
    normalize_participant_ids,
    validate_message_body,
    validate_subject,
)
from ..bookings.repository import BookingRepository
from .message_log import MessageLog
from .participants import ParticipantDirectory
from .workflow import StatusWorkflow

logger = logging.getLogger(__name__)


def check_thread_invariants(thread: Thread) -> None:
    """Group threads have no single owning client"""
    if thread.is_group and thread.client_id:
        raise ConstraintViolation("A group thread cannot have an owning client")


def compose_booking_request_body(service_name: str, message: str, preferred_dates: Optional[str]) -> str:
    """Initial message a client sends when requesting a service"""
    parts = [f"Hi! I'd love to book a {service_name}."]
    if preferred_dates:
        parts.append(f"Preferred dates: {preferred_dates}")
    if message:
        parts.append(message)
    return "\n\n".join(parts)


class ThreadStore:
    """
    Owns thread rows.

    Every write flushes only. create_thread and create_from_booking_request
    write several rows and must run inside one transaction (see
    database.transaction) so a failure leaves no partial thread behind.
    """

    def __init__(
        self,
        db: Session,
        participants: ParticipantDirectory,
        message_log: MessageLog,
        workflow: Optional[StatusWorkflow] = None,
        clock=utcnow,
    ):
        self.db = db
        self.participants = participants
        self.message_log = message_log
        self.workflow = workflow or StatusWorkflow()
        self.bookings = BookingRepository()
        self.clock = clock

    def get_thread(self, thread_id: int) -> Thread:
        """Get a thread or raise NotFound"""
        thread = self.db.query(Thread).filter(Thread.id == thread_id).first()
        if not thread:
            raise NotFound("Thread not found")
        return thread

    def _insert_thread(self, **fields) -> Thread:
        now = self.clock()
        thread = Thread(created_at=now, last_message_at=now, **fields)
        check_thread_invariants(thread)
        self.db.add(thread)
        self.db.flush()
        return thread

    def create_thread(
        self, creator: Profile, subject: str, participant_ids: list[str], initial_body: str
    ) -> Thread:
        """
        Create a thread with its participants and first message.

        More than one invited participant makes a group thread. A single
        invited client becomes the thread's owning client.

        Raises:
            ConstraintViolation: No participants were given
            NotFound: A participant id has no profile
            ValidationError: Empty subject or body
        """
        invited = normalize_participant_ids(participant_ids)
        if not invited:
            raise ConstraintViolation("A thread needs at least one participant")

        try:
            subject = validate_subject(subject)
            validate_message_body(initial_body)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        profiles = self.participants.get_profiles(invited)
        missing = [pid for pid in invited if pid not in profiles]
        if missing:
            raise NotFound(f"Participant not found: {', '.join(missing)}")

        is_group = len(invited) > 1
        client_id = None
        if not is_group and profiles[invited[0]].role == ProfileRole.CLIENT.value:
            client_id = invited[0]

        thread = self._insert_thread(
            subject=subject,
            client_id=client_id,
            is_group=is_group,
            thread_type=ThreadType.GENERAL.value,
            status=ThreadStatus.NEW.value,
        )
        self.participants.add_participants(thread.id, [*invited, creator.id])
        self.message_log.append(thread, creator.id, initial_body, initial=True)

        logger.info(
            f"🧵 Thread {thread.id} created by {creator.id} "
            f"({'group' if is_group else 'direct'}, {len(invited)} invited)"
        )
        return thread

    def create_from_booking_request(
        self,
        client: Profile,
        service_id: int,
        message: str,
        preferred_dates: Optional[str] = None,
    ) -> tuple[Thread, Booking]:
        """
        Create a pending booking plus a request thread in the client's name.

        Raises:
            NotFound: The service does not exist
            ValidationError: Preferred dates text is too long
        """
        service = self.bookings.get_service(self.db, service_id)
        if not service:
            raise NotFound("Service not found")

        message = clean_text(message)
        preferred_dates = clean_text(preferred_dates) or None
        if preferred_dates and len(preferred_dates) > MAX_PREFERRED_DATES_LENGTH:
            raise ValidationError(
                f"Preferred dates exceed maximum length of {MAX_PREFERRED_DATES_LENGTH} characters"
            )

        client_notes = f"Preferred dates: {preferred_dates}\n\n{message}" if preferred_dates else message
        booking = self.bookings.create_pending_booking(
            self.db, client.id, service, client_notes=client_notes.strip() or None
        )

        thread = self._insert_thread(
            subject=validate_subject(f"Booking Request: {service.name}"),
            client_id=client.id,
            is_group=False,
            thread_type=ThreadType.REQUEST.value,
            status=ThreadStatus.NEW.value,
            booking_id=booking.id,
        )
        self.participants.add_participants(thread.id, [client.id])
        self.message_log.append(
            thread,
            client.id,
            compose_booking_request_body(service.name, message, preferred_dates),
            initial=True,
        )

        logger.info(
            f"📅 Booking request {booking.id} for service {service.id} opened thread {thread.id}"
        )
        return thread, booking

    def set_starred(self, thread_id: int, starred: bool) -> Thread:
        thread = self.get_thread(thread_id)
        thread.is_starred = bool(starred)
        self.db.flush()
        return thread

    def toggle_starred(self, thread_id: int) -> Thread:
        thread = self.get_thread(thread_id)
        thread.is_starred = not thread.is_starred
        self.db.flush()
        return thread

    def set_archived(self, thread_id: int, archived: bool) -> Thread:
        thread = self.get_thread(thread_id)
        thread.is_archived = bool(archived)
        self.db.flush()
        return thread

    def set_status(self, thread_id: int, status) -> Thread:
        """Explicit status change, checked against the workflow table"""
        thread = self.get_thread(thread_id)
        self.workflow.transition(thread, status)
        self.db.flush()
        return thread

    def assign_staff(self, thread_id: int, staff_id: Optional[str]) -> Thread:
        """
        Assign (or clear) the staff member handling a thread.

        Raises:
            NotFound: Unknown staff profile
            ConstraintViolation: Assignee is not staff
        """
        thread = self.get_thread(thread_id)
        if staff_id:
            staff = self.participants.get_profiles([staff_id]).get(staff_id)
            if not staff:
                raise NotFound("Staff member not found")
            if not staff.is_staff:
                raise ConstraintViolation("Threads can only be assigned to studio staff")
        thread.assigned_staff_id = staff_id or None
        self.db.flush()
        return thread
