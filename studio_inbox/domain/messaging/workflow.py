"""
Thread status workflow

Thread statuses: new → pending → contacted → approved/rejected → resolved
- Explicit transitions are staff actions and must follow ALLOWED_TRANSITIONS
- 'resolved' can be reached from every non-terminal status
- The only automatic transition is new → contacted, fired by a staff reply
  on a client-owned thread
"""

import logging

from ...exceptions import InvalidStatusTransition, ValidationError
from ...models import Thread, ThreadStatus
from .message_log import AppendEvent

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ThreadStatus.NEW.value: frozenset(
        {
            ThreadStatus.PENDING.value,
            ThreadStatus.CONTACTED.value,
            ThreadStatus.APPROVED.value,
            ThreadStatus.REJECTED.value,
            ThreadStatus.RESOLVED.value,
        }
    ),
    ThreadStatus.PENDING.value: frozenset(
        {
            ThreadStatus.CONTACTED.value,
            ThreadStatus.APPROVED.value,
            ThreadStatus.REJECTED.value,
            ThreadStatus.RESOLVED.value,
        }
    ),
    ThreadStatus.CONTACTED.value: frozenset(
        {
            ThreadStatus.APPROVED.value,
            ThreadStatus.REJECTED.value,
            ThreadStatus.RESOLVED.value,
        }
    ),
    ThreadStatus.APPROVED.value: frozenset({ThreadStatus.RESOLVED.value}),
    ThreadStatus.REJECTED.value: frozenset({ThreadStatus.RESOLVED.value}),
    ThreadStatus.RESOLVED.value: frozenset(),  # Terminal state
}


def parse_status(value) -> str:
    """Normalize a status enum or string, rejecting unknown values"""
    raw = value.value if isinstance(value, ThreadStatus) else str(value or "").strip().lower()
    if raw not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown thread status: {value}")
    return raw


def allowed_next(current: str) -> frozenset[str]:
    """Statuses reachable in one explicit step from `current`"""
    return ALLOWED_TRANSITIONS[parse_status(current)]


def can_transition(current: str, target: str) -> bool:
    """
    Validate if a thread status transition is allowed

    Re-applying the current status counts as allowed (it is a no-op).
    """
    current = parse_status(current)
    target = parse_status(target)
    return target == current or target in ALLOWED_TRANSITIONS[current]


class StatusWorkflow:
    """Checks and applies thread status changes"""

    def transition(self, thread: Thread, target) -> bool:
        """
        Move a thread to `target`.

        Returns:
            True if the status changed, False if it already had that status

        Raises:
            ValidationError: Unknown status value
            InvalidStatusTransition: Edge not in ALLOWED_TRANSITIONS
        """
        target = parse_status(target)
        current = parse_status(thread.status)
        if target == current:
            return False
        if not can_transition(current, target):
            logger.warning(f"⚠️ Thread {thread.id} rejected transition: {current} → {target}")
            raise InvalidStatusTransition(current, target)

        thread.status = target
        logger.info(f"✅ Thread {thread.id} transitioned: {current} → {target}")
        return True

    def on_message_appended(self, event: AppendEvent) -> None:
        """
        Post-append hook: first staff reply on a new client thread marks it contacted.

        Skipped for the message written while creating the thread. Replies
        on threads that already left 'new' do nothing.
        """
        thread = event.thread
        if event.initial or not thread.client_id:
            return
        if event.message.sender_id == thread.client_id:
            return
        if thread.status != ThreadStatus.NEW.value:
            return

        thread.status = ThreadStatus.CONTACTED.value
        logger.info(
            f"✅ Thread {thread.id} transitioned: new → contacted (reply from {event.message.sender_id})"
        )
