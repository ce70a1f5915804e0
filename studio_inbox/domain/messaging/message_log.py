"""Message log - append-only messages per thread"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...exceptions import ValidationError
from ...models import Message, MessageChannel, Thread
from ...shared.timeutils import utcnow
from ...shared.validators import validate_message_body

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppendEvent:
    """Passed to every post-append hook"""

    thread: Thread
    message: Message
    # True for the first message written while creating a thread
    initial: bool = False


@dataclass(frozen=True)
class LatestMessage:
    body: str
    sender_id: str
    created_at: datetime


AppendHook = Callable[[AppendEvent], None]


def touch_last_message_at(event: AppendEvent) -> None:
    """Keep the thread's inbox sort key equal to its newest message time"""
    event.thread.last_message_at = event.message.created_at


class MessageLog:
    """
    Appends and reads messages.

    Side effects of an append (sort key maintenance, workflow transitions)
    live in the hook list rather than in append itself, so each one can be
    registered and tested on its own. Writes flush only; callers own the
    transaction.
    """

    def __init__(
        self,
        db: Session,
        hooks: Optional[Iterable[AppendHook]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.clock = clock
        self.hooks: list[AppendHook] = list(hooks) if hooks is not None else [touch_last_message_at]

    def register_hook(self, hook: AppendHook) -> None:
        self.hooks.append(hook)

    def append(
        self,
        thread: Thread,
        sender_id: str,
        body: str,
        *,
        initial: bool = False,
        recipient_id: Optional[str] = None,
        channel: str = MessageChannel.INTERNAL.value,
    ) -> Message:
        """
        Append a message to a thread and run the post-append hooks.

        created_at never goes backwards within a thread: if the clock reads
        earlier than the thread's current sort key, the sort key is used.

        Raises:
            ValidationError: If the body is empty or too long
        """
        try:
            clean_body = validate_message_body(body)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        now = self.clock()
        if thread.last_message_at and thread.last_message_at > now:
            now = thread.last_message_at

        message = Message(
            thread_id=thread.id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            channel=channel,
            body=clean_body,
            is_read=False,
            created_at=now,
        )
        self.db.add(message)
        self.db.flush()

        event = AppendEvent(thread=thread, message=message, initial=initial)
        for hook in self.hooks:
            hook(event)
        self.db.flush()

        logger.info(f"📨 Message {message.id} appended to thread {thread.id} by {sender_id}")
        return message

    def list_by_thread(self, thread_id: int) -> list[Message]:
        """All messages in a thread, oldest first"""
        return (
            self.db.query(Message)
            .filter(Message.thread_id == thread_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    def latest_per_thread(self, thread_ids: Iterable[int]) -> dict[int, LatestMessage]:
        """
        Most recent message for each thread.

        Equal timestamps are broken by the autoincrement id, so the row
        inserted last wins.
        """
        ids = list(thread_ids)
        if not ids:
            return {}

        ranked = (
            self.db.query(
                Message.thread_id.label("thread_id"),
                Message.body.label("body"),
                Message.sender_id.label("sender_id"),
                Message.created_at.label("created_at"),
                func.row_number()
                .over(
                    partition_by=Message.thread_id,
                    order_by=[Message.created_at.desc(), Message.id.desc()],
                )
                .label("row_rank"),
            )
            .filter(Message.thread_id.in_(ids))
            .subquery()
        )
        rows = (
            self.db.query(ranked.c.thread_id, ranked.c.body, ranked.c.sender_id, ranked.c.created_at)
            .filter(ranked.c.row_rank == 1)
            .all()
        )
        return {
            row.thread_id: LatestMessage(
                body=row.body, sender_id=row.sender_id, created_at=row.created_at
            )
            for row in rows
        }
