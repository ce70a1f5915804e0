import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.timeutils import utcnow


def generate_profile_id():
    """Profiles are keyed by the identity provider's user UUID"""
    return str(uuid.uuid4())


class ProfileRole(str, enum.Enum):
    OWNER = "owner"
    ASSISTANT = "assistant"
    CLIENT = "client"


STAFF_ROLES = frozenset({ProfileRole.OWNER.value, ProfileRole.ASSISTANT.value})


class ThreadType(str, enum.Enum):
    REQUEST = "request"
    INQUIRY = "inquiry"
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"
    BOOKING = "booking"
    GENERAL = "general"


class ThreadStatus(str, enum.Enum):
    NEW = "new"
    PENDING = "pending"
    CONTACTED = "contacted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESOLVED = "resolved"


class MessageChannel(str, enum.Enum):
    INTERNAL = "internal"
    EMAIL = "email"
    SMS = "sms"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Profile(Base):
    """Identity record mirrored from the identity provider (read-only here)"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_profile_id)
    role = Column(String(20), nullable=False, default=ProfileRole.CLIENT.value)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(320), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    client_threads = relationship(
        "Thread", back_populates="client", foreign_keys="Thread.client_id"
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Service(Base):
    """Studio service catalogue entry (managed elsewhere)"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price_in_cents = Column(Integer, nullable=True)  # Null = "Contact for quote"
    duration_minutes = Column(Integer, nullable=True)  # Null = variable/TBD
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Booking(Base):
    """Appointment record; only pending requests are created by the inbox"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    staff_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    starts_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    total_in_cents = Column(Integer, nullable=False)
    client_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    service = relationship("Service")


class Thread(Base):
    """A conversation between the studio and one client, or a group of profiles"""

    __tablename__ = "threads"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String(300), nullable=False)
    # The owning client; null for group threads
    client_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_group = Column(Boolean, default=False, nullable=False)
    thread_type = Column(String(20), nullable=False, default=ThreadType.GENERAL.value, index=True)
    status = Column(String(20), nullable=False, default=ThreadStatus.NEW.value, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    is_starred = Column(Boolean, default=False, nullable=False, index=True)
    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    is_closed = Column(Boolean, default=False, nullable=False)
    assigned_staff_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Inbox sort key, kept in sync by the message log
    last_message_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    client = relationship("Profile", foreign_keys=[client_id], back_populates="client_threads")
    assigned_staff = relationship("Profile", foreign_keys=[assigned_staff_id])
    booking = relationship("Booking")
    participants = relationship("ThreadParticipant", back_populates="thread")
    messages = relationship(
        "Message", back_populates="thread", order_by="Message.id"
    )


class ThreadParticipant(Base):
    """Explicit membership of a profile in a thread; never removed"""

    __tablename__ = "thread_participants"
    __table_args__ = (
        UniqueConstraint("thread_id", "profile_id", name="thread_participants_unique_idx"),
    )

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(
        Integer, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    thread = relationship("Thread", back_populates="participants")
    profile = relationship("Profile")


class Message(Base):
    """
    Append-only message row.

    Only is_read/read_at ever change after insert. The read flag is global,
    not per viewer: the first non-sender to open the thread marks the
    message read for everyone else too.
    """

    __tablename__ = "messages"
    __table_args__ = (Index("messages_thread_created_idx", "thread_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(
        Integer, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Null means a thread-wide message
    recipient_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    channel = Column(String(20), nullable=False, default=MessageChannel.INTERNAL.value)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    thread = relationship("Thread", back_populates="messages")
    sender = relationship("Profile", foreign_keys=[sender_id])


class QuickReply(Base):
    """Saved response template offered to staff in the reply box"""

    __tablename__ = "quick_replies"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
