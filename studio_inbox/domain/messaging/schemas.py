"""Messaging domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ...models import ThreadStatus

InboxTab = Literal["all", "unread", "starred", "archived"]


class ThreadCreate(BaseModel):
    """Schema for composing a new thread"""

    subject: str
    participant_ids: list[str] = Field(default_factory=list)
    body: str


class MessageCreate(BaseModel):
    """Schema for replying in a thread"""

    body: str


class BookingRequestCreate(BaseModel):
    """Schema for a client's booking request from the public booking page"""

    service_id: int
    message: str = ""
    preferred_dates: Optional[str] = None


class StatusUpdate(BaseModel):
    status: ThreadStatus


class StarUpdate(BaseModel):
    starred: bool


class AssigneeUpdate(BaseModel):
    staff_id: Optional[str] = None


class ThreadCreatedResponse(BaseModel):
    thread_id: int


class BookingRequestResponse(BaseModel):
    thread_id: int
    booking_id: int


class ReadReceiptResponse(BaseModel):
    thread_id: int
    marked: int


class StatusOptionsResponse(BaseModel):
    thread_id: int
    current: str
    allowed: list[str]


class ThreadResponse(BaseModel):
    """Thread fields without projection data"""

    id: int
    subject: str
    thread_type: str
    status: str
    is_starred: bool
    is_archived: bool
    is_closed: bool
    is_group: bool
    client_id: Optional[str] = None
    booking_id: Optional[int] = None
    assigned_staff_id: Optional[str] = None
    last_message_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class ThreadSummary(ThreadResponse):
    """One row of an inbox: thread + client + latest message + unread badge"""

    client_first_name: Optional[str] = None
    client_last_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    client_avatar_url: Optional[str] = None
    last_message_body: Optional[str] = None
    last_message_sender_id: Optional[str] = None
    unread_count: int = 0


class MessageResponse(BaseModel):
    """Message with sender profile info"""

    id: int
    thread_id: int
    body: str
    is_read: bool
    created_at: datetime
    sender_id: str
    sender_first_name: Optional[str] = None
    sender_last_name: Optional[str] = None
    sender_role: Optional[str] = None
    sender_avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    """Participant / contact card"""

    id: str
    first_name: str
    last_name: str
    email: str
    role: str
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class QuickReplyResponse(BaseModel):
    id: int
    label: str
    body: str

    class Config:
        from_attributes = True
