"""Messaging router - FastAPI endpoints for the studio inbox"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile, ThreadStatus
from .schemas import (
    AssigneeUpdate,
    BookingRequestCreate,
    BookingRequestResponse,
    InboxTab,
    MessageCreate,
    MessageResponse,
    ProfileResponse,
    QuickReplyResponse,
    ReadReceiptResponse,
    StarUpdate,
    StatusOptionsResponse,
    StatusUpdate,
    ThreadCreate,
    ThreadCreatedResponse,
    ThreadResponse,
    ThreadSummary,
)
from .service import MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


# ============================================================================
# INBOX & THREADS
# ============================================================================


@router.get("/threads", response_model=list[ThreadSummary])
async def get_threads(
    tab: InboxTab = Query("all"),
    status: Optional[ThreadStatus] = Query(None),
    include_archived: bool = Query(False),
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Inbox for the caller: every thread for staff, own threads for clients"""
    return service.get_inbox(
        current_user,
        tab=tab,
        status=status.value if status else None,
        include_archived=include_archived,
    )


@router.post("/threads", response_model=ThreadCreatedResponse)
async def create_thread(
    data: ThreadCreate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Compose a new thread with its first message"""
    thread = service.create_thread(data.subject, data.participant_ids, data.body, current_user)
    return ThreadCreatedResponse(thread_id=thread.id)


@router.get("/threads/{thread_id}/messages", response_model=list[MessageResponse])
async def get_thread_messages(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_thread_messages(thread_id, current_user)


@router.post("/threads/{thread_id}/messages", response_model=MessageResponse)
async def send_message(
    thread_id: int,
    data: MessageCreate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Reply in a thread"""
    return service.send_message(thread_id, data.body, current_user)


@router.post("/threads/{thread_id}/read", response_model=ReadReceiptResponse)
async def mark_thread_read(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Mark everything the caller did not send in this thread as read"""
    marked = service.mark_thread_read(thread_id, current_user)
    return ReadReceiptResponse(thread_id=thread_id, marked=marked)


@router.get("/threads/{thread_id}/participants", response_model=list[ProfileResponse])
async def get_thread_participants(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_participants(thread_id, current_user)


# ============================================================================
# STAFF ACTIONS
# ============================================================================


@router.patch("/threads/{thread_id}/status", response_model=ThreadResponse)
async def update_thread_status(
    thread_id: int,
    data: StatusUpdate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Explicit status change, checked against the workflow"""
    return service.update_status(thread_id, data.status, current_user)


@router.get("/threads/{thread_id}/status/options", response_model=StatusOptionsResponse)
async def get_status_options(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Statuses the thread can move to next"""
    return service.allowed_statuses(thread_id, current_user)


@router.put("/threads/{thread_id}/star", response_model=ThreadResponse)
async def set_thread_star(
    thread_id: int,
    data: StarUpdate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.set_starred(thread_id, data.starred, current_user)


@router.post("/threads/{thread_id}/star/toggle", response_model=ThreadResponse)
async def toggle_thread_star(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.toggle_star(thread_id, current_user)


@router.post("/threads/{thread_id}/archive", response_model=ThreadResponse)
async def archive_thread(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.archive(thread_id, current_user)


@router.post("/threads/{thread_id}/unarchive", response_model=ThreadResponse)
async def unarchive_thread(
    thread_id: int,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.unarchive(thread_id, current_user)


@router.put("/threads/{thread_id}/assignee", response_model=ThreadResponse)
async def assign_thread(
    thread_id: int,
    data: AssigneeUpdate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Assign a staff member to the thread, or clear the assignment with null"""
    return service.assign_staff(thread_id, data.staff_id, current_user)


@router.get("/quick-replies", response_model=list[QuickReplyResponse])
async def get_quick_replies(
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_quick_replies(current_user)


# ============================================================================
# CONTACTS & BOOKING REQUESTS
# ============================================================================


@router.get("/contacts", response_model=list[ProfileResponse])
async def get_contacts(
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Profiles the caller can start a thread with"""
    return service.get_contacts(current_user)


@router.post("/booking-requests", response_model=BookingRequestResponse)
async def create_booking_request(
    data: BookingRequestCreate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Request a service: opens a pending booking and a request thread"""
    thread, booking = service.create_booking_request(
        data.service_id, data.message, current_user, preferred_dates=data.preferred_dates
    )
    logger.info(f"📥 Booking request received from {current_user.id}")
    return BookingRequestResponse(thread_id=thread.id, booking_id=booking.id)
