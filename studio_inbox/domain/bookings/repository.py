"""Booking repository - the slice of the booking subsystem the inbox writes to"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingStatus, Service
from ...shared.timeutils import utcnow

DEFAULT_DURATION_MINUTES = 60


class BookingRepository:
    """Repository for service lookups and pending booking creation"""

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        """Get a service by ID"""
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def create_pending_booking(
        db: Session,
        client_id: str,
        service: Service,
        client_notes: Optional[str] = None,
    ) -> Booking:
        """
        Create a pending booking for a service.

        starts_at is a placeholder (now) until staff confirm a real time;
        duration and price are snapshotted from the service.
        Flushes only; the caller owns the transaction.
        """
        booking = Booking(
            client_id=client_id,
            service_id=service.id,
            staff_id=None,
            status=BookingStatus.PENDING.value,
            starts_at=utcnow(),
            duration_minutes=service.duration_minutes or DEFAULT_DURATION_MINUTES,
            total_in_cents=service.price_in_cents or 0,
            client_notes=client_notes,
        )
        db.add(booking)
        db.flush()
        return booking
