"""Post-commit booking confirmation.

`dispatch_booking_confirmation` runs after the webhook response is built
(FastAPI BackgroundTasks) and only hands the booking id to the Celery worker.
Nothing here may fail a webhook: errors are logged and dropped.
"""
import logging

from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.enums import BookingStatus
from app.services.email_service import send_booking_confirmation_email

logger = logging.getLogger(__name__)


def dispatch_booking_confirmation(booking_id: str) -> None:
    try:
        from app.tasks.jobs import send_booking_confirmation

        send_booking_confirmation.delay(booking_id)
    except Exception:
        logger.exception("Could not enqueue booking confirmation", extra={"booking_id": booking_id})


def send_confirmation(db: Session, booking_id: str) -> dict:
    """Render the itinerary and queue the confirmation email for a confirmed booking."""
    booking = db.get(Booking, booking_id)
    if not booking:
        logger.warning("Confirmation requested for unknown booking", extra={"booking_id": booking_id})
        return {"sent": False, "reason": "booking_not_found"}
    if booking.status != BookingStatus.CONFIRMED.value:
        logger.info("Booking not confirmed; confirmation skipped", extra={"booking_ref": booking.booking_ref, "booking_status": booking.status})
        return {"sent": False, "reason": "not_confirmed"}
    email_id = send_booking_confirmation_email(db, booking)
    if not email_id:
        return {"sent": False, "reason": "no_contact_email"}
    return {"sent": True, "email_id": email_id}
