import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from app.db.session import SessionLocal
from app.services.email_service import process_pending_emails
from app.services.notification_service import send_confirmation

logger = logging.getLogger(__name__)


def send_booking_confirmation(booking_id: str) -> dict:
    """Render the itinerary PDF and email it. Failures stay in the worker log."""
    db: Session = SessionLocal()
    try:
        return send_confirmation(db, booking_id)
    except Exception:
        db.rollback()
        logger.exception("Booking confirmation failed", extra={"booking_id": booking_id})
        return {"sent": False, "reason": "error"}
    finally:
        db.close()


def process_email_queue(limit: int = 50) -> dict:
    """Process queued/failed emails (retry send). Run periodically via Celery beat."""
    db: Session = SessionLocal()
    try:
        try:
            return process_pending_emails(db, limit=limit)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()
