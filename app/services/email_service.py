from datetime import datetime, timezone
import base64
import logging
import smtplib
from email.message import EmailMessage
from sqlalchemy.orm import Session
import uuid
import requests

from app.core.config import settings
from app.models.booking import Booking
from app.models.email_log import EmailLog
from app.services.itinerary_service import render_booking_itinerary

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BOOKING_CONFIRMATION = "booking_confirmation"


def queue_email(db: Session, to_email: str, subject: str, body: str, related_booking_ref: str = "",
                attachments: list[tuple[str, bytes, str]] | None = None, kind: str = "generic") -> str:
    """Queue and attempt immediate send. Body is stored so the worker can retry on failure.

    attachments: list of (filename, content_bytes, mime_type). Only the names are stored;
    process_pending_emails re-renders known attachments on retry.
    """
    attachments = attachments or []
    eid = str(uuid.uuid4())
    db.add(
        EmailLog(
            id=eid,
            kind=kind,
            to_email=to_email,
            subject=subject,
            body=body,
            attachment_names=",".join(a[0] for a in attachments)[:500],
            status="queued",
            related_booking_ref=related_booking_ref,
        )
    )
    db.commit()

    log = db.get(EmailLog, eid)
    _attempt(log, attachments)
    db.commit()
    return eid


def _attempt(log: EmailLog, attachments: list[tuple[str, bytes, str]]) -> bool:
    log.attempts = (log.attempts or 0) + 1
    try:
        send_email(log.to_email, log.subject, log.body or "", attachments=attachments)
    except Exception as e:
        log.status = "failed"
        log.last_error = str(e)[:500]
        logger.warning("Email send failed; worker will retry", extra={"email_id": log.id, "to_email": log.to_email, "attempts": log.attempts, "error": str(e)})
        return False
    log.status = "sent"
    log.sent_at = datetime.now(timezone.utc)
    log.last_error = None
    return True


def send_email(to_email: str, subject: str, body: str, attachments: list[tuple[str, bytes, str]]):
    """Send email via SendGrid if configured, otherwise SMTP (MailHog recommended for local)."""

    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(to_email, subject, body, attachments)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    for filename, content, mime in attachments:
        maintype, subtype = (mime.split("/", 1) + ["octet-stream"])[:2]
        msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(to_email: str, subject: str, body: str, attachments: list[tuple[str, bytes, str]]):
    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM},
        "subject": subject,
        "content": [{"type": "text/plain", "value": body}],
    }
    if attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(content).decode("utf-8"),
                "type": mime,
                "filename": filename,
                "disposition": "attachment",
            }
            for filename, content, mime in attachments
        ]

    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json=payload,
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")


def itinerary_attachment(db: Session, booking: Booking) -> tuple[str, bytes, str]:
    return (f"itinerary-{booking.booking_ref}.pdf", render_booking_itinerary(db, booking), "application/pdf")


def booking_confirmation_body(booking: Booking) -> str:
    lines = [
        f"Hello {booking.contact_name or 'traveller'},",
        "",
        f"Your payment has been received and booking {booking.booking_ref} is confirmed.",
        f"Travel dates: {booking.start_date} to {booking.end_date}",
        f"Amount paid: {booking.currency} {booking.total_amount}",
        "",
        "Your itinerary is attached as a PDF.",
    ]
    if settings.CLIENT_BASE_URL:
        lines.append(f"Manage your booking: {settings.CLIENT_BASE_URL.rstrip('/')}/bookings/{booking.booking_ref}")
    lines += ["", "Thank you for travelling with SafariPlus."]
    return "\n".join(lines)


def send_booking_confirmation_email(db: Session, booking: Booking) -> str | None:
    """Queue the confirmation email with the itinerary PDF. Returns the EmailLog id, or None without a contact email."""
    if not booking.contact_email:
        logger.warning("Booking has no contact email; confirmation skipped", extra={"booking_ref": booking.booking_ref})
        return None
    return queue_email(
        db,
        booking.contact_email,
        f"Booking confirmed - {booking.booking_ref}",
        booking_confirmation_body(booking),
        related_booking_ref=booking.booking_ref,
        attachments=[itinerary_attachment(db, booking)],
        kind=BOOKING_CONFIRMATION,
    )


def _attachments_for_retry(db: Session, log: EmailLog) -> list[tuple[str, bytes, str]]:
    if log.kind != BOOKING_CONFIRMATION or not log.attachment_names:
        return []
    booking = db.query(Booking).filter(Booking.booking_ref == log.related_booking_ref).first()
    return [itinerary_attachment(db, booking)] if booking else []


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Process up to `limit` queued or failed emails; retry send and update status. Returns counts."""
    pending = (
        db.query(EmailLog)
        .filter(
            EmailLog.status.in_(["queued", "failed"]),
            EmailLog.attempts < MAX_ATTEMPTS,
            EmailLog.body.isnot(None),
            EmailLog.body != "",
        )
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent, failed = 0, 0
    for log in pending:
        if _attempt(log, _attachments_for_retry(db, log)):
            sent += 1
        else:
            failed += 1
    if pending:
        db.commit()
    return {"processed": len(pending), "sent": sent, "failed": failed}
