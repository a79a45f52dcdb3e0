from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, timezone

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from app.models.agent import Agent
from app.models.booking import Booking
from app.models.booking_item import BookingAccommodation, BookingActivity
from app.models.tour import ItineraryDay, Tour

LEFT = 40
BOTTOM = 60
TEXT_WIDTH = A4[0] - 2 * LEFT


@dataclass
class ItineraryDoc:
    booking_ref: str
    tour_title: str
    destination: str
    start_date: str
    end_date: str
    travellers: str
    contact_name: str
    contact_email: str
    currency: str
    total_amount: str
    payment_status: str
    agent_name: str = ""
    agent_contact: str = ""
    days: list[dict] = field(default_factory=list)  # day_number, title, location, description, meals, activities, overnight, accommodation
    extras: list[tuple[str, str]] = field(default_factory=list)  # (activity name, price)
    special_requests: str = ""


def _stay_label(stay: BookingAccommodation | None) -> str:
    if not stay:
        return ""
    return f"{stay.name} ({stay.tier})" if stay.tier else stay.name


def build_itinerary_doc(db: Session, booking: Booking) -> ItineraryDoc:
    tour = db.get(Tour, booking.tour_id)
    agent = db.get(Agent, booking.agent_id) if booking.agent_id else None
    days = (
        db.query(ItineraryDay)
        .filter(ItineraryDay.tour_id == booking.tour_id)
        .order_by(ItineraryDay.day_number.asc())
        .all()
    )
    stays = {
        a.day_number: a
        for a in db.query(BookingAccommodation).filter(BookingAccommodation.booking_id == booking.id).all()
    }
    extras = db.query(BookingActivity).filter(BookingActivity.booking_id == booking.id).all()

    travellers = f"{booking.adults} adult(s)"
    if booking.children:
        travellers += f", {booking.children} child(ren)"

    return ItineraryDoc(
        booking_ref=booking.booking_ref,
        tour_title=tour.title if tour else "Tour",
        destination=tour.destination if tour else "",
        start_date=booking.start_date.isoformat() if booking.start_date else "",
        end_date=booking.end_date.isoformat() if booking.end_date else "",
        travellers=travellers,
        contact_name=booking.contact_name,
        contact_email=booking.contact_email,
        currency=booking.currency,
        total_amount=f"{booking.total_amount or 0:.2f}",
        payment_status=booking.payment_status,
        agent_name=agent.business_name if agent else "",
        agent_contact=" / ".join(x for x in (agent.business_email, agent.business_phone) if x) if agent else "",
        days=[
            {
                "day_number": d.day_number,
                "title": d.title,
                "location": d.location,
                "description": d.description,
                "meals": d.meals,
                "activities": d.activities,
                "overnight": d.overnight,
                "accommodation": _stay_label(stays.get(d.day_number)),
            }
            for d in days
        ],
        extras=[(a.name, f"{a.price or 0:.2f}") for a in extras],
        special_requests=booking.special_requests or "",
    )


class _Writer:
    """Top-down line writer that starts a new page when it runs out of room."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.h = A4[1]
        self.y = self.h - 60

    def _room(self, needed: float) -> None:
        if self.y - needed < BOTTOM:
            self.c.showPage()
            self.y = self.h - 60

    def heading(self, text: str, size: int = 12) -> None:
        self._room(size + 16)
        self.y -= 8
        self.c.setFont("Helvetica-Bold", size)
        self.c.drawString(LEFT, self.y, text)
        self.y -= size + 6

    def line(self, text: str, size: int = 10, indent: int = 0) -> None:
        for part in simpleSplit(text or "", "Helvetica", size, TEXT_WIDTH - indent) or [""]:
            self._room(size + 4)
            self.c.setFont("Helvetica", size)
            self.c.drawString(LEFT + indent, self.y, part)
            self.y -= size + 4


def render_itinerary_pdf_bytes(doc: ItineraryDoc) -> bytes:
    """Return an A4 itinerary PDF. Pure function."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Itinerary {doc.booking_ref}")
    w = _Writer(c)

    w.heading("SafariPlus Itinerary", size=18)
    w.line(f"Booking Reference: {doc.booking_ref}", size=11)
    w.line(f"{doc.tour_title}" + (f" - {doc.destination}" if doc.destination else ""), size=11)

    w.heading("Trip")
    w.line(f"Dates: {doc.start_date} to {doc.end_date}")
    w.line(f"Travellers: {doc.travellers}")
    w.line(f"Lead traveller: {doc.contact_name or '(Not provided)'}  {doc.contact_email}")
    if doc.agent_name:
        w.line(f"Operated by: {doc.agent_name}" + (f" ({doc.agent_contact})" if doc.agent_contact else ""))

    w.heading("Day by day")
    if not doc.days:
        w.line("Your agent will share the detailed programme before departure.")
    for d in doc.days:
        title = f"Day {d['day_number']}: {d['title']}"
        if d.get("location"):
            title += f" ({d['location']})"
        w.heading(title, size=11)
        if d.get("description"):
            w.line(d["description"], indent=10)
        if d.get("activities"):
            w.line("Activities: " + ", ".join(d["activities"]), indent=10)
        if d.get("meals"):
            w.line("Meals: " + ", ".join(d["meals"]), indent=10)
        stay = d.get("accommodation") or d.get("overnight")
        if stay:
            w.line(f"Overnight: {stay}", indent=10)

    if doc.extras:
        w.heading("Add-on activities")
        for name, price in doc.extras:
            w.line(f"{name}  {doc.currency} {price}", indent=10)

    if doc.special_requests:
        w.heading("Special requests")
        w.line(doc.special_requests)

    w.heading("Payment")
    w.line(f"Total: {doc.currency} {doc.total_amount}")
    w.line(f"Status: {doc.payment_status}")

    c.setFont("Helvetica", 9)
    c.drawString(LEFT, 40, "This itinerary is generated automatically after successful payment.")
    c.drawString(LEFT, 26, f"Generated: {datetime.now(timezone.utc).isoformat()}")

    c.showPage()
    c.save()
    return buf.getvalue()


def render_booking_itinerary(db: Session, booking: Booking) -> bytes:
    return render_itinerary_pdf_bytes(build_itinerary_doc(db, booking))
