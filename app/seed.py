import uuid
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.db.session import SessionLocal
from app.core.config import settings
from app.models.agent import Agent
from app.models.booking import Booking
from app.models.booking_item import BookingAccommodation, BookingActivity
from app.models.payment import Payment
from app.models.setting import Setting
from app.models.tour import ItineraryDay, Tour
from app.services.settings_service import COMMISSION_KEY, set_platform_commission_percent

DEMO_AGENT_EMAIL = "bookings@serengeti-trails.example"

ITINERARY = [
    (1, "Arrival in Arusha", "Arusha", "Meet your guide at Kilimanjaro Airport and transfer to your lodge.", "Dinner", "Airport transfer", "Arusha Coffee Lodge"),
    (2, "Tarangire National Park", "Tarangire", "Full-day game drive among baobabs and elephant herds.", "Breakfast,Lunch,Dinner", "Game drive", "Tarangire Safari Lodge"),
    (3, "Ngorongoro Crater", "Ngorongoro", "Descend into the crater for a half-day game drive.", "Breakfast,Lunch,Dinner", "Crater tour,Picnic lunch", "Ngorongoro Farm House"),
    (4, "Departure", "Arusha", "Return to Arusha for your onward flight.", "Breakfast", "Airport transfer", ""),
]


def ensure_agent(db: Session) -> Agent:
    a = db.query(Agent).filter(Agent.business_email == DEMO_AGENT_EMAIL).first()
    if a:
        return a
    a = Agent(
        id=str(uuid.uuid4()),
        business_name="Serengeti Trails Ltd",
        business_email=DEMO_AGENT_EMAIL,
        business_phone="+255 754 000 111",
        commission_rate=None,
    )
    db.add(a)
    db.commit()
    return a


def ensure_tour(db: Session, agent: Agent) -> Tour:
    t = db.query(Tour).filter(Tour.slug == "northern-circuit-4-days").first()
    if t:
        return t
    t = Tour(
        id=str(uuid.uuid4()),
        agent_id=agent.id,
        slug="northern-circuit-4-days",
        title="Northern Circuit Highlights",
        destination="Tanzania",
        duration_days=4,
        duration_nights=3,
    )
    db.add(t)
    for day_number, title, location, description, meals, activities, overnight in ITINERARY:
        db.add(ItineraryDay(
            id=str(uuid.uuid4()),
            tour_id=t.id,
            day_number=day_number,
            title=title,
            location=location,
            description=description,
            meals_csv=meals,
            activities_csv=activities,
            overnight=overnight,
        ))
    db.commit()
    return t


def ensure_booking(db: Session, agent: Agent, tour: Tour, booking_ref: str, payment_type: str) -> Booking:
    b = db.query(Booking).filter(Booking.booking_ref == booking_ref).first()
    if b:
        return b
    start = date.today() + timedelta(days=30)
    total = Decimal("2400.00")
    commission = (total * Decimal(str(settings.PLATFORM_COMMISSION_PERCENT)) / 100).quantize(Decimal("0.01"))
    b = Booking(
        id=str(uuid.uuid4()),
        booking_ref=booking_ref,
        user_id=str(uuid.uuid4()),
        tour_id=tour.id,
        agent_id=agent.id,
        start_date=start,
        end_date=start + timedelta(days=tour.duration_days - 1),
        adults=2,
        children=0,
        contact_name="Amina Mushi",
        contact_email="amina@example.com",
        contact_phone="+255 713 000 222",
        currency="USD",
        base_amount=Decimal("1800.00"),
        accommodation_amount=Decimal("450.00"),
        activities_amount=Decimal("150.00"),
        total_amount=total,
        platform_commission=commission,
        agent_earnings=total - commission,
        payment_type=payment_type,
    )
    if payment_type == "DEPOSIT":
        b.deposit_amount = Decimal("720.00")
        b.balance_amount = total - b.deposit_amount
        b.balance_due_date = start - timedelta(days=14)
    db.add(b)
    for day_number, _, _, _, _, _, overnight in ITINERARY:
        if overnight:
            db.add(BookingAccommodation(id=str(uuid.uuid4()), booking_id=b.id, day_number=day_number, name=overnight, tier="mid-range", price=Decimal("150.00")))
    db.add(BookingActivity(id=str(uuid.uuid4()), booking_id=b.id, name="Maasai village visit", price=Decimal("150.00")))
    db.commit()
    return b


def ensure_payment(db: Session, b: Booking, provider: str, provider_ref: str, amount: Decimal, payment_type: str, provider_order_id: str | None = None):
    if db.query(Payment).filter(Payment.provider_ref == provider_ref).first():
        return
    db.add(Payment(
        id=str(uuid.uuid4()),
        booking_id=b.id,
        provider=provider,
        provider_ref=provider_ref,
        provider_order_id=provider_order_id,
        amount=amount,
        currency=b.currency,
        payment_type=payment_type,
    ))
    db.commit()


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM bookings LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            print("[seed] bookings table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        if not db.get(Setting, COMMISSION_KEY):
            set_platform_commission_percent(db, settings.PLATFORM_COMMISSION_PERCENT, updated_by="seed")

        agent = ensure_agent(db)
        tour = ensure_tour(db, agent)

        # Full payment through Pesapal, awaiting IPN
        full = ensure_booking(db, agent, tour, "SP-DEMO01", "FULL")
        ensure_payment(db, full, "pesapal", "SP-SP-DEMO01-1", full.total_amount, "FULL", provider_order_id="demo-order-tracking-1")

        # Deposit via Flutterwave, balance later under the -BAL reference
        dep = ensure_booking(db, agent, tour, "SP-DEMO02", "DEPOSIT")
        ensure_payment(db, dep, "flutterwave", "SP-DEMO02-DEP", dep.deposit_amount, "DEPOSIT")
        ensure_payment(db, dep, "flutterwave", "SP-DEMO02-BAL", dep.balance_amount, "BALANCE")
        print("[seed] demo agent, tour, bookings and pending payments ready.")
    finally:
        db.close()


if __name__ == "__main__":
    run()
