from sqlalchemy import String, Integer, DateTime, Date, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from decimal import Decimal
from app.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_ref: Mapped[str] = mapped_column(String(20), unique=True, index=True)

    user_id: Mapped[str] = mapped_column(String(36), index=True)  # client
    tour_id: Mapped[str] = mapped_column(String(36), index=True)
    agent_id: Mapped[str] = mapped_column(String(36), index=True)

    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)

    contact_name: Mapped[str] = mapped_column(String(200), default="")
    contact_email: Mapped[str] = mapped_column(String(320), default="")
    contact_phone: Mapped[str] = mapped_column(String(40), default="")
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    currency: Mapped[str] = mapped_column(String(3), default="USD")
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    accommodation_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    activities_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    platform_commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    agent_earnings: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)  # agreed at checkout, credited on first payment

    payment_type: Mapped[str] = mapped_column(String(12), default="FULL")  # FULL|DEPOSIT
    deposit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    balance_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    balance_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    balance_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="PENDING")          # PENDING, CONFIRMED, CANCELLED, COMPLETED, REFUNDED
    payment_status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING, COMPLETED, FAILED, REFUNDED

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
