from sqlalchemy import String, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from decimal import Decimal
from app.db.session import Base

class BookingAccommodation(Base):
    __tablename__ = "booking_accommodations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)
    day_number: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(200))
    tier: Mapped[str] = mapped_column(String(30), default="")  # budget, mid-range, luxury
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)


class BookingActivity(Base):
    __tablename__ = "booking_activities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
