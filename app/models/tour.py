from sqlalchemy import String, Integer, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class Tour(Base):
    __tablename__ = "tours"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    agent_id: Mapped[str] = mapped_column(String(36), index=True)
    slug: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    destination: Mapped[str] = mapped_column(String(120), default="")
    duration_days: Mapped[int] = mapped_column(Integer, default=1)
    duration_nights: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class ItineraryDay(Base):
    __tablename__ = "itinerary_days"
    __table_args__ = (
        UniqueConstraint("tour_id", "day_number", name="uq_itinerary_day_tour_day"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tour_id: Mapped[str] = mapped_column(String(36), index=True)
    day_number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(120), default="")
    meals_csv: Mapped[str] = mapped_column(String(120), default="")  # Breakfast,Lunch,Dinner
    activities_csv: Mapped[str] = mapped_column(String(600), default="")
    overnight: Mapped[str] = mapped_column(String(200), default="")

    @property
    def meals(self):
        return [s.strip() for s in (self.meals_csv or "").split(",") if s.strip()]

    @property
    def activities(self):
        return [s.strip() for s in (self.activities_csv or "").split(",") if s.strip()]
