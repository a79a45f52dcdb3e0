from sqlalchemy import String, DateTime, Float
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base

class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    business_name: Mapped[str] = mapped_column(String(200))
    business_email: Mapped[str] = mapped_column(String(320), default="")
    business_phone: Mapped[str] = mapped_column(String(40), default="")
    commission_rate: Mapped[float | None] = mapped_column(Float, nullable=True)  # percent; None = platform default
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
