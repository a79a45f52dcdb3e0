from sqlalchemy import String, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from decimal import Decimal
from app.db.session import Base

class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)
    provider: Mapped[str] = mapped_column(String(40))  # pesapal/flutterwave
    # Our reference sent to the provider: Pesapal merchant reference / Flutterwave tx_ref.
    # Balance payments carry a "-BAL" marker.
    provider_ref: Mapped[str] = mapped_column(String(120), index=True)
    provider_order_id: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)  # Pesapal OrderTrackingId
    provider_tracking_id: Mapped[str | None] = mapped_column(String(120), nullable=True)  # Pesapal confirmation code / Flutterwave transaction id
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    payment_type: Mapped[str] = mapped_column(String(12), default="FULL")  # FULL|DEPOSIT|BALANCE
    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING, COMPLETED, FAILED, REFUNDED
    status_message: Mapped[str] = mapped_column(String(255), default="")
    method: Mapped[str | None] = mapped_column(String(20), nullable=True)  # MPESA, CARD, BANK_TRANSFER, PAYPAL, OTHER
    card_last_four: Mapped[str | None] = mapped_column(String(4), nullable=True)
    card_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
