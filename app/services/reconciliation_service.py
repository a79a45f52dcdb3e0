"""Apply a verified provider status to Payment, Booking, AgentEarning and AuditLog.

Every provider adapter (Pesapal IPN, Pesapal callback, Flutterwave webhook)
ends up in `reconcile_payment`, which performs all writes in one commit.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.agent import Agent
from app.models.agent_earning import AgentEarning
from app.models.booking import Booking
from app.models.enums import BookingStatus, PaymentMethod, PaymentStatus, PaymentType
from app.models.payment import Payment
from app.services.audit_service import log_audit
from app.services.settings_service import get_platform_commission_percent

logger = logging.getLogger(__name__)

BALANCE_MARKER = "-BAL"
CENT = Decimal("0.01")

# Forward-only. COMPLETED and REFUNDED are terminal for new charges; a completed payment can still be refunded.
ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.COMPLETED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}
TERMINAL_STATUSES = {PaymentStatus.COMPLETED, PaymentStatus.REFUNDED}

PROCESSED = "processed"
ALREADY_PROCESSED = "already_processed"
UNCHANGED = "unchanged"


class PaymentNotFound(LookupError):
    pass


@dataclass
class StatusUpdate:
    """A provider-verified status, already mapped to internal enums."""
    status: PaymentStatus
    method: PaymentMethod | None = None
    status_message: str = ""
    provider_tracking_id: str | None = None
    card_last_four: str | None = None
    card_type: str | None = None
    metadata: dict = field(default_factory=dict)  # copied into the audit row


@dataclass
class ReconcileResult:
    outcome: str
    payment_id: str
    booking_id: str
    booking_ref: str
    previous_status: str
    status: str
    booking_status: str
    booking_payment_status: str
    is_balance: bool = False
    send_confirmation: bool = False

    @property
    def changed(self) -> bool:
        return self.outcome == PROCESSED


def find_payment_by_tx_ref(db: Session, tx_ref: str) -> Payment:
    p = db.query(Payment).filter(Payment.provider == "flutterwave", Payment.provider_ref == tx_ref).first()
    if not p:
        raise PaymentNotFound(f"No payment for tx_ref {tx_ref}")
    return p


def find_payment_for_pesapal(db: Session, order_tracking_id: str, merchant_ref: str | None = None) -> Payment:
    conds = []
    if order_tracking_id:
        conds += [Payment.provider_order_id == order_tracking_id, Payment.provider_tracking_id == order_tracking_id]
    if merchant_ref:
        conds.append(Payment.provider_ref == merchant_ref)
    if not conds:
        raise PaymentNotFound("Order tracking id or merchant reference is required")
    p = db.query(Payment).filter(Payment.provider == "pesapal", or_(*conds)).order_by(Payment.created_at.desc()).first()
    if not p:
        raise PaymentNotFound(f"No payment for Pesapal order {order_tracking_id}")
    return p


def is_balance_payment(payment: Payment) -> bool:
    return payment.payment_type == PaymentType.BALANCE.value or BALANCE_MARKER in (payment.provider_ref or "").upper()


def commission_percent_for(db: Session, booking: Booking) -> Decimal:
    agent = db.get(Agent, booking.agent_id) if booking.agent_id else None
    if agent and agent.commission_rate is not None:
        return Decimal(str(agent.commission_rate))
    return Decimal(str(get_platform_commission_percent(db)))


def balance_earning_amount(amount: Decimal, commission_percent: Decimal) -> Decimal:
    """amount * (1 - commission/100), rounded half-up to cents."""
    return (Decimal(amount) * (Decimal(100) - commission_percent) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def _result(outcome: str, payment: Payment, booking: Booking, previous: str, **kw) -> ReconcileResult:
    return ReconcileResult(
        outcome=outcome,
        payment_id=payment.id,
        booking_id=booking.id,
        booking_ref=booking.booking_ref,
        previous_status=previous,
        status=payment.status,
        booking_status=booking.status,
        booking_payment_status=booking.payment_status,
        **kw,
    )


def _payment_values(change: StatusUpdate, now: datetime) -> dict:
    values = {"status": change.status.value}
    if change.method is not None:
        values["method"] = change.method.value
    if change.status_message:
        values["status_message"] = change.status_message[:255]
    if change.provider_tracking_id:
        values["provider_tracking_id"] = str(change.provider_tracking_id)[:120]
    if change.status == PaymentStatus.COMPLETED:
        values["completed_at"] = now
        if change.card_last_four:
            values["card_last_four"] = change.card_last_four[-4:]
        if change.card_type:
            values["card_type"] = change.card_type[:40]
    elif change.status == PaymentStatus.FAILED:
        values["failed_at"] = now
    return values


def reconcile_payment(db: Session, payment_id: str, change: StatusUpdate) -> ReconcileResult:
    """Move one payment to `change.status`, with its booking, earning and audit rows, in a single commit.

    Duplicate or out-of-order notifications return ALREADY_PROCESSED/UNCHANGED without writing.
    The payment row is updated with a compare-and-set on its current status, so two
    concurrent deliveries cannot both credit the agent.
    """
    payment = db.get(Payment, payment_id)
    if not payment:
        raise PaymentNotFound(f"Payment {payment_id} not found")
    booking = db.get(Booking, payment.booking_id)
    if not booking:
        raise PaymentNotFound(f"Booking {payment.booking_id} for payment {payment_id} not found")

    previous = PaymentStatus(payment.status)
    new = change.status
    balance = is_balance_payment(payment)
    ctx = {"payment_id": payment.id, "booking_ref": booking.booking_ref, "provider": payment.provider, "from_status": previous.value, "to_status": new.value}

    if new not in ALLOWED_TRANSITIONS[previous]:
        if new != PaymentStatus.PENDING and (previous in TERMINAL_STATUSES or new == previous):
            outcome = ALREADY_PROCESSED
        else:
            outcome = UNCHANGED
        logger.info("No payment transition applied (%s)", outcome, extra=ctx)
        return _result(outcome, payment, booking, previous.value, is_balance=balance)

    now = datetime.now(timezone.utc)
    try:
        res = db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == previous.value)
            .values(**_payment_values(change, now))
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            db.rollback()
            db.refresh(payment)
            logger.info("Payment moved concurrently; skipping", extra=ctx)
            return _result(ALREADY_PROCESSED, payment, booking, previous.value, is_balance=balance)

        audit = {
            "bookingId": booking.id,
            "bookingReference": booking.booking_ref,
            "amount": payment.amount,
            "currency": payment.currency,
            "provider": payment.provider,
            "providerRef": payment.provider_ref,
            "providerTrackingId": change.provider_tracking_id,
            "previousStatus": previous.value,
            **change.metadata,
        }

        if new == PaymentStatus.COMPLETED:
            booking.payment_status = PaymentStatus.COMPLETED.value
            if balance:
                booking.balance_paid_at = now
                earning_amount = balance_earning_amount(payment.amount, commission_percent_for(db, booking))
                earning_type, description = "balance", f"Balance payment for booking {booking.booking_ref}"
            else:
                booking.status = BookingStatus.CONFIRMED.value
                earning_amount = Decimal(booking.agent_earnings or 0)
                earning_type, description = "booking", f"Earnings from booking {booking.booking_ref}"
            db.add(AgentEarning(
                id=str(uuid.uuid4()),
                agent_id=booking.agent_id,
                booking_id=booking.id,
                payment_id=payment.id,
                amount=earning_amount,
                currency=booking.currency or payment.currency,
                description=description,
                type=earning_type,
            ))
            audit.update({"method": change.method.value if change.method else None, "isBalance": balance, "agentEarning": earning_amount})
            log_audit(db, booking.user_id, "PAYMENT_COMPLETED", "payment", payment.id, audit)

        elif new == PaymentStatus.FAILED:
            booking.payment_status = PaymentStatus.FAILED.value
            audit["reason"] = change.status_message
            log_audit(db, booking.user_id, "PAYMENT_FAILED", "payment", payment.id, audit)

        elif new == PaymentStatus.REFUNDED:
            booking.status = BookingStatus.REFUNDED.value
            booking.payment_status = PaymentStatus.REFUNDED.value
            log_audit(db, booking.user_id, "PAYMENT_REFUNDED", "payment", payment.id, audit)

        db.commit()
    except IntegrityError:
        # agent_earnings.payment_id is unique: another delivery already credited this payment.
        db.rollback()
        db.refresh(payment)
        logger.warning("Duplicate earning rejected by the database; treating as already processed", extra=ctx)
        return _result(ALREADY_PROCESSED, payment, booking, previous.value, is_balance=balance)
    except Exception:
        db.rollback()
        raise

    db.refresh(payment)
    db.refresh(booking)
    logger.info("Payment reconciled", extra=ctx)
    return _result(
        PROCESSED, payment, booking, previous.value,
        is_balance=balance,
        send_confirmation=(new == PaymentStatus.COMPLETED and not balance),
    )


def record_webhook_error(db: Session, provider: str, reference: str, error: Exception, notification: dict | None = None) -> None:
    """Best-effort WEBHOOK_ERROR audit row in a fresh transaction; never raises."""
    try:
        db.rollback()
        log_audit(db, provider, "WEBHOOK_ERROR", "webhook", reference or "", {
            "error": f"{type(error).__name__}: {error}",
            "notification": notification or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to record webhook error", extra={"provider": provider, "reference": reference})
