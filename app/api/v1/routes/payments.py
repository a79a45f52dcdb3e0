from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_pesapal_client
from app.db.session import get_db
from app.models.booking import Booking
from app.models.enums import PaymentStatus
from app.models.payment import Payment
from app.schemas.payments import PaymentOut, PaymentStatusOut, PesapalCallbackOut
from app.services.notification_service import dispatch_booking_confirmation
from app.services.payment_verification import (
    TransactionMismatch,
    check_pesapal_order,
    pesapal_status_update,
    verify_pesapal_transaction,
)
from app.services.pesapal_client import PesapalClient, PesapalError
from app.services.reconciliation_service import PaymentNotFound, find_payment_for_pesapal, reconcile_payment

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _callback_out(p: Payment, b: Booking, updated: bool, message: str) -> PesapalCallbackOut:
    return PesapalCallbackOut(
        success=p.status != PaymentStatus.FAILED.value,
        paymentId=p.id,
        bookingRef=b.booking_ref,
        paymentStatus=p.status,
        bookingStatus=b.status,
        bookingPaymentStatus=b.payment_status,
        updated=updated,
        message=message,
    )


@router.get("/public/payments/pesapal/callback", response_model=PesapalCallbackOut)
def pesapal_callback(
    background: BackgroundTasks,
    OrderTrackingId: Optional[str] = None,
    OrderMerchantReference: Optional[str] = None,
    bookingRef: Optional[str] = None,
    db: Session = Depends(get_db),
    client: PesapalClient | None = Depends(get_pesapal_client),
):
    """Customer redirect target after checkout. Re-checks the order with Pesapal and reconciles it."""
    logger.info("Payment callback received", extra={"order_tracking_id": OrderTrackingId, "merchant_ref": OrderMerchantReference, "booking_ref": bookingRef})

    payment = None
    if OrderTrackingId or OrderMerchantReference:
        try:
            payment = find_payment_for_pesapal(db, OrderTrackingId or "", OrderMerchantReference)
        except PaymentNotFound:
            payment = None
    if payment is None and bookingRef:
        b = db.query(Booking).filter(Booking.booking_ref == bookingRef).first()
        if b:
            payment = (
                db.query(Payment)
                .filter(Payment.booking_id == b.id, Payment.provider == "pesapal")
                .order_by(Payment.created_at.desc())
                .first()
            )
    if payment is None:
        raise HTTPException(status_code=404, detail="Payment not found")

    booking = db.get(Booking, payment.booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    if payment.status == PaymentStatus.COMPLETED.value:
        return _callback_out(payment, booking, False, "Payment already completed")

    tracking_id = OrderTrackingId or payment.provider_order_id
    if not tracking_id:
        return _callback_out(payment, booking, False, "Payment is awaiting confirmation")

    try:
        tx = verify_pesapal_transaction(client, tracking_id, payment)
    except PesapalError as e:
        # The IPN will still arrive; show the stored state meanwhile.
        logger.error("Failed to get Pesapal status on callback", extra={"order_tracking_id": tracking_id, "error": str(e)})
        return _callback_out(payment, booking, False, "Payment verification pending")

    change = pesapal_status_update(tx)
    try:
        check_pesapal_order(payment, tracking_id, tx, change, OrderMerchantReference)
    except TransactionMismatch as e:
        logger.error("Callback order does not match payment", extra={"order_tracking_id": tracking_id, "booking_ref": booking.booking_ref, "error": str(e)})
        raise HTTPException(status_code=400, detail="Order does not match payment")

    try:
        result = reconcile_payment(db, payment.id, change)
    except PaymentNotFound:
        raise HTTPException(status_code=404, detail="Payment not found")
    if result.send_confirmation:
        background.add_task(dispatch_booking_confirmation, result.booking_id)

    db.refresh(payment)
    db.refresh(booking)
    message = {
        PaymentStatus.COMPLETED.value: "Payment completed",
        PaymentStatus.FAILED.value: "Payment failed",
        PaymentStatus.REFUNDED.value: "Payment refunded",
    }.get(payment.status, "Payment is awaiting confirmation")
    return _callback_out(payment, booking, result.changed, message)


@router.get("/public/payments/{booking_ref}/status", response_model=PaymentStatusOut)
def payment_status(booking_ref: str, db: Session = Depends(get_db)):
    """Read-only payment state for the checkout page to poll."""
    b = db.query(Booking).filter(Booking.booking_ref == booking_ref).first()
    if not b:
        raise HTTPException(status_code=404, detail="Booking not found")
    payments = db.query(Payment).filter(Payment.booking_id == b.id).order_by(Payment.created_at.desc()).all()
    return PaymentStatusOut(
        bookingRef=b.booking_ref,
        bookingStatus=b.status,
        paymentStatus=b.payment_status,
        balancePaidAt=_iso(b.balance_paid_at),
        payments=[
            PaymentOut(
                id=p.id,
                provider=p.provider,
                reference=p.provider_ref,
                amount=f"{p.amount:.2f}",
                currency=p.currency,
                paymentType=p.payment_type,
                status=p.status,
                method=p.method,
                statusMessage=p.status_message or "",
                completedAt=_iso(p.completed_at),
            )
            for p in payments
        ],
    )
