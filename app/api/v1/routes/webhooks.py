from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.api.deps import get_flutterwave_client, get_pesapal_client, raw_body
from app.core.config import settings
from app.db.session import get_db
from app.schemas.webhooks import FlutterwaveWebhook, PesapalIPN
from app.services.flutterwave_client import FlutterwaveClient, FlutterwaveError
from app.services.idempotency_guard import notification_guard, notification_key
from app.services.notification_service import dispatch_booking_confirmation
from app.services.payment_verification import (
    TransactionMismatch,
    check_flutterwave_charge,
    check_pesapal_order,
    flutterwave_status_update,
    pesapal_status_update,
    verify_flutterwave_transaction,
    verify_pesapal_transaction,
)
from app.services.pesapal_client import PesapalClient, PesapalError
from app.services.reconciliation_service import (
    ALREADY_PROCESSED,
    PaymentNotFound,
    find_payment_by_tx_ref,
    find_payment_for_pesapal,
    reconcile_payment,
    record_webhook_error,
)
from app.services.webhook_validation import (
    InvalidPayload,
    parse_flutterwave_webhook,
    parse_pesapal_body,
    parse_pesapal_ipn,
    verify_flutterwave_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


# ---------- Flutterwave ----------

@router.post("/webhooks/flutterwave")
def flutterwave_webhook(
    request: Request,
    background: BackgroundTasks,
    body: bytes = Depends(raw_body),
    db: Session = Depends(get_db),
    flw: FlutterwaveClient | None = Depends(get_flutterwave_client),
):
    if not verify_flutterwave_signature(dict(request.headers), body, settings.FLW_SECRET_HASH):
        logger.warning("Invalid Flutterwave webhook signature", extra={"client_host": request.client.host if request.client else ""})
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = parse_flutterwave_webhook(body)
    except InvalidPayload as e:
        raise HTTPException(status_code=400, detail=f"Invalid payload: {e}")

    data = event.data
    logger.info("Flutterwave webhook received", extra={"flw_event": event.event, "tx_ref": data.tx_ref, "flw_status": data.status})

    if not event.event.startswith("charge."):
        logger.info("Ignoring non-charge Flutterwave event", extra={"flw_event": event.event})
        return {"status": "ignored"}

    key = notification_key(str(data.id), data.tx_ref)
    if not notification_guard.try_acquire(key):
        return {"status": "already_processed"}
    try:
        return _process_flutterwave(db, flw, event, background)
    finally:
        notification_guard.release(key)


def _process_flutterwave(db: Session, flw: FlutterwaveClient | None, event: FlutterwaveWebhook, background: BackgroundTasks) -> dict:
    data = event.data
    try:
        payment = find_payment_by_tx_ref(db, data.tx_ref)
    except PaymentNotFound:
        logger.warning("Payment not found for Flutterwave tx_ref", extra={"tx_ref": data.tx_ref})
        raise HTTPException(status_code=404, detail="Payment not found")

    try:
        tx = verify_flutterwave_transaction(flw, data.id, data.model_dump(mode="json"))
    except FlutterwaveError as e:
        logger.error("Failed to verify Flutterwave transaction", extra={"tx_ref": data.tx_ref, "transaction_id": str(data.id), "error": str(e)})
        record_webhook_error(db, "flutterwave", data.tx_ref, e, {"event": event.event, "id": str(data.id), "tx_ref": data.tx_ref})
        raise HTTPException(status_code=500, detail="Failed to verify transaction")

    change = flutterwave_status_update(tx)
    try:
        check_flutterwave_charge(payment, tx, change)
    except TransactionMismatch as e:
        logger.error("Verified Flutterwave transaction does not match payment", extra={"tx_ref": data.tx_ref, "transaction_id": str(data.id), "error": str(e)})
        raise HTTPException(status_code=400, detail="Transaction does not match payment")

    try:
        result = reconcile_payment(db, payment.id, change)
    except PaymentNotFound:
        raise HTTPException(status_code=404, detail="Payment not found")
    except Exception as e:
        logger.exception("Flutterwave webhook processing error", extra={"tx_ref": data.tx_ref})
        record_webhook_error(db, "flutterwave", data.tx_ref, e, {"event": event.event, "id": str(data.id), "tx_ref": data.tx_ref})
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    if result.outcome == ALREADY_PROCESSED:
        return {"status": "already_processed"}
    if result.send_confirmation:
        background.add_task(dispatch_booking_confirmation, result.booking_id)
    return {"status": "success", "message": f"Webhook processed for tx_ref: {data.tx_ref}"}


@router.get("/webhooks/flutterwave")
def flutterwave_webhook_status():
    return {"status": "ok", "message": "Flutterwave webhook endpoint is active"}


# ---------- Pesapal ----------

def _ipn_response(ipn: PesapalIPN, message: str) -> dict:
    return {
        "message": message,
        "orderNotificationType": ipn.OrderNotificationType,
        "orderTrackingId": ipn.OrderTrackingId,
        "orderMerchantReference": ipn.OrderMerchantReference,
        "status": 200,
    }


def _process_pesapal(db: Session, client: PesapalClient | None, ipn: PesapalIPN, background: BackgroundTasks) -> dict:
    logger.info(
        "Pesapal IPN received",
        extra={
            "order_tracking_id": ipn.OrderTrackingId,
            "merchant_ref": ipn.OrderMerchantReference,
            "notification_type": ipn.OrderNotificationType,
        },
    )
    key = notification_key(ipn.OrderTrackingId, ipn.OrderMerchantReference)
    if not notification_guard.try_acquire(key):
        return _ipn_response(ipn, "Notification already processed")

    notification = ipn.model_dump()
    try:
        try:
            payment = find_payment_for_pesapal(db, ipn.OrderTrackingId, ipn.OrderMerchantReference)
        except PaymentNotFound:
            logger.warning(
                "Payment record not found for Pesapal IPN",
                extra={"order_tracking_id": ipn.OrderTrackingId, "merchant_ref": ipn.OrderMerchantReference},
            )
            raise HTTPException(status_code=404, detail="Payment record not found")

        try:
            tx = verify_pesapal_transaction(client, ipn.OrderTrackingId, payment)
        except PesapalError as e:
            logger.error("Failed to verify Pesapal transaction status", extra={"order_tracking_id": ipn.OrderTrackingId, "error": str(e)})
            record_webhook_error(db, "pesapal", ipn.OrderTrackingId, e, notification)
            raise HTTPException(status_code=500, detail="Failed to verify transaction status")

        change = pesapal_status_update(tx)
        try:
            check_pesapal_order(payment, ipn.OrderTrackingId, tx, change, ipn.OrderMerchantReference)
        except TransactionMismatch as e:
            logger.error(
                "Verified Pesapal order does not match payment",
                extra={"order_tracking_id": ipn.OrderTrackingId, "merchant_ref": ipn.OrderMerchantReference, "error": str(e)},
            )
            raise HTTPException(status_code=400, detail="Order does not match payment")

        try:
            result = reconcile_payment(db, payment.id, change)
        except PaymentNotFound:
            raise HTTPException(status_code=404, detail="Payment record not found")
        except Exception as e:
            logger.exception("Error processing Pesapal notification", extra={"order_tracking_id": ipn.OrderTrackingId})
            record_webhook_error(db, "pesapal", ipn.OrderTrackingId, e, notification)
            raise HTTPException(status_code=500, detail="Failed to process notification")
    finally:
        notification_guard.release(key)

    if result.outcome == ALREADY_PROCESSED:
        return _ipn_response(ipn, "Payment already processed")
    if result.send_confirmation:
        background.add_task(dispatch_booking_confirmation, result.booking_id)
    return _ipn_response(ipn, "Notification processed successfully")


@router.post("/webhooks/pesapal")
def pesapal_ipn_post(
    background: BackgroundTasks,
    body: bytes = Depends(raw_body),
    db: Session = Depends(get_db),
    client: PesapalClient | None = Depends(get_pesapal_client),
):
    try:
        ipn = parse_pesapal_body(body)
    except InvalidPayload as e:
        raise HTTPException(status_code=400, detail=f"Invalid notification structure: {e}")
    return _process_pesapal(db, client, ipn, background)


@router.get("/webhooks/pesapal")
def pesapal_ipn_get(
    request: Request,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    client: PesapalClient | None = Depends(get_pesapal_client),
):
    """Same as POST, for IPNs registered with ipn_notification_type=GET."""
    fields = {k: request.query_params.get(k) for k in ("OrderTrackingId", "OrderMerchantReference", "OrderNotificationType")}
    try:
        ipn = parse_pesapal_ipn(fields)
    except InvalidPayload as e:
        raise HTTPException(status_code=400, detail=f"Invalid notification structure: {e}")
    return _process_pesapal(db, client, ipn, background)
