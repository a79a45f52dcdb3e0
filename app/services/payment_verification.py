"""Authoritative status lookups and their translation into a StatusUpdate.

Webhook bodies are only used to find out *which* transaction changed; the status
that gets written always comes from the provider API. With PAYMENTS_SANDBOX the
lookups are simulated so the flow can be exercised without credentials.

The verified transaction is also matched against the stored payment before
anything is written: the order must be the one the payment was created for and,
for a completed charge, the amount and currency must cover it.
"""
import logging
from decimal import Decimal, InvalidOperation

from app.core.config import settings
from app.models.enums import PaymentStatus
from app.models.payment import Payment
from app.services.flutterwave_client import FlutterwaveClient, FlutterwaveError
from app.services.pesapal_client import PesapalClient, PesapalError
from app.services.reconciliation_service import StatusUpdate
from app.services.status_mapping import (
    map_flutterwave_method,
    map_flutterwave_status,
    map_pesapal_method,
    map_pesapal_status,
)

logger = logging.getLogger(__name__)


class TransactionMismatch(ValueError):
    """The verified transaction does not belong to, or does not pay for, the matched payment."""


def verify_pesapal_transaction(client: PesapalClient | None, order_tracking_id: str, payment: Payment | None = None) -> dict:
    if settings.PAYMENTS_SANDBOX:
        logger.warning("PAYMENTS_SANDBOX: simulating completed Pesapal transaction", extra={"order_tracking_id": order_tracking_id})
        return {
            "status_code": 1,
            "payment_status_description": "Completed (Sandbox)",
            "payment_method": "Sandbox",
            "confirmation_code": f"SANDBOX-{order_tracking_id}",
            "merchant_reference": payment.provider_ref if payment else None,
            "amount": str(payment.amount) if payment else None,
            "currency": payment.currency if payment else None,
        }
    if client is None:
        raise PesapalError("Pesapal is not configured")
    tx = client.get_transaction_status(order_tracking_id)
    logger.info(
        "Pesapal transaction status",
        extra={
            "order_tracking_id": order_tracking_id,
            "status_code": tx.get("status_code"),
            "description": tx.get("payment_status_description"),
        },
    )
    return tx


def verify_flutterwave_transaction(client: FlutterwaveClient | None, transaction_id, webhook_data: dict | None = None) -> dict:
    """Return the verified `data` block. In sandbox mode the (signature-checked) webhook data is echoed back."""
    if settings.PAYMENTS_SANDBOX:
        logger.warning("PAYMENTS_SANDBOX: using webhook data without verification", extra={"transaction_id": str(transaction_id)})
        return dict(webhook_data or {})
    if client is None:
        raise FlutterwaveError("Flutterwave is not configured")
    return client.verify_transaction(transaction_id)


def _decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def check_charge_covers_payment(payment: Payment, change: StatusUpdate, amount, currency) -> None:
    """A completed charge must be in the payment's currency and at least its amount."""
    if change.status != PaymentStatus.COMPLETED:
        return
    paid = _decimal(amount)
    if paid is None or paid < Decimal(payment.amount):
        raise TransactionMismatch(f"Charged amount {amount!r} does not cover payment amount {payment.amount}")
    if currency and str(currency).strip().upper() != (payment.currency or "").upper():
        raise TransactionMismatch(f"Charged currency {currency!r} does not match payment currency {payment.currency}")


def check_pesapal_order(payment: Payment, order_tracking_id: str, tx: dict, change: StatusUpdate, merchant_ref: str | None = None) -> None:
    """`merchant_ref` is the reference the notification claimed, when it carried one."""
    if merchant_ref and merchant_ref != payment.provider_ref:
        raise TransactionMismatch(f"Notification reference {merchant_ref} does not match payment {payment.provider_ref}")
    if payment.provider_order_id and payment.provider_order_id != order_tracking_id:
        raise TransactionMismatch(f"Order {order_tracking_id} was not issued for payment {payment.provider_ref}")
    if tx.get("merchant_reference") != payment.provider_ref:
        raise TransactionMismatch(
            f"Order {order_tracking_id} belongs to merchant reference {tx.get('merchant_reference')!r}, not {payment.provider_ref}"
        )
    check_charge_covers_payment(payment, change, tx.get("amount"), tx.get("currency"))


def check_flutterwave_charge(payment: Payment, tx: dict, change: StatusUpdate) -> None:
    if tx.get("tx_ref") != payment.provider_ref:
        raise TransactionMismatch(f"Transaction belongs to tx_ref {tx.get('tx_ref')!r}, not {payment.provider_ref}")
    check_charge_covers_payment(payment, change, tx.get("amount"), tx.get("currency"))


def pesapal_status_update(tx: dict) -> StatusUpdate:
    return StatusUpdate(
        status=map_pesapal_status(tx.get("status_code")),
        method=map_pesapal_method(tx.get("payment_method")),
        status_message=str(tx.get("payment_status_description") or tx.get("description") or ""),
        provider_tracking_id=tx.get("confirmation_code") or None,
        metadata={
            "pesapalTrackingId": tx.get("confirmation_code"),
            "paymentAccount": tx.get("payment_account"),
            "statusCode": tx.get("status_code"),
            "chargedAmount": tx.get("amount"),
            "chargedCurrency": tx.get("currency"),
        },
    )


def flutterwave_status_update(tx: dict) -> StatusUpdate:
    card = tx.get("card") if isinstance(tx.get("card"), dict) else {}
    status = str(tx.get("status") or "")
    return StatusUpdate(
        status=map_flutterwave_status(status),
        method=map_flutterwave_method(tx.get("payment_type")),
        status_message=str(tx.get("processor_response") or f"Payment {status}"),
        provider_tracking_id=str(tx["id"]) if tx.get("id") is not None else None,
        card_last_four=card.get("last_4digits"),
        card_type=card.get("type"),
        metadata={
            "flutterwaveTxId": str(tx.get("id")) if tx.get("id") is not None else None,
            "flwRef": tx.get("flw_ref"),
            "chargedAmount": tx.get("amount"),
            "chargedCurrency": tx.get("currency"),
        },
    )
