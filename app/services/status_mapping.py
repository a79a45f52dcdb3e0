"""Vendor status / payment-method codes -> internal enums.

Unknown codes never raise: statuses fall back to PENDING so an unexpected
vendor value cannot move a booking, and methods fall back to OTHER.
"""
from app.models.enums import PaymentMethod, PaymentStatus

# Pesapal GetTransactionStatus status_code: 0=INVALID, 1=COMPLETED, 2=FAILED, 3=REVERSED
PESAPAL_STATUS_CODES = {
    0: PaymentStatus.PENDING,
    1: PaymentStatus.COMPLETED,
    2: PaymentStatus.FAILED,
    3: PaymentStatus.REFUNDED,
}

FLUTTERWAVE_STATUSES = {
    "successful": PaymentStatus.COMPLETED,
    "succeeded": PaymentStatus.COMPLETED,
    "failed": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
    "pending": PaymentStatus.PENDING,
    "reversed": PaymentStatus.REFUNDED,
    "refunded": PaymentStatus.REFUNDED,
}

# Keys are lower-cased vendor strings.
PESAPAL_METHODS = {
    "mpesa": PaymentMethod.MPESA,
    "m-pesa": PaymentMethod.MPESA,
    "airtel money": PaymentMethod.MPESA,
    "tigopesa": PaymentMethod.MPESA,
    "visa": PaymentMethod.CARD,
    "mastercard": PaymentMethod.CARD,
    "american express": PaymentMethod.CARD,
    "amex": PaymentMethod.CARD,
    "equity": PaymentMethod.BANK_TRANSFER,
    "equity bank": PaymentMethod.BANK_TRANSFER,
    "cooperative bank": PaymentMethod.BANK_TRANSFER,
    "co-op": PaymentMethod.BANK_TRANSFER,
    "pesapal": PaymentMethod.PAYPAL,
    "pesapal wallet": PaymentMethod.PAYPAL,
    "paypal": PaymentMethod.PAYPAL,
}

FLUTTERWAVE_METHODS = {
    "card": PaymentMethod.CARD,
    "mobilemoney": PaymentMethod.MPESA,
    "mobilemoneyghana": PaymentMethod.MPESA,
    "mobilemoneyfranco": PaymentMethod.MPESA,
    "mobilemoneyuganda": PaymentMethod.MPESA,
    "mobilemoneyrwanda": PaymentMethod.MPESA,
    "mobilemoneyzambia": PaymentMethod.MPESA,
    "mobilemoneytanzania": PaymentMethod.MPESA,
    "mpesa": PaymentMethod.MPESA,
    "ussd": PaymentMethod.BANK_TRANSFER,
    "bank_transfer": PaymentMethod.BANK_TRANSFER,
    "banktransfer": PaymentMethod.BANK_TRANSFER,
    "account": PaymentMethod.BANK_TRANSFER,
    "qr": PaymentMethod.BANK_TRANSFER,
    "paypal": PaymentMethod.PAYPAL,
}


def map_pesapal_status(status_code) -> PaymentStatus:
    try:
        code = int(status_code)
    except (TypeError, ValueError):
        return PaymentStatus.PENDING
    return PESAPAL_STATUS_CODES.get(code, PaymentStatus.PENDING)


def map_flutterwave_status(status: str | None) -> PaymentStatus:
    return FLUTTERWAVE_STATUSES.get((status or "").strip().lower(), PaymentStatus.PENDING)


def map_pesapal_method(method: str | None) -> PaymentMethod:
    return PESAPAL_METHODS.get((method or "").strip().lower(), PaymentMethod.OTHER)


def map_flutterwave_method(payment_type: str | None) -> PaymentMethod:
    return FLUTTERWAVE_METHODS.get((payment_type or "").strip().lower(), PaymentMethod.OTHER)
