"""Provider status and payment-method mapping."""

import pytest

from app.models.enums import PaymentMethod, PaymentStatus
from app.services.status_mapping import (
    map_flutterwave_method,
    map_flutterwave_status,
    map_pesapal_method,
    map_pesapal_status,
)


@pytest.mark.parametrize("code, expected", [
    (0, PaymentStatus.PENDING),
    (1, PaymentStatus.COMPLETED),
    (2, PaymentStatus.FAILED),
    (3, PaymentStatus.REFUNDED),
    ("1", PaymentStatus.COMPLETED),
    (7, PaymentStatus.PENDING),
    (None, PaymentStatus.PENDING),
    ("abc", PaymentStatus.PENDING),
])
def test_pesapal_status_codes(code, expected):
    assert map_pesapal_status(code) == expected


@pytest.mark.parametrize("status, expected", [
    ("successful", PaymentStatus.COMPLETED),
    ("SUCCESSFUL", PaymentStatus.COMPLETED),
    ("failed", PaymentStatus.FAILED),
    ("cancelled", PaymentStatus.FAILED),
    ("pending", PaymentStatus.PENDING),
    ("reversed", PaymentStatus.REFUNDED),
    ("something-new", PaymentStatus.PENDING),
    (None, PaymentStatus.PENDING),
])
def test_flutterwave_statuses(status, expected):
    assert map_flutterwave_status(status) == expected


def test_pesapal_methods():
    """Wallets, cards and banks map to their families; unknown falls back to OTHER."""
    assert map_pesapal_method("MPESA") == PaymentMethod.MPESA
    assert map_pesapal_method("Airtel Money") == PaymentMethod.MPESA
    assert map_pesapal_method("Visa") == PaymentMethod.CARD
    assert map_pesapal_method("Equity Bank") == PaymentMethod.BANK_TRANSFER
    assert map_pesapal_method("Pesapal Wallet") == PaymentMethod.PAYPAL
    assert map_pesapal_method("Crypto") == PaymentMethod.OTHER
    assert map_pesapal_method(None) == PaymentMethod.OTHER


def test_flutterwave_methods():
    assert map_flutterwave_method("card") == PaymentMethod.CARD
    assert map_flutterwave_method("mobilemoneytanzania") == PaymentMethod.MPESA
    assert map_flutterwave_method("ussd") == PaymentMethod.BANK_TRANSFER
    assert map_flutterwave_method("account") == PaymentMethod.BANK_TRANSFER
    assert map_flutterwave_method("barter") == PaymentMethod.OTHER
