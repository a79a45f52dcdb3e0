"""Flutterwave signature checks and webhook payload parsing."""

import base64
import hashlib
import hmac
import json

import pytest

from app.services.webhook_validation import (
    InvalidPayload,
    parse_flutterwave_webhook,
    parse_pesapal_body,
    parse_pesapal_ipn,
    verify_flutterwave_signature,
)

SECRET = "s3cret-hash"
BODY = b'{"event":"charge.completed","data":{}}'


def test_signature_matches_secret_hash():
    assert verify_flutterwave_signature({"verif-hash": SECRET}, BODY, SECRET) is True


def test_signature_mismatch_or_missing_is_rejected():
    assert verify_flutterwave_signature({"verif-hash": "wrong"}, BODY, SECRET) is False
    assert verify_flutterwave_signature({}, BODY, SECRET) is False


def test_unconfigured_secret_rejects_everything():
    assert verify_flutterwave_signature({"verif-hash": ""}, BODY, "") is False
    assert verify_flutterwave_signature({"verif-hash": "anything"}, BODY, "") is False


def test_body_hmac_is_checked_when_present():
    good = base64.b64encode(hmac.new(SECRET.encode(), BODY, hashlib.sha256).digest()).decode()
    assert verify_flutterwave_signature({"verif-hash": SECRET, "flutterwave-signature": good}, BODY, SECRET) is True
    tampered = BODY.replace(b"completed", b"failed")
    assert verify_flutterwave_signature({"verif-hash": SECRET, "flutterwave-signature": good}, tampered, SECRET) is False


def test_parse_flutterwave_webhook_valid():
    body = json.dumps({
        "event": "charge.completed",
        "data": {"id": 42, "tx_ref": "TX42", "status": "successful", "amount": 10.5, "currency": "USD",
                 "payment_type": "card", "card": {"last_4digits": "4242", "type": "VISA", "token": "secret"}},
    }).encode()
    event = parse_flutterwave_webhook(body)
    assert event.event == "charge.completed"
    assert event.data.tx_ref == "TX42"
    assert event.data.card.last_4digits == "4242"
    assert not hasattr(event.data.card, "token")


@pytest.mark.parametrize("body", [
    b"not json",
    b"[]",
    json.dumps({"event": "charge.completed"}).encode(),
    json.dumps({"event": "charge.completed", "data": {"id": 1, "status": "successful", "amount": 1, "currency": "USD"}}).encode(),
    json.dumps({"event": "charge.completed", "data": {"id": 1, "tx_ref": "T", "status": "successful", "amount": "x", "currency": "USD"}}).encode(),
])
def test_parse_flutterwave_webhook_rejects_malformed(body):
    with pytest.raises(InvalidPayload):
        parse_flutterwave_webhook(body)


def test_parse_pesapal_ipn():
    ipn = parse_pesapal_ipn({"OrderTrackingId": " OT-1 ", "OrderMerchantReference": "SP-1", "OrderNotificationType": "IPNCHANGE"})
    assert ipn.OrderTrackingId == "OT-1"


@pytest.mark.parametrize("fields", [
    {"OrderMerchantReference": "SP-1", "OrderNotificationType": "IPNCHANGE"},
    {"OrderTrackingId": "", "OrderMerchantReference": "SP-1", "OrderNotificationType": "IPNCHANGE"},
    {"OrderTrackingId": "OT-1", "OrderMerchantReference": None, "OrderNotificationType": "IPNCHANGE"},
])
def test_parse_pesapal_ipn_requires_all_fields(fields):
    with pytest.raises(InvalidPayload):
        parse_pesapal_ipn(fields)


def test_parse_pesapal_body_rejects_bad_json():
    with pytest.raises(InvalidPayload):
        parse_pesapal_body(b"{oops")
