from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging

from pydantic import ValidationError

from app.schemas.webhooks import FlutterwaveWebhook, PesapalIPN

logger = logging.getLogger(__name__)


class InvalidPayload(ValueError):
    """Webhook body is not valid JSON or misses mandatory fields."""


def verify_flutterwave_signature(headers: dict, body: bytes, secret_hash: str) -> bool:
    """Verify a Flutterwave webhook.

    - `verif-hash` must equal the secret hash configured on the dashboard.
    - If Flutterwave also sends `flutterwave-signature`, it must equal
      base64(HMAC-SHA256(secret hash, raw body)).
    - No configured secret means nothing can be verified: reject.
    """
    if not secret_hash:
        logger.error("FLW_SECRET_HASH is not configured; rejecting Flutterwave webhook")
        return False

    verif_hash = headers.get("verif-hash") or headers.get("Verif-Hash")
    if not verif_hash:
        return False
    if not hmac.compare_digest(verif_hash.strip().encode("utf-8"), secret_hash.encode("utf-8")):
        return False

    body_sig = headers.get("flutterwave-signature") or headers.get("Flutterwave-Signature")
    if body_sig:
        computed = hmac.new(secret_hash.encode("utf-8"), body, hashlib.sha256).digest()
        computed_b64 = base64.b64encode(computed).decode("ascii")
        if not hmac.compare_digest(computed_b64, body_sig.strip()):
            return False
    return True


def _load_json(body: bytes) -> dict:
    try:
        payload = json.loads(body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidPayload("Invalid JSON payload") from e
    if not isinstance(payload, dict):
        raise InvalidPayload("Payload must be a JSON object")
    return payload


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(x) for x in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def parse_flutterwave_webhook(body: bytes) -> FlutterwaveWebhook:
    payload = _load_json(body)
    try:
        return FlutterwaveWebhook.model_validate(payload)
    except ValidationError as e:
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        logger.warning(
            "Invalid Flutterwave webhook payload",
            extra={"flw_event": payload.get("event"), "tx_ref": data.get("tx_ref"), "error": _first_error(e)},
        )
        raise InvalidPayload(_first_error(e)) from e


def parse_pesapal_ipn(fields: dict) -> PesapalIPN:
    try:
        return PesapalIPN.model_validate(fields)
    except ValidationError as e:
        logger.warning(
            "Invalid Pesapal IPN notification",
            extra={
                "order_tracking_id": fields.get("OrderTrackingId"),
                "merchant_ref": fields.get("OrderMerchantReference"),
                "error": _first_error(e),
            },
        )
        raise InvalidPayload(_first_error(e)) from e


def parse_pesapal_body(body: bytes) -> PesapalIPN:
    return parse_pesapal_ipn(_load_json(body))
