import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import requests

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN = timedelta(seconds=30)


@dataclass
class PesapalConfig:
    api_url: str            # https://cybqa.pesapal.com/pesapalv3 OR https://pay.pesapal.com/v3
    consumer_key: str
    consumer_secret: str
    ipn_url: str = ""
    ipn_id: str = ""
    timeout: int = 20

class PesapalError(RuntimeError):
    pass


def _parse_expiry(value: str | None) -> datetime:
    # Pesapal returns e.g. "2021-08-26T12:29:30.5177702Z"; tokens live 5 minutes.
    fallback = datetime.now(timezone.utc) + timedelta(minutes=5)
    if not value:
        return fallback
    raw = re.sub(r"(\.\d{6})\d+", r"\1", value.strip()).replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class PesapalClient:
    def __init__(self, cfg: PesapalConfig):
        if not (cfg.consumer_key and cfg.consumer_secret):
            raise PesapalError("Pesapal consumer key and secret are required")
        if not cfg.api_url:
            raise PesapalError("Pesapal API URL is required")
        self.cfg = cfg
        self._token: str | None = None
        self._token_expiry: datetime | None = None
        self._lock = threading.Lock()

    def _url(self, path: str) -> str:
        return f"{self.cfg.api_url.rstrip('/')}{path}"

    def _send(self, method: str, path: str, *, token: str | None = None, payload: dict | None = None, params: dict | None = None):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            r = requests.request(
                method=method.upper(),
                url=self._url(path),
                json=payload,
                params=params,
                headers=headers,
                timeout=self.cfg.timeout,
            )
        except requests.RequestException as e:
            raise PesapalError(f"Pesapal {method.upper()} {path} failed: {e}") from e
        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text[:500]}
        if r.status_code >= 400:
            raise PesapalError(f"Pesapal {r.status_code} on {path}: {data}")
        return data

    @staticmethod
    def _raise_on_error(data, what: str) -> None:
        # Successful responses still carry {"error": {"error_type": null, "code": null, "message": null}}
        err = data.get("error") if isinstance(data, dict) else None
        if isinstance(err, dict):
            err = {k: v for k, v in err.items() if v}
        if err:
            msg = err.get("message") if isinstance(err, dict) else str(err)
            raise PesapalError(f"{what} failed: {msg or 'Unknown error'}")

    def access_token(self) -> str:
        """Return a cached bearer token, requesting a new one 30s before expiry."""
        with self._lock:
            now = datetime.now(timezone.utc)
            if self._token and self._token_expiry and now < self._token_expiry - TOKEN_REFRESH_MARGIN:
                return self._token

            data = self._send("POST", "/api/Auth/RequestToken", payload={
                "consumer_key": self.cfg.consumer_key,
                "consumer_secret": self.cfg.consumer_secret,
            })
            self._raise_on_error(data, "Pesapal authentication")
            if str(data.get("status")) != "200" or not data.get("token"):
                raise PesapalError("Pesapal authentication failed: missing token")
            self._token = data["token"]
            self._token_expiry = _parse_expiry(data.get("expiryDate"))
            logger.debug("Pesapal access token refreshed", extra={"expires_at": self._token_expiry.isoformat()})
            return self._token

    def get_transaction_status(self, order_tracking_id: str) -> dict:
        """Authoritative status for an order (status_code 0=invalid, 1=completed, 2=failed, 3=reversed)."""
        if not order_tracking_id:
            raise PesapalError("Order tracking ID is required")
        data = self._send(
            "GET",
            "/api/Transactions/GetTransactionStatus",
            token=self.access_token(),
            params={"orderTrackingId": order_tracking_id},
        )
        self._raise_on_error(data, "Pesapal status check")
        if "status_code" not in data:
            raise PesapalError("Pesapal status check returned no status_code")
        return data

    def register_ipn(self, url: str | None = None, notification_type: str = "POST") -> dict:
        ipn_url = url or self.cfg.ipn_url
        if not ipn_url:
            raise PesapalError("IPN URL is required")
        data = self._send("POST", "/api/URLSetup/RegisterIPN", token=self.access_token(), payload={
            "url": ipn_url,
            "ipn_notification_type": notification_type.upper(),
        })
        self._raise_on_error(data, "IPN registration")
        if not data.get("ipn_id"):
            raise PesapalError("IPN registration returned no ipn_id")
        return data

    def list_ipns(self) -> list[dict]:
        data = self._send("GET", "/api/URLSetup/GetIpnList", token=self.access_token())
        return data if isinstance(data, list) else []
