import logging
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)


@dataclass
class FlutterwaveConfig:
    api_url: str        # https://api.flutterwave.com
    secret_key: str     # FLWSECK-...; sent as bearer token
    timeout: int = 20

class FlutterwaveError(RuntimeError):
    pass


class FlutterwaveClient:
    def __init__(self, cfg: FlutterwaveConfig):
        if not cfg.secret_key:
            raise FlutterwaveError("Flutterwave secret key is required")
        self.cfg = cfg

    def request(self, method: str, path: str) -> dict:
        url = f"{self.cfg.api_url.rstrip('/')}{path}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.cfg.secret_key}",
        }
        try:
            r = requests.request(method=method.upper(), url=url, headers=headers, timeout=self.cfg.timeout)
        except requests.RequestException as e:
            raise FlutterwaveError(f"Flutterwave {method.upper()} {path} failed: {e}") from e
        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text[:500]}
        if r.status_code >= 400:
            raise FlutterwaveError(f"Flutterwave {r.status_code}: {data.get('message') or data}")
        if data.get("status") != "success":
            raise FlutterwaveError(f"Transaction verification failed: {data.get('message') or 'Unknown error'}")
        return data

    def verify_transaction(self, transaction_id) -> dict:
        """Return the verified transaction `data` block for a Flutterwave transaction id."""
        if not transaction_id:
            raise FlutterwaveError("Transaction ID is required")
        data = self.request("GET", f"/v3/transactions/{transaction_id}/verify")
        tx = data.get("data")
        if not isinstance(tx, dict):
            raise FlutterwaveError("Transaction verification returned no data")
        return tx
