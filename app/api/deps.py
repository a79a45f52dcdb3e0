import logging
from functools import lru_cache

from fastapi import Request

from app.core.config import settings
from app.services.flutterwave_client import FlutterwaveClient, FlutterwaveConfig
from app.services.pesapal_client import PesapalClient, PesapalConfig

logger = logging.getLogger(__name__)


async def raw_body(request: Request) -> bytes:
    """Exact request bytes; signatures are computed over these, not over re-serialised JSON."""
    return await request.body()


@lru_cache(maxsize=1)
def get_pesapal_client() -> PesapalClient | None:
    # One instance per process so the bearer token cache is shared between requests.
    if not (settings.PESAPAL_CONSUMER_KEY and settings.PESAPAL_CONSUMER_SECRET):
        logger.error("Pesapal is not configured (missing PESAPAL_CONSUMER_KEY / PESAPAL_CONSUMER_SECRET)")
        return None
    return PesapalClient(PesapalConfig(
        api_url=settings.PESAPAL_API_URL,
        consumer_key=settings.PESAPAL_CONSUMER_KEY,
        consumer_secret=settings.PESAPAL_CONSUMER_SECRET,
        ipn_url=settings.PESAPAL_IPN_URL,
        ipn_id=settings.PESAPAL_IPN_ID,
        timeout=settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS,
    ))


@lru_cache(maxsize=1)
def get_flutterwave_client() -> FlutterwaveClient | None:
    if not settings.FLW_SECRET_KEY:
        logger.error("Flutterwave is not configured (missing FLW_SECRET_KEY)")
        return None
    return FlutterwaveClient(FlutterwaveConfig(
        api_url=settings.FLW_API_URL,
        secret_key=settings.FLW_SECRET_KEY,
        timeout=settings.PAYMENT_PROVIDER_TIMEOUT_SECONDS,
    ))
