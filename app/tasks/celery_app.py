from urllib.parse import parse_qs, urlencode, urlparse

from celery import Celery
from celery.signals import setup_logging

from app.core.config import settings
from app.core.log_config import configure_logging


def broker_url(url: str) -> str:
    """rediss:// (managed Redis over TLS) needs an explicit ssl_cert_reqs for kombu."""
    parsed = urlparse(url or "")
    if parsed.scheme != "rediss":
        return url
    qs = parse_qs(parsed.query)
    qs.setdefault("ssl_cert_reqs", ["CERT_NONE"])
    return parsed._replace(query=urlencode(qs, doseq=True)).geturl()


celery = Celery(
    "safariplus",
    broker=broker_url(settings.REDIS_URL),
    backend=broker_url(settings.REDIS_URL),
    include=["app.tasks.jobs"],
)

celery.conf.update(
    timezone="Africa/Nairobi",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "retry-queued-emails": {
            "task": "app.tasks.jobs.process_email_queue",
            "schedule": 120.0,
            "kwargs": {"limit": 50},
        },
    },
)


@setup_logging.connect
def _worker_logging(**kwargs):
    configure_logging()
