"""Structured log output for the API and the Celery worker.

Modules keep using `logging.getLogger(__name__)` with `extra={...}`; the handler
installed here renders those records through structlog so every extra field
(tx_ref, order_tracking_id, booking_ref, ...) ends up in the line.
"""
import logging
import sys

import structlog

from app.core.config import settings


def build_formatter(json_output: bool | None = None) -> structlog.stdlib.ProcessorFormatter:
    if json_output is None:
        json_output = settings.LOG_JSON
    if json_output:
        render = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render = [structlog.dev.ConsoleRenderer(colors=False)]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ExtraAdder(),
        ],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
    )


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
