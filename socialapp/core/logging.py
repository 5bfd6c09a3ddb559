"""Structured logging setup shared by the app factory and scripts."""

from __future__ import annotations

import logging
import sys

import structlog
from asgi_correlation_id.context import correlation_id
from structlog.contextvars import merge_contextvars

from .config import get_settings


def _add_env(logger, method_name, event_dict):
    event_dict["env"] = get_settings().app_env
    return event_dict


def _add_correlation_id(logger, method_name, event_dict):
    cid = correlation_id.get(None)
    if cid:
        event_dict["request_id"] = cid
    return event_dict


def configure_logging() -> None:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level, logging.INFO)
    is_dev = settings.app_env in {"dev", "local", "test"}

    shared_processors = [
        merge_contextvars,
        _add_env,
        _add_correlation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    renderer = structlog.dev.ConsoleRenderer() if is_dev else structlog.processors.JSONRenderer()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
