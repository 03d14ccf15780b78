# coding: utf-8
"""
Sentry configuration for the Reader stats core

- init_sentry: SDK setup with asyncio + aiohttp integrations
- before_send_hook: strips Telegram initData, drops expected "user not ready" noise
- quote_breadcrumb: trail of quote mutations leading up to an error
"""
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from loguru import logger

from config.config import ENVIRONMENT, SENTRY_DSN
from src.core.errors import UserNotReadyError


# Headers that carry Telegram initData (user identity + signature)
SENSITIVE_HEADERS = ("Authorization", "X-Telegram-Init-Data")

# Ctrl+C and reads before login completes are not bugs
IGNORED_EXCEPTIONS = (KeyboardInterrupt, UserNotReadyError)


def init_sentry(dsn: Optional[str] = None, environment: Optional[str] = None) -> bool:
    """
    Initialize Sentry SDK for the stats core

    Args:
        dsn: Overrides SENTRY_DSN
        environment: Overrides ENVIRONMENT

    Returns:
        True if Sentry was initialized, False if it is disabled or failed
    """
    dsn = dsn if dsn is not None else SENTRY_DSN
    environment = environment or ENVIRONMENT
    if not dsn:
        logger.warning("SENTRY_DSN not configured - stats errors are only logged")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[AsyncioIntegration(), AioHttpIntegration()],
            traces_sample_rate=0.1 if environment == "production" else 1.0,
            send_default_pii=False,  # initData identifies the reader
            max_breadcrumbs=50,
            before_send=before_send_hook,
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    logger.info(f"Sentry initialized for stats core (Environment: {environment})")
    return True


def before_send_hook(event: dict, hint: dict) -> Optional[dict]:
    """
    Drop KeyboardInterrupt / UserNotReadyError events and mask initData headers
    """
    exc_info = hint.get("exc_info")
    if exc_info:
        if isinstance(exc_info[1], IGNORED_EXCEPTIONS):
            return None

    headers = (event.get("request") or {}).get("headers") or {}
    for name in SENSITIVE_HEADERS:
        if name in headers:
            headers[name] = "[Filtered]"

    return event


def set_user_context(user_id: Any) -> None:
    """Tag subsequent events with the reader whose stats are loaded"""
    sentry_sdk.set_user({"id": str(user_id)})


def quote_breadcrumb(mutation: str, **data: Any) -> None:
    """
    Record a quote mutation so an error report shows what preceded it

    Args:
        mutation: 'added', 'deleted' or 'edited'
        data: Event flags (optimistic, reverted, ...)
    """
    sentry_sdk.add_breadcrumb(
        message=f"quote {mutation}",
        category="stats.quotes",
        level="info",
        data=data,
    )
