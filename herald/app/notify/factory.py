"""
factory.py — Build channels and a dispatcher from Settings.

A channel is built only when its endpoint and destination are present; missing
channels are logged and skipped, never treated as an error here. An
empty result still yields a dispatcher, which then fails on ``send`` with
"no channels configured".
"""

from __future__ import annotations

import logging
from typing import List, Optional

from herald.app.core.config import Settings, get_settings
from herald.app.notify.base import Notifier
from herald.app.notify.channels import (
    BarkNotifier,
    BarkerNotifier,
    EmailConfig,
    EmailNotifier,
    EmailProvider,
    PROVIDER_PRESETS,
    PushConfig,
)
from herald.app.notify.dispatcher import MultiNotifier
from herald.app.notify.models import DispatchMode

logger = logging.getLogger(__name__)


def _parse_provider(value: str) -> EmailProvider:
    try:
        return EmailProvider(value.lower())
    except ValueError:
        logger.warning("Unknown SMTP provider '%s', using custom", value)
        return EmailProvider.CUSTOM


def build_notifiers(settings: Optional[Settings] = None) -> List[Notifier]:
    """Create every channel that has enough configuration to run."""
    settings = settings or get_settings()
    retry = settings.retry_policy()
    notifiers: List[Notifier] = []

    # 1. Bark
    if settings.BARK_KEY:
        notifiers.append(BarkNotifier(PushConfig(
            server_url=settings.BARK_SERVER_URL,
            key=settings.BARK_KEY,
            sound=settings.BARK_SOUND,
            icon=settings.BARK_ICON,
            group=settings.BARK_GROUP,
            url=settings.BARK_URL,
            retry=retry,
        )))
        logger.info("Bark notifier configured.")
    else:
        logger.info("Bark key not found, skipping Bark notifier.")

    # 2. Barker
    if settings.BARKER_SERVER_URL and settings.BARKER_KEY:
        notifiers.append(BarkerNotifier(PushConfig(
            server_url=settings.BARKER_SERVER_URL,
            key=settings.BARKER_KEY,
            retry=retry,
        )))
        logger.info("Barker notifier configured.")
    else:
        logger.info("Barker server/key not found, skipping Barker notifier.")

    # 3. Email: recipients plus a host or provider preset; login is optional
    provider = _parse_provider(settings.SMTP_PROVIDER)
    has_server = bool(settings.SMTP_HOST) or provider in PROVIDER_PRESETS
    if settings.SMTP_TO and has_server:
        notifiers.append(EmailNotifier(EmailConfig(
            provider=provider,
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            use_tls=settings.SMTP_USE_TLS,
            use_ssl=settings.SMTP_USE_SSL,
            username=settings.SMTP_USER or "",
            password=settings.SMTP_PASSWORD or "",
            sender=settings.SMTP_FROM,
            to=tuple(settings.SMTP_TO),
            cc=tuple(settings.SMTP_CC),
            bcc=tuple(settings.SMTP_BCC),
            retry=retry,
        )))
        logger.info("Email notifier configured (%s).", settings.SMTP_PROVIDER)
    else:
        logger.info("SMTP server/recipients not found, skipping email notifier.")

    return notifiers


def build_dispatcher(settings: Optional[Settings] = None) -> MultiNotifier:
    """Wrap every configured channel in one MultiNotifier."""
    settings = settings or get_settings()
    try:
        mode = DispatchMode(settings.NOTIFY_DISPATCH_MODE.lower())
    except ValueError:
        logger.warning(
            "Unknown dispatch mode '%s', using parallel",
            settings.NOTIFY_DISPATCH_MODE,
        )
        mode = DispatchMode.PARALLEL

    notifiers = build_notifiers(settings)
    logger.info(
        "Multi-notifier configured with %d channel(s) [%s]",
        len(notifiers), mode.value,
    )
    return MultiNotifier(notifiers, mode)
