"""
channels — Concrete delivery backends.

Each channel exposes:
    send(message) → None, raising NotifyError

Retry logic lives in notify.retry; a channel only implements one attempt.
"""

from herald.app.notify.channels.smtp import (
    EmailConfig,
    EmailNotifier,
    EmailProvider,
    PROVIDER_PRESETS,
)
from herald.app.notify.channels.push import (
    BarkNotifier,
    BarkerNotifier,
    PushConfig,
    PushNotifier,
)

__all__ = [
    "BarkNotifier",
    "BarkerNotifier",
    "EmailConfig",
    "EmailNotifier",
    "EmailProvider",
    "PROVIDER_PRESETS",
    "PushConfig",
    "PushNotifier",
]
