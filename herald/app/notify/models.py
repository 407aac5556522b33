"""
models.py — Shared data structures for notification dispatch.

Defines:
    • Priority         — message importance, interpreted per channel
    • DispatchMode     — sequential (fail-fast) vs parallel (fail-together)
    • MessageOverrides — typed per-message overrides of channel defaults
    • Message          — the immutable notification handed to every channel
    • RetryPolicy      — timeout / retry count / retry interval knobs

═══════════════════════════════════════════════════════════════════════════
OVERRIDE PRECEDENCE
═══════════════════════════════════════════════════════════════════════════

    Override value     Channel config     Effective value
    ──────────────     ──────────────     ───────────────
    None (absent)      "bell"             "bell"
    "alarm"            "bell"             "alarm"
    "" (explicit)      "bell"             ""   → field omitted from payload

An explicit empty string is a real value and clears the configured
default; only None means "use the configured default".

═══════════════════════════════════════════════════════════════════════════
RETRY POLICY DEFAULTS
═══════════════════════════════════════════════════════════════════════════

    Field                    Zero value means
    ─────────────────────    ────────────────
    timeout_seconds          30.0
    retry_interval_seconds   2.0
    retry_count              0 (single attempt)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from herald.app.core.errors import ConfigurationError

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_INTERVAL_SECONDS = 2.0


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class Priority(str, Enum):
    """Message importance. Channels map it to their own delivery levels."""
    HIGH   = "high"
    URGENT = "urgent"
    LOW    = "low"
    NORMAL = "normal"


class DispatchMode(str, Enum):
    """How a MultiNotifier fans a message out to its children."""
    SEQUENTIAL = "sequential"   # in order, stop at first failure
    PARALLEL   = "parallel"     # all at once, aggregate failures


# Push "level" for each priority (Bark / Barker payload field)
PUSH_LEVELS: Dict[Priority, str] = {
    Priority.HIGH:   "timeSensitive",
    Priority.URGENT: "timeSensitive",
    Priority.LOW:    "passive",
    Priority.NORMAL: "active",
}


def parse_priority(value: Optional[str]) -> Optional[Priority]:
    """Map a free-form priority string to Priority; unknown values → NORMAL."""
    if not value:
        return None
    try:
        return Priority(value.lower())
    except ValueError:
        return Priority.NORMAL


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MessageOverrides:
    """
    Per-message overrides of a channel's static configuration.

    Attributes
    ----------
    sound, icon, group, url : str | None
        Override the matching push-channel setting.
    badge : int | None
        App badge number.
    auto_copy, copy : str | None
        Clipboard behaviour on the receiving device.
    is_archive : int | None
        Bark-only: whether the device stores the notification.
    """
    sound: Optional[str] = None
    icon: Optional[str] = None
    group: Optional[str] = None
    url: Optional[str] = None
    badge: Optional[int] = None
    auto_copy: Optional[str] = None
    copy: Optional[str] = None
    is_archive: Optional[int] = None

    def apply(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``defaults`` with every set override laid on top."""
        merged = dict(defaults)
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                merged[f.name] = value
        return merged


@dataclass(frozen=True)
class Message:
    """
    A notification, immutable once constructed.

    ``html_body`` and ``attachments`` are optional renderings; channels that
    cannot use them ignore them.
    """
    title: str
    body: str
    priority: Optional[Priority] = None
    html_body: Optional[str] = None
    attachments: Tuple[str, ...] = ()
    overrides: MessageOverrides = field(default_factory=MessageOverrides)

    def __post_init__(self) -> None:
        # Accept any iterable of paths but store a tuple
        if not isinstance(self.attachments, tuple):
            object.__setattr__(self, "attachments", tuple(self.attachments))
        if isinstance(self.priority, str) and not isinstance(self.priority, Priority):
            object.__setattr__(self, "priority", parse_priority(self.priority))


@dataclass(frozen=True)
class RetryPolicy:
    """Retry envelope parameters for one channel."""
    timeout_seconds: float = 0.0
    retry_count: int = 0
    retry_interval_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ConfigurationError(
                f"retry_count must be non-negative, got {self.retry_count}",
                field="retry_count",
            )
        if self.timeout_seconds < 0:
            raise ConfigurationError(
                f"timeout_seconds must be non-negative, got {self.timeout_seconds}",
                field="timeout_seconds",
            )
        if self.retry_interval_seconds < 0:
            raise ConfigurationError(
                "retry_interval_seconds must be non-negative, "
                f"got {self.retry_interval_seconds}",
                field="retry_interval_seconds",
            )

    @property
    def total_attempts(self) -> int:
        return self.retry_count + 1

    def with_defaults(self) -> "RetryPolicy":
        """Return the effective policy with zero values replaced by defaults."""
        return replace(
            self,
            timeout_seconds=self.timeout_seconds or DEFAULT_TIMEOUT_SECONDS,
            retry_interval_seconds=(
                self.retry_interval_seconds or DEFAULT_RETRY_INTERVAL_SECONDS
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeout_seconds": self.timeout_seconds,
            "retry_count": self.retry_count,
            "retry_interval_seconds": self.retry_interval_seconds,
            "total_attempts": self.total_attempts,
        }
