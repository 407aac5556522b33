"""
base.py — The Notifier contract shared by channels and dispatchers.

A Notifier exposes one blocking operation, ``send(message)``, which either
returns (delivered) or raises a single NotifyError for the whole call.
Concrete channels derive from RetryingNotifier and only implement the
one-shot ``_attempt``; the retry envelope is identical for all of them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from herald.app.notify.models import Message, RetryPolicy
from herald.app.notify.retry import run_with_retry

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Anything that can deliver a Message."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel name for logs and error messages."""

    @abstractmethod
    def send(self, message: Message) -> None:
        """
        Deliver ``message``.

        Raises
        ------
        NotifyError
            Delivery failed. Must be safe to call concurrently.
        """


class RetryingNotifier(Notifier):
    """
    Channel base that wraps a one-shot attempt in the retry envelope.

    The effective retry policy (defaults applied) is fixed at construction
    and is read-only afterwards.
    """

    def __init__(self, retry: Optional[RetryPolicy] = None) -> None:
        self._retry_policy = (retry or RetryPolicy()).with_defaults()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def send(self, message: Message) -> None:
        run_with_retry(
            lambda timeout: self._attempt(message, timeout),
            self._retry_policy,
            channel=self.name,
        )
        logger.debug("%s delivered '%s'", self.name, message.title,
                     extra={"channel": self.name})

    @abstractmethod
    def _attempt(self, message: Message, timeout_seconds: float) -> None:
        """One network call. Validate config, send, classify the response."""
