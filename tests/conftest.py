"""Shared test doubles for notifier tests."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

import pytest

from herald.app.notify.base import Notifier
from herald.app.notify.models import Message


class RecordingNotifier(Notifier):
    """Notifier double that counts calls and optionally fails."""

    def __init__(
        self,
        name: str = "mock",
        send_func: Optional[Callable[[Message], None]] = None,
    ) -> None:
        self._name = name
        self._send_func = send_func
        self._lock = threading.Lock()
        self.messages: List[Message] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.messages)

    def send(self, message: Message) -> None:
        with self._lock:
            self.messages.append(message)
        if self._send_func is not None:
            self._send_func(message)


def failing_with(error: BaseException) -> Callable[[Message], None]:
    def _send(message: Message) -> None:
        raise error
    return _send


@pytest.fixture
def make_notifier():
    """Factory fixture: make_notifier("a", send_func=...)."""
    return RecordingNotifier


@pytest.fixture
def message() -> Message:
    return Message(title="Test", body="Body")
