"""
dispatcher.py — Fan one message out to many notifiers.

MultiNotifier is itself a Notifier, so dispatchers nest freely (a parallel
dispatcher may contain a sequential one, and so on).

═══════════════════════════════════════════════════════════════════════════
DISPATCH MODES
═══════════════════════════════════════════════════════════════════════════

    Mode          Order            On failure                 Error raised
    ──────────    ─────────────    ───────────────────────    ─────────────────────
    SEQUENTIAL    configured       stop; later children       DispatchError
                                   are never called           (failing index)
    PARALLEL      concurrent       keep going; every child    AggregateDispatchError
                                   is attempted exactly once  (every failing index)

Parallel mode is fork-join: one worker per child, each result written to
its own slot in a pre-sized list, then a full join before the slots are
read. Aggregation follows original child order, independent of completion
order. A slow or timed-out child never cancels its siblings; each runs
under its own deadline.

An empty child list fails with ConfigurationError before any I/O.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from herald.app.core.errors import (
    AggregateDispatchError,
    ConfigurationError,
    DispatchError,
)
from herald.app.notify.base import Notifier
from herald.app.notify.models import DispatchMode, Message

logger = logging.getLogger(__name__)


class MultiNotifier(Notifier):
    """Composite notifier over an ordered list of children."""

    def __init__(
        self,
        notifiers: Iterable[Notifier] = (),
        mode: DispatchMode = DispatchMode.SEQUENTIAL,
    ) -> None:
        self._notifiers: Tuple[Notifier, ...] = tuple(notifiers)
        self._mode = DispatchMode(mode)

    @classmethod
    def sequential(cls, *notifiers: Notifier) -> "MultiNotifier":
        return cls(notifiers, DispatchMode.SEQUENTIAL)

    @classmethod
    def parallel(cls, *notifiers: Notifier) -> "MultiNotifier":
        return cls(notifiers, DispatchMode.PARALLEL)

    @property
    def name(self) -> str:
        return f"multi[{self._mode.value}]"

    @property
    def mode(self) -> DispatchMode:
        return self._mode

    @property
    def notifiers(self) -> Tuple[Notifier, ...]:
        return self._notifiers

    def send(self, message: Message) -> None:
        if not self._notifiers:
            raise ConfigurationError("no channels configured", field="notifiers")

        if self._mode == DispatchMode.PARALLEL:
            self._send_parallel(message)
        else:
            self._send_sequential(message)

    def _send_sequential(self, message: Message) -> None:
        for index, notifier in enumerate(self._notifiers):
            try:
                notifier.send(message)
            except Exception as exc:
                logger.warning(
                    "Sequential dispatch stopped at notifier %d (%s): %s",
                    index, notifier.name, exc,
                    extra={"channel": notifier.name, "notifier_index": index},
                )
                raise DispatchError(index, exc) from exc

    def _send_parallel(self, message: Message) -> None:
        started = time.perf_counter()
        results: List[Optional[BaseException]] = [None] * len(self._notifiers)

        def _run(index: int, notifier: Notifier) -> None:
            try:
                notifier.send(message)
            except Exception as exc:
                results[index] = exc

        with ThreadPoolExecutor(
            max_workers=len(self._notifiers),
            thread_name_prefix="herald-dispatch",
        ) as executor:
            futures = [
                executor.submit(_run, index, notifier)
                for index, notifier in enumerate(self._notifiers)
            ]
            for future in futures:
                future.result()

        failures: Sequence[Tuple[int, BaseException]] = [
            (index, error) for index, error in enumerate(results) if error is not None
        ]
        duration_ms = (time.perf_counter() - started) * 1000

        if failures:
            logger.warning(
                "Parallel dispatch: %d/%d notifiers failed (%.1fms)",
                len(failures), len(self._notifiers), duration_ms,
                extra={"duration_ms": duration_ms},
            )
            raise AggregateDispatchError(failures)

        logger.info(
            "Parallel dispatch: %d notifiers delivered (%.1fms)",
            len(self._notifiers), duration_ms,
            extra={"duration_ms": duration_ms},
        )
