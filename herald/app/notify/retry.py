"""
retry.py — Bounded retry-under-deadline envelope shared by every channel.

═══════════════════════════════════════════════════════════════════════════
ENVELOPE FLOW
═══════════════════════════════════════════════════════════════════════════

    deadline = now + timeout
    attempt 1 ──fail──► wait interval ──► attempt 2 ──fail──► ... attempt N
        │                   │                  │
        ok                  deadline hit       ok
        ▼                   ▼                  ▼
      return        DeliveryTimeoutError     return

    N = retry_count + 1. When all N attempts fail the caller receives
    RetryExhaustedError naming N and wrapping the last failure.

Bounds:
    • Count   — never more than retry_count + 1 network calls
    • Clock   — a pending wait never extends past the deadline; each
                attempt is handed the remaining time as its own
                request-level timeout

Errors of every NotifyError kind are retried, configuration errors
included, so a structurally invalid channel burns its retry budget
exactly like a transient one.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from herald.app.core.errors import (
    DeliveryTimeoutError,
    NotifyError,
    RetryExhaustedError,
)
from herald.app.notify.models import RetryPolicy

logger = logging.getLogger(__name__)

# attempt(timeout_seconds) → None, raising NotifyError on failure
Attempt = Callable[[float], None]


def run_with_retry(
    attempt: Attempt,
    policy: RetryPolicy,
    *,
    channel: str,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Run ``attempt`` until it succeeds, the attempts run out, or time does.

    Parameters
    ----------
    attempt : callable
        One-shot send. Receives the seconds left before the deadline.
    policy : RetryPolicy
        Effective policy (defaults already applied).
    channel : str
        Channel name used in logs and error messages.
    sleep, clock : callable
        Injection points for tests.

    Raises
    ------
    DeliveryTimeoutError
        The deadline passed before a scheduled retry could run.
    RetryExhaustedError
        Every attempt failed.
    """
    deadline = clock() + policy.timeout_seconds
    attempts = policy.total_attempts
    last_error: Optional[NotifyError] = None

    for attempt_num in range(1, attempts + 1):
        if attempt_num > 1:
            remaining = deadline - clock()
            if remaining <= 0 or remaining < policy.retry_interval_seconds:
                # The wait would cross the deadline: spend what is left, then stop
                if remaining > 0:
                    sleep(remaining)
                logger.warning(
                    "%s deadline of %.1fs reached before attempt %d/%d",
                    channel, policy.timeout_seconds, attempt_num, attempts,
                    extra={"channel": channel, "attempt": attempt_num},
                )
                raise DeliveryTimeoutError(channel, policy.timeout_seconds) from last_error

            logger.info(
                "Retry %d/%d for %s in %.1fs",
                attempt_num - 1, policy.retry_count, channel,
                policy.retry_interval_seconds,
                extra={"channel": channel, "attempt": attempt_num},
            )
            sleep(policy.retry_interval_seconds)

        try:
            attempt(max(deadline - clock(), 0.0))
        except NotifyError as exc:
            last_error = exc
            logger.warning(
                "%s attempt %d/%d failed: %s",
                channel, attempt_num, attempts, exc,
                extra={"channel": channel, "attempt": attempt_num},
            )
            continue

        if attempt_num > 1:
            logger.info(
                "%s delivered on attempt %d/%d",
                channel, attempt_num, attempts,
                extra={"channel": channel, "attempt": attempt_num},
            )
        return

    raise RetryExhaustedError(channel, attempts, last_error) from last_error
