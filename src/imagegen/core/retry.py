"""Fixed-delay retry of backend submissions.

The retry policy is deliberately simple: a constant delay between attempts
and a fixed attempt budget.  The schedule is a pure function and the wait
primitive is injectable, so tests can record delays instead of sleeping::

    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    payload = await submit_with_retry(backend.submit, request, base_delay=2.0, sleep=fake_sleep)

Only :class:`~imagegen.core.backends.TransientBackendError` is retried.
Anything else (including normalization failures, which happen after this
loop) propagates immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .backends import TransientBackendError
from .models import BackendPayload, GenerationRequest

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

SleepFunc = Callable[[float], Awaitable[None]]
SubmitFunc = Callable[[GenerationRequest], Awaitable[BackendPayload]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Return the wait before the attempt following ``attempt``.

    The schedule is constant: every retry waits ``base_delay`` seconds.

    Args:
        attempt: 1-based number of the attempt that just failed.
        base_delay: Configured delay in seconds.

    Returns:
        Delay in seconds.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_delay


async def submit_with_retry(
    submit: SubmitFunc,
    request: GenerationRequest,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float,
    sleep: SleepFunc = asyncio.sleep,
) -> BackendPayload:
    """Call ``submit`` until it succeeds or the attempt budget is spent.

    Args:
        submit: Coroutine function performing one backend call.
        request: Validated request, passed unchanged to every attempt.
        max_attempts: Total number of attempts, first call included.
        base_delay: Seconds to wait between attempts.
        sleep: Awaitable wait primitive.

    Returns:
        The first successful backend payload.

    Raises:
        TransientBackendError: The error from the final attempt, unchanged,
            once all attempts have failed.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt = 1
    while True:
        try:
            return await submit(request)
        except TransientBackendError as e:
            logger.warning(
                f"Backend attempt {attempt}/{max_attempts} failed "
                f"(status={e.status_code}): {e.message}"
            )
            if attempt >= max_attempts:
                logger.error(f"Backend call failed after {max_attempts} attempts")
                raise

            delay = backoff_delay(attempt, base_delay)
            logger.info(f"Retrying backend call in {delay}s")
            await sleep(delay)
            attempt += 1
