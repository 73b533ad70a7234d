from __future__ import annotations

import logging
from typing import Iterable, Type

from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from .config import settings


def net_retry(
    max_attempts: int | None = None,
    *,
    initial: float | None = None,
    maximum: float | None = None,
    retry_on: Iterable[Type[BaseException]] | None = None,
):
    """Retry decorator tuned for network I/O.

    Defaults are driven by settings: RETRY_MAX_ATTEMPTS, RETRY_INITIAL_DELAY, RETRY_MAX_DELAY.
    Only exceptions listed in ``retry_on`` are retried; anything else propagates at once.
    """
    attempts = int(max_attempts or settings.retry_max_attempts)
    init = float(initial or settings.retry_initial_delay)
    mx = float(maximum or settings.retry_max_delay)
    cond = retry_if_exception_type(tuple(retry_on) if retry_on else Exception)
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(multiplier=init, max=mx),
        retry=cond,
        before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
    )
