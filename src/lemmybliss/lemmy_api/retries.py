"""Retry policy for single Lemmy API requests.

Small instances answer ``502``/``503`` while their backend restarts and
``429`` when the per-IP limiter trips; both clear up on their own, so the
transport retries them.  Everything else in the 4xx range is a definite
answer and is raised immediately.

This policy covers one HTTP request.  The mutation executor never retries
an item; it only sees the outcome after the policy has given up.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from lemmybliss.config import BlissConfig

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Other httpx.TransportError subclasses (proxy, unsupported scheme, local
# protocol misuse) fail the same way on every attempt.
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff for one request.

    Attributes
    ----------
    max_attempts:
        Total attempts, the first one included.
    base_delay:
        Delay before the second attempt, doubled for every further one.
    max_delay:
        Cap on the computed delay.
    jitter:
        Scale each delay to a random 50-100 % of its value.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: BlissConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    @staticmethod
    def is_transient(
        status_code: int | None = None,
        exception: Exception | None = None,
    ) -> bool:
        """Whether a status or exception is worth another attempt."""
        if exception is not None:
            return isinstance(exception, TRANSIENT_ERRORS)
        return status_code in RETRYABLE_STATUSES

    def can_retry(
        self,
        attempt: int,
        status_code: int | None = None,
        exception: Exception | None = None,
    ) -> bool:
        """Whether attempt number *attempt* (0-indexed) may be followed by
        another one after failing with *status_code* or *exception*."""
        return attempt + 1 < self.max_attempts and self.is_transient(status_code, exception)

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait after failed attempt *attempt*.

        A server ``Retry-After`` is used as given; otherwise
        ``base_delay * 2 ** attempt`` capped at ``max_delay``.
        """
        seconds = retry_after if retry_after is not None else min(
            self.base_delay * 2 ** attempt, self.max_delay,
        )
        if self.jitter:
            seconds *= random.uniform(0.5, 1.0)
        return seconds
