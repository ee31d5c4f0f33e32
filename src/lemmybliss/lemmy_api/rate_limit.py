"""Mutation pacing derived from the destination's published rate limit.

Lemmy publishes ``local_site_rate_limit.message_per_second`` in its site
response.  lemmybliss turns that into a fixed minimum interval between
state-changing calls and enforces it by sleeping after every attempt.  The
sequential sleep is the whole rate-limiting mechanism: mutations are never
issued concurrently, so no bucket or lock is needed.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable


def interval_from_rate(
    messages_per_second: float | None,
    fallback: float = 1.0,
) -> float:
    """Return the pause (in seconds) between two mutations.

    The interval is ``ceil(1000 / messages_per_second)`` milliseconds.  A
    missing or non-positive rate uses *fallback* instead.

    Examples
    --------
    >>> interval_from_rate(3)
    0.334
    >>> interval_from_rate(None, fallback=2)
    0.5
    """
    rate = messages_per_second if messages_per_second and messages_per_second > 0 else fallback
    if rate <= 0:
        raise ValueError(f"fallback rate must be > 0, got {fallback}")
    return math.ceil(1000 / rate) / 1000


class Pacer:
    """Sleep a fixed interval after each operation.

    Parameters
    ----------
    interval:
        Seconds to wait after every call to :meth:`pace`.
    sleep:
        Sleep function, injectable for tests.  Defaults to
        :func:`time.sleep`.
    """

    __slots__ = ("_sleep", "interval")

    def __init__(
        self,
        interval: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.interval: float = interval
        self._sleep = sleep

    def pace(self) -> float:
        """Block for the configured interval and return it."""
        if self.interval > 0:
            self._sleep(self.interval)
        return self.interval
