"""Pluggable metrics for lemmybliss.

Counters and timings are emitted where a long push spends its time.  Pass
any object implementing :class:`MetricsHook` as ``BlissConfig.metrics``;
without one, :class:`NoopMetricsHook` drops everything.

Names emitted:

* ``lemmybliss.requests_total``        -- counter (tags ``method``, ``status``)
* ``lemmybliss.retries_total``         -- counter (tags ``method``, ``reason``)
* ``lemmybliss.request_duration_ms``   -- timing
* ``lemmybliss.resolutions_total``     -- counter (tag ``status``)
* ``lemmybliss.mutations_total``       -- counter (tags ``kind``, ``action``, ``status``)
* ``lemmybliss.executor_wait_ms``      -- timing
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """What a metrics backend has to provide."""

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        """Add *value* to the counter *name*."""
        ...

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        """Record one duration, in milliseconds."""
        ...


class NoopMetricsHook:
    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        return None

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        return None
