"""Mutation executor: apply a push plan one item at a time.

Takes the plan produced by :class:`DiffPlanner` and hands each mutation to
an *apply* callable (one identity resolution plus one state-changing API
call).  Items run strictly in order, never concurrently, and the pacer
sleeps after every attempt whether it succeeded or not.  A failing item is
logged and skipped; there is no retry and the batch always runs to the
end.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Any

from lemmybliss.config import BlissConfig
from lemmybliss.errors import BlissError
from lemmybliss.lemmy_api.rate_limit import Pacer
from lemmybliss.models import ExecutionSummary, Mutation
from lemmybliss.observability import NoopMetricsHook, get_logger

log = get_logger("lemmybliss.executor")


class MutationExecutor:
    """Sequential, paced applier of relation mutations.

    Parameters
    ----------
    config:
        Configuration (metrics hook).
    """

    def __init__(self, config: BlissConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def execute(
        self,
        mutations: Iterable[Mutation],
        apply: Callable[[Mutation], Any],
        pacer: Pacer,
    ) -> ExecutionSummary:
        """Apply *mutations* in order.

        Parameters
        ----------
        mutations:
            Ordered mutations from the planner.
        apply:
            Performs one mutation against the destination.  Any
            :class:`BlissError` it raises is logged and the item skipped;
            other exceptions are programming errors and propagate.
        pacer:
            Sleeps the minimum interval after every attempt.

        Returns
        -------
        ExecutionSummary
            Aggregate counts only.
        """
        summary = ExecutionSummary()
        for mutation in mutations:
            summary.attempted += 1
            description = mutation.describe()
            tags = {"kind": mutation.kind.value, "action": mutation.action.value}
            log.info("%s...", description)
            try:
                apply(mutation)
            except BlissError as exc:
                summary.failed += 1
                self._metrics.increment(
                    "lemmybliss.mutations_total", tags={**tags, "status": "failed"},
                )
                log.warning(
                    "Failed: %s: %s", description, exc.message,
                    extra={
                        "extra_fields": {
                            "op": "mutation",
                            "kind": mutation.kind.value,
                            "action": mutation.action.value,
                            "actor": mutation.target.actor,
                            "code": getattr(exc.code, "value", exc.code),
                        }
                    },
                )
            else:
                summary.succeeded += 1
                self._metrics.increment(
                    "lemmybliss.mutations_total", tags={**tags, "status": "ok"},
                )
                log.info("Success")
            finally:
                t0 = time.monotonic()
                pacer.pace()
                self._metrics.timing(
                    "lemmybliss.executor_wait_ms", (time.monotonic() - t0) * 1000,
                )

        log.info(
            "Applied %d of %d changes", summary.succeeded, summary.attempted,
            extra={
                "extra_fields": {
                    "op": "execute",
                    "attempted": summary.attempted,
                    "succeeded": summary.succeeded,
                    "failed": summary.failed,
                }
            },
        )
        return summary
