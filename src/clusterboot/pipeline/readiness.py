"""Node readiness gate.

The gate uses two different conditions. It first checks the
terminal condition (``Ready=True``) once, so re-running against an already
bootstrapped cluster costs a single evaluation. Otherwise it polls the
intermediate condition (``Ready=False``): freshly provisioned nodes only
register as not-ready until the CNI arrives with the release phase, and that
registration is all the following phases need.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from clusterboot.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ReadinessCondition:
    """A node condition evaluated as one boolean over all nodes."""

    condition: str = "Ready"
    status: bool = True

    @classmethod
    def parse(cls, expression: str) -> ReadinessCondition:
        """Parse ``Ready=True`` style expressions; a bare name means ``=True``."""
        name, _, value = expression.partition("=")
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid readiness condition: {expression!r}")
        value = value.strip().lower() or "true"
        if value not in ("true", "false"):
            raise ValueError(f"Invalid readiness condition status: {expression!r}")
        return cls(condition=name, status=value == "true")

    def __str__(self) -> str:
        return f"{self.condition}={'True' if self.status else 'False'}"


NODES_READY = ReadinessCondition("Ready", True)
NODES_NOT_READY = ReadinessCondition("Ready", False)


class NodeWaiter(Protocol):
    """Cluster capability the gate needs."""

    def wait_for_nodes(self, condition: str, timeout: float) -> bool: ...


@dataclass
class GateResult:
    """How the gate was satisfied."""

    condition: str
    fast_path: bool
    evaluations: int
    waited_seconds: float = 0.0


class ReadinessGate:
    """Block until the cluster nodes satisfy a condition.

    Polling uses a fixed interval: node boot time drives the condition, not
    contention, so backing off would only delay the bootstrap. The number of
    polls is unbounded; each single poll is bounded by ``poll_timeout``.
    """

    def __init__(
        self,
        nodes: NodeWaiter,
        *,
        ready_condition: ReadinessCondition = NODES_READY,
        poll_interval: float = 10.0,
        poll_timeout: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._nodes = nodes
        self._ready_condition = ready_condition
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock

    def _evaluate(self, condition: ReadinessCondition, timeout: float) -> bool:
        return self._nodes.wait_for_nodes(str(condition), timeout)

    def await_condition(
        self,
        condition: ReadinessCondition = NODES_NOT_READY,
        poll_interval: float | None = None,
        poll_timeout: float | None = None,
    ) -> GateResult:
        """Wait until ``condition`` holds, unless the nodes are already ready.

        Args:
            condition: Condition polled on the slow path.
            poll_interval: Seconds between polls; defaults to the gate's setting.
            poll_timeout: Bound for each evaluation; defaults to the gate's setting.

        Returns:
            GateResult describing which path satisfied the gate.
        """
        interval = self._poll_interval if poll_interval is None else poll_interval
        timeout = self._poll_timeout if poll_timeout is None else poll_timeout
        started = self._clock()

        log.debug("nodes_wait_start", condition=str(condition))
        if self._evaluate(self._ready_condition, timeout):
            log.info(
                "nodes_ready",
                condition=str(self._ready_condition),
                msg="Nodes are available and ready, skipping wait for nodes",
            )
            return GateResult(
                condition=str(self._ready_condition),
                fast_path=True,
                evaluations=1,
            )

        evaluations = 1
        while True:
            evaluations += 1
            if self._evaluate(condition, timeout):
                break
            log.info(
                "nodes_not_available",
                condition=str(condition),
                attempt=evaluations - 1,
                retry_in=f"{interval:g}s",
            )
            self._sleep(interval)

        waited = self._clock() - started
        log.info("nodes_available", condition=str(condition), waited=f"{waited:.1f}s")
        return GateResult(
            condition=str(condition),
            fast_path=False,
            evaluations=evaluations,
            waited_seconds=waited,
        )
