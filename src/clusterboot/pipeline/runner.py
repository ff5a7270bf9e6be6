"""Ordered, fail-fast phase execution."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from clusterboot.errors import ClusterbootError
from clusterboot.models import PhaseResult
from clusterboot.observability.logging import get_logger
from clusterboot.pipeline.gates import PhaseGateHook, RequireSuccessGate

if TYPE_CHECKING:
    from collections.abc import Sequence

log = get_logger(__name__)


@dataclass(frozen=True)
class Phase:
    """A named unit of bootstrap work.

    Attributes:
        name: Stable identifier used in logs and reports.
        action: Runs the phase and returns its terminal result.
        description: One-line summary for the CLI.
    """

    name: str
    action: Callable[[], PhaseResult]
    description: str = ""


@dataclass
class RunReport:
    """Result of a pipeline run."""

    status: Literal["completed", "failed"]
    phases: list[PhaseResult] = field(default_factory=list)
    failed_phase: str | None = None
    failed_resource: str | None = None
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "completed" else 1


class PhaseRunner:
    """Run phases strictly in order, stopping at the first rejected phase.

    A phase that raises is turned into a failed ``PhaseResult`` after the
    error is logged, so the gate sees every outcome the same way.
    """

    def __init__(self, gate: PhaseGateHook | None = None) -> None:
        self._gate = gate or RequireSuccessGate()

    def _execute(self, phase: Phase) -> PhaseResult:
        start_time = time.perf_counter()
        log.debug("phase_start", phase=phase.name)
        try:
            result = phase.action()
        except ClusterbootError as e:
            log.error("phase_error", phase=phase.name, error=str(e))
            result = PhaseResult(phase=phase.name, status="failed", detail=str(e))
        except Exception as e:
            log.error("phase_crashed", phase=phase.name, error=str(e), exc_info=True)
            result = PhaseResult(phase=phase.name, status="failed", detail=str(e))
        result.duration_seconds = time.perf_counter() - start_time
        return result

    def run(self, phases: Sequence[Phase]) -> RunReport:
        start_time = time.perf_counter()
        report = RunReport(status="completed")

        for index, phase in enumerate(phases, 1):
            result = self._execute(phase)
            report.phases.append(result)

            if result.status == "skipped":
                log.warning("phase_skipped", phase=phase.name, reason=result.detail)
            else:
                log.info(
                    "phase_complete",
                    phase=phase.name,
                    status=result.status,
                    step=f"{index}/{len(phases)}",
                    duration=f"{result.duration_seconds:.2f}s",
                )

            if self._gate.on_phase_complete(phase.name, result) == "reject":
                report.status = "failed"
                report.failed_phase = phase.name
                report.failed_resource = result.failed_resource
                report.error = result.detail
                break

        report.duration_seconds = time.perf_counter() - start_time
        return report
