"""Gate hooks deciding whether the pipeline moves past a phase."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from clusterboot.models import PhaseResult


class PhaseGateHook(Protocol):
    """Protocol for gates that approve/reject the transition to the next phase."""

    def on_phase_complete(
        self,
        phase: str,
        result: PhaseResult,
    ) -> Literal["approve", "reject"]:
        """Called when a phase reaches a terminal outcome.

        Args:
            phase: Name of the completed phase (e.g., "namespace_sync").
            result: Result of the phase execution.

        Returns:
            "approve" to continue or "reject" to halt the pipeline.
        """
        ...


class RequireSuccessGate:
    """Gate that halts the pipeline at the first failed phase.

    Later phases assume the resources of earlier ones exist, so nothing may
    run past a failure. Skipped phases are approved.
    """

    def on_phase_complete(
        self,
        _phase: str,
        result: PhaseResult,
    ) -> Literal["approve", "reject"]:
        if result.status == "failed":
            return "reject"
        return "approve"

