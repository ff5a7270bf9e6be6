"""Resource descriptors and apply/phase result models.

A ``Resource`` is the unit the bootstrap phases hand to the applier. Its
identity is ``(kind, namespace, name)``; the body is the manifest YAML that
gets piped into kubectl, unless the resource is sops-encrypted, in which case
the body stays on disk at ``source`` and is only ever decrypted into a pipe.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path  # noqa: TC003 - pydantic needs it at runtime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ApplyOutcome(Enum):
    """Per-resource result of an idempotent apply."""

    CURRENT = "current"  # live state already matches, nothing mutated
    APPLIED = "applied"
    FAILED = "failed"


class Resource(BaseModel):
    """A named, typed manifest."""

    kind: str = Field(min_length=1)
    name: str = Field(min_length=1)
    namespace: str | None = None
    body: str = ""
    source: Path | None = None
    encrypted: bool = False

    @model_validator(mode="after")
    def _check_payload(self) -> Resource:
        if self.encrypted and self.source is None:
            raise ValueError("encrypted resources need a source file")
        if not self.encrypted and not self.body:
            raise ValueError(f"resource {self.ref} has an empty body")
        return self

    @property
    def identity(self) -> tuple[str, str | None, str]:
        return (self.kind, self.namespace, self.name)

    @property
    def ref(self) -> str:
        """Human-readable reference, e.g. ``Secret/flux-system/cluster-secrets``."""
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


class ApplyResult(BaseModel):
    """Outcome of applying one resource."""

    resource: str
    outcome: ApplyOutcome
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is not ApplyOutcome.FAILED


class PhaseResult(BaseModel):
    """Result of a single bootstrap phase.

    ``outcomes`` holds one entry per resource the phase touched, in the order
    they were processed. A phase stops at its first failed resource, so the
    last outcome of a failed phase is the failure.
    """

    phase: str = Field(min_length=1)
    status: Literal["completed", "skipped", "failed"]
    detail: str = ""
    outcomes: list[ApplyResult] = Field(default_factory=list)
    failed_resource: str | None = None
    duration_seconds: float = 0.0

    @classmethod
    def from_outcomes(cls, phase: str, outcomes: list[ApplyResult]) -> PhaseResult:
        """Aggregate per-resource outcomes into a phase result."""
        failed = next((o for o in outcomes if not o.ok), None)
        if failed is not None:
            return cls(
                phase=phase,
                status="failed",
                detail=failed.message,
                outcomes=outcomes,
                failed_resource=failed.resource,
            )
        applied = sum(1 for o in outcomes if o.outcome is ApplyOutcome.APPLIED)
        current = len(outcomes) - applied
        return cls(
            phase=phase,
            status="completed",
            detail=f"{applied} applied, {current} current",
            outcomes=outcomes,
        )

    def count(self, outcome: ApplyOutcome) -> int:
        return sum(1 for o in self.outcomes if o.outcome is outcome)
