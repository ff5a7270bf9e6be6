"""Pydantic models shared across the bootstrap pipeline."""

from clusterboot.models.resources import ApplyOutcome, ApplyResult, PhaseResult, Resource

__all__ = [
    "ApplyOutcome",
    "ApplyResult",
    "PhaseResult",
    "Resource",
]
