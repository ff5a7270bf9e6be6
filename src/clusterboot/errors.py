"""Error types raised by the bootstrap pipeline.

Every error here is fatal to the phase that raises it. Transient
unavailability is never raised: the readiness gate absorbs it by polling
again, and apply failures travel as ``ApplyOutcome.FAILED`` results instead.
"""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Literal


class ClusterbootError(Exception):
    """Base class for all bootstrap failures."""


class MissingDependencyError(ClusterbootError):
    """Raised when a required command-line tool or input file is absent.

    Attributes:
        missing: Names of the missing tools, or paths of the missing files.
        kind: Whether ``missing`` lists tools or files.
    """

    def __init__(self, missing: list[str], kind: Literal["tool", "file"] = "tool") -> None:
        self.missing = list(missing)
        self.kind = kind
        noun = kind if len(self.missing) == 1 else f"{kind}s"
        super().__init__(f"Missing required {noun}: {', '.join(self.missing)}")


class ManifestError(ClusterbootError):
    """Raised when a manifest bundle cannot be fetched, parsed or filtered."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{reason} ({source})")


class ConfigError(ClusterbootError):
    """Raised when the bootstrap configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load bootstrap config at {path}: {reason}")


class PhaseError(ClusterbootError):
    """Raised when a phase cannot complete for a reason other than an apply failure."""

    def __init__(self, phase: str, message: str) -> None:
        self.phase = phase
        super().__init__(f"Phase '{phase}' failed: {message}")
