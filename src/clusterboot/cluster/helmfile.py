"""Release manager boundary: ``helmfile apply``."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from clusterboot.cluster.commands import CommandResult, CommandRunner

# Keep chart notes, diffs and secret values out of the bootstrap log
QUIET_APPLY_FLAGS: tuple[str, ...] = (
    "--hide-notes",
    "--skip-diff-on-install",
    "--suppress-diff",
    "--suppress-secrets",
)


class Helmfile:
    """Apply every release declared in a helmfile."""

    def __init__(self, runner: CommandRunner, binary: str = "helmfile") -> None:
        self._runner = runner
        self._binary = binary

    def apply(
        self,
        helmfile: Path,
        flags: Sequence[str] = QUIET_APPLY_FLAGS,
    ) -> CommandResult:
        return self._runner.run([self._binary, "--file", str(helmfile), "apply", *flags])
