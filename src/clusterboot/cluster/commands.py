"""Thin subprocess layer shared by every external tool wrapper."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from clusterboot.errors import MissingDependencyError
from clusterboot.observability.logging import get_logger

log = get_logger(__name__)

# Exit code reported for a command killed by its timeout (same as coreutils timeout)
TIMEOUT_EXIT_CODE = 124

Which = Callable[[str], str | None]


@dataclass
class CommandResult:
    """Captured result of one external command."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """The tool's own error text, falling back to stdout and then the exit code."""
        text = self.stderr.strip() or self.stdout.strip()
        if text:
            return text
        if self.timed_out:
            return f"{self.argv[0]} timed out"
        return f"{self.argv[0]} exited with code {self.returncode}"


class CommandRunner:
    """Run external commands with captured text output.

    Commands never raise on a non-zero exit; callers inspect the returned
    ``CommandResult``. A missing executable raises ``MissingDependencyError``
    and a timeout is reported as ``timed_out=True`` with exit code 124.
    """

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self._env = env

    def run(
        self,
        argv: Sequence[str],
        *,
        stdin: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        args = list(argv)
        log.debug("command_run", argv=" ".join(args), timeout=timeout)
        try:
            completed = subprocess.run(
                args,
                input=stdin,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
                env=self._env,
            )
        except FileNotFoundError as e:
            raise MissingDependencyError([args[0]]) from e
        except subprocess.TimeoutExpired as e:
            log.debug("command_timeout", argv=" ".join(args), timeout=timeout)
            return CommandResult(
                argv=args,
                returncode=TIMEOUT_EXIT_CODE,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )

        return CommandResult(
            argv=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def find_missing_tools(tools: Sequence[str], which: Which = shutil.which) -> list[str]:
    """Return the tools that cannot be resolved on PATH, in the order given."""
    return [tool for tool in tools if which(tool) is None]


def require_tools(tools: Sequence[str], which: Which = shutil.which) -> None:
    """Raise ``MissingDependencyError`` naming every tool absent from PATH."""
    missing = find_missing_tools(tools, which)
    if missing:
        raise MissingDependencyError(missing, kind="tool")
