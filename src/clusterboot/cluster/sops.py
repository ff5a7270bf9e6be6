"""Decrypt-and-pipe through ``sops exec-file``."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from clusterboot.cluster.commands import CommandResult, CommandRunner

# sops substitutes this token with the path of a FIFO holding the plaintext
FILE_PLACEHOLDER = "{}"


class SopsDecryptor:
    """Run a command against the decrypted contents of a sops file.

    ``sops exec-file`` decrypts into a named pipe, so no plaintext file is
    ever written to disk. The command must reference the pipe with ``{}``.
    """

    def __init__(self, runner: CommandRunner, binary: str = "sops") -> None:
        self._runner = runner
        self._binary = binary

    def exec_file(
        self,
        path: Path,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        if FILE_PLACEHOLDER not in argv:
            raise ValueError(f"command must reference the decrypted file as {FILE_PLACEHOLDER!r}")
        command = " ".join(
            arg if arg == FILE_PLACEHOLDER else shlex.quote(arg) for arg in argv
        )
        return self._runner.run(
            [self._binary, "exec-file", str(path), command],
            timeout=timeout,
        )
