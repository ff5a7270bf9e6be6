"""kubectl wrapper exposing the cluster capabilities the bootstrap needs.

The pipeline depends on five operations only: wait for a node condition,
diff a manifest against live state, server-side apply a manifest, check
whether a namespace exists, and render a namespace manifest. Everything goes
through ``CommandRunner`` so tests can substitute a fake.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from clusterboot.cluster.sops import FILE_PLACEHOLDER
from clusterboot.errors import ClusterbootError
from clusterboot.observability.logging import get_logger

if TYPE_CHECKING:
    from clusterboot.cluster.commands import CommandResult, CommandRunner
    from clusterboot.cluster.sops import SopsDecryptor
    from clusterboot.models import Resource

log = get_logger(__name__)

DEFAULT_FIELD_MANAGER = "clusterboot"

# Extra seconds granted to the subprocess beyond kubectl's own --timeout
WAIT_GRACE_SECONDS = 5.0


def format_duration(seconds: float) -> str:
    """Render seconds as a kubectl duration (``10s``, ``1m30s``)."""
    total = max(int(round(seconds)), 1)
    minutes, secs = divmod(total, 60)
    if minutes and secs:
        return f"{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"


class Kubectl:
    """Cluster client backed by the ``kubectl`` binary."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        decryptor: SopsDecryptor | None = None,
        context: str | None = None,
        field_manager: str = DEFAULT_FIELD_MANAGER,
        binary: str = "kubectl",
    ) -> None:
        self._runner = runner
        self._decryptor = decryptor
        self._context = context
        self._field_manager = field_manager
        self._binary = binary

    def _base(self, namespace: str | None = None) -> list[str]:
        argv = [self._binary]
        if self._context:
            argv += ["--context", self._context]
        if namespace:
            argv += ["--namespace", namespace]
        return argv

    def _pipe(self, argv: list[str], resource: Resource) -> CommandResult:
        """Feed the resource manifest to ``argv`` without writing plaintext to disk."""
        if resource.encrypted:
            if self._decryptor is None:
                raise ClusterbootError(
                    f"{resource.ref} is encrypted but no decryptor is configured"
                )
            assert resource.source is not None
            return self._decryptor.exec_file(
                resource.source, [*argv, "--filename", FILE_PLACEHOLDER]
            )
        return self._runner.run([*argv, "--filename", "-"], stdin=resource.body)

    # -- Readiness -------------------------------------------------------------

    def wait_for_nodes(self, condition: str, timeout: float) -> bool:
        """Return True if every node satisfies ``condition`` within ``timeout`` seconds.

        Args:
            condition: kubectl condition expression, e.g. ``Ready=True``.
            timeout: Upper bound for this single evaluation.
        """
        argv = [
            *self._base(),
            "wait",
            "nodes",
            f"--for=condition={condition}",
            "--all",
            f"--timeout={format_duration(timeout)}",
        ]
        result = self._runner.run(argv, timeout=timeout + WAIT_GRACE_SECONDS)
        if not result.ok:
            log.debug(
                "node_wait_miss",
                condition=condition,
                code=result.returncode,
                timed_out=result.timed_out,
                stderr=result.stderr.strip(),
            )
        return result.ok

    # -- Staleness and apply ---------------------------------------------------

    def diff(self, resource: Resource) -> CommandResult:
        """Server-side diff; exit 0 means no change, 1 means drift, >1 an error."""
        argv = [
            *self._base(resource.namespace),
            "diff",
            "--server-side",
            f"--field-manager={self._field_manager}",
        ]
        return self._pipe(argv, resource)

    def apply(self, resource: Resource) -> CommandResult:
        """Server-side apply; fields not in the manifest are left to their owners."""
        argv = [
            *self._base(resource.namespace),
            "apply",
            "--server-side",
            f"--field-manager={self._field_manager}",
        ]
        return self._pipe(argv, resource)

    # -- Namespaces ------------------------------------------------------------

    def namespace_exists(self, name: str) -> bool:
        result = self._runner.run([*self._base(), "get", "namespace", name])
        return result.ok

    def render_namespace(self, name: str) -> str:
        """Generate the manifest a live ``create namespace`` would produce."""
        result = self._runner.run(
            [*self._base(), "create", "namespace", name, "--dry-run=client", "--output=yaml"]
        )
        if not result.ok or not result.stdout.strip():
            raise ClusterbootError(f"Failed to render namespace {name}: {result.diagnostic}")
        return result.stdout
