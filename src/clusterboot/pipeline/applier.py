"""Apply a resource only when the differ reports drift."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from clusterboot.models import ApplyOutcome, ApplyResult
from clusterboot.observability.logging import get_logger

if TYPE_CHECKING:
    from clusterboot.cluster.commands import CommandResult
    from clusterboot.models import Resource
    from clusterboot.pipeline.differ import ResourceDiffer

log = get_logger(__name__)


class ApplyClient(Protocol):
    """Cluster capability the applier needs."""

    def apply(self, resource: Resource) -> CommandResult: ...


class IdempotentApplier:
    """Server-side apply guarded by a staleness check.

    There is no retry here; a failed apply is reported back with the tool's
    diagnostic and the caller decides what to do with it.
    """

    def __init__(self, differ: ResourceDiffer, client: ApplyClient) -> None:
        self._differ = differ
        self._client = client

    def apply_if_stale(self, resource: Resource) -> ApplyResult:
        if self._differ.is_current(resource):
            log.info("resource_current", resource=resource.ref)
            return ApplyResult(resource=resource.ref, outcome=ApplyOutcome.CURRENT)

        result = self._client.apply(resource)
        if not result.ok:
            log.error(
                "resource_apply_failed",
                resource=resource.ref,
                code=result.returncode,
                error=result.diagnostic,
            )
            return ApplyResult(
                resource=resource.ref,
                outcome=ApplyOutcome.FAILED,
                message=result.diagnostic,
            )

        log.info("resource_applied", resource=resource.ref)
        return ApplyResult(
            resource=resource.ref,
            outcome=ApplyOutcome.APPLIED,
            message=result.stdout.strip(),
        )
