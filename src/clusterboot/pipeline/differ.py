"""Staleness check: would applying a resource change live state?"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from clusterboot.observability.logging import get_logger

if TYPE_CHECKING:
    from clusterboot.cluster.commands import CommandResult
    from clusterboot.models import Resource

log = get_logger(__name__)

# kubectl diff exit codes
DIFF_NO_CHANGES = 0
DIFF_CHANGES = 1


class DiffClient(Protocol):
    """Cluster capabilities the differ needs."""

    def diff(self, resource: Resource) -> CommandResult: ...

    def namespace_exists(self, name: str) -> bool: ...


class ResourceDiffer:
    """Decide whether a resource is already current, without mutating anything.

    Namespaces are current once they exist. Every other kind is checked with
    a server-side diff; a missing object shows up as drift, and a diff that
    errors out is treated as stale so the following apply reports the real
    problem.
    """

    def __init__(self, client: DiffClient) -> None:
        self._client = client

    def is_current(self, resource: Resource) -> bool:
        if resource.kind == "Namespace":
            exists = self._client.namespace_exists(resource.name)
            log.debug("diff_checked", resource=resource.ref, current=exists)
            return exists

        result = self._client.diff(resource)
        if result.returncode == DIFF_NO_CHANGES:
            log.debug("diff_checked", resource=resource.ref, current=True)
            return True
        if result.returncode != DIFF_CHANGES:
            log.warning(
                "diff_failed",
                resource=resource.ref,
                code=result.returncode,
                error=result.diagnostic,
            )
        else:
            log.debug("diff_checked", resource=resource.ref, current=False)
        return False
