"""The bootstrap phases.

Each phase first discovers its resources, then applies them one at a time
through the idempotent applier, stopping at the first failure. Optional input
files that are absent only produce a warning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from clusterboot.errors import MissingDependencyError, PhaseError
from clusterboot.models import ApplyResult, PhaseResult, Resource
from clusterboot.observability.logging import get_logger
from clusterboot.pipeline.manifests import (
    discover_namespaces,
    encrypted_resource,
    load_manifest_file,
    resources_from_bundle,
    split_present,
)
from clusterboot.pipeline.readiness import ReadinessCondition

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from clusterboot.cluster.commands import CommandResult
    from clusterboot.pipeline.applier import IdempotentApplier
    from clusterboot.pipeline.config import BootstrapConfig
    from clusterboot.pipeline.readiness import ReadinessGate

log = get_logger(__name__)


class ManifestSource(Protocol):
    def fetch(self, url: str, ref: str) -> str: ...


class NamespaceRenderer(Protocol):
    def render_namespace(self, name: str) -> str: ...


class ReleaseManager(Protocol):
    def apply(self, helmfile: Path, flags: Sequence[str]) -> CommandResult: ...


def apply_resources(
    phase: str,
    resources: Iterable[Resource],
    applier: IdempotentApplier,
) -> PhaseResult:
    """Apply resources in order; the first failure ends the phase."""
    outcomes: list[ApplyResult] = []
    for resource in resources:
        outcome = applier.apply_if_stale(resource)
        outcomes.append(outcome)
        if not outcome.ok:
            break
    return PhaseResult.from_outcomes(phase, outcomes)


class BootstrapPhases:
    """Phase implementations bound to one configuration and set of clients."""

    def __init__(
        self,
        config: BootstrapConfig,
        *,
        gate: ReadinessGate,
        applier: IdempotentApplier,
        namespaces: NamespaceRenderer,
        manifests: ManifestSource,
        releases: ReleaseManager,
    ) -> None:
        self._config = config
        self._gate = gate
        self._applier = applier
        self._namespaces = namespaces
        self._manifests = manifests
        self._releases = releases

    def _optional_files(self, phase: str, paths: list[Path]) -> list[Path]:
        present, missing = split_present(paths)
        for path in missing:
            log.warning("file_missing", phase=phase, file=str(path))
        return present

    def wait_for_nodes(self) -> PhaseResult:
        readiness = self._config.readiness
        result = self._gate.await_condition(
            ReadinessCondition.parse(readiness.pending_condition),
            poll_interval=readiness.poll_interval,
            poll_timeout=readiness.poll_timeout,
        )
        detail = (
            "nodes already ready"
            if result.fast_path
            else f"{result.condition} after {result.evaluations} evaluations"
        )
        return PhaseResult(phase="wait_for_nodes", status="completed", detail=detail)

    def sync_crds(self) -> PhaseResult:
        source = self._config.crd_source
        log.debug("crds_fetch", url=source.url, ref=source.ref)
        bundle = self._manifests.fetch(source.url, source.ref)
        crds = resources_from_bundle(bundle, source.kind, f"{source.url}@{source.ref}")
        log.debug("crds_selected", count=len(crds))
        return apply_resources("crd_sync", crds, self._applier)

    def sync_namespaces(self) -> PhaseResult:
        names = discover_namespaces(self._config.apps_dir)
        resources = [
            load_namespace(name, self._namespaces.render_namespace(name)) for name in names
        ]
        return apply_resources("namespace_sync", resources, self._applier)

    def sync_configmaps(self) -> PhaseResult:
        present = self._optional_files("configmap_sync", self._config.configmaps)
        if not present:
            return PhaseResult(
                phase="configmap_sync", status="skipped", detail="no configmap files present"
            )
        resources = [load_manifest_file(path, self._config.flux_namespace) for path in present]
        return apply_resources("configmap_sync", resources, self._applier)

    def sync_secrets(self) -> PhaseResult:
        present = self._optional_files("secret_sync", self._config.secrets)
        if not present:
            return PhaseResult(
                phase="secret_sync", status="skipped", detail="no secret files present"
            )
        resources = [encrypted_resource(path, self._config.flux_namespace) for path in present]
        return apply_resources("secret_sync", resources, self._applier)

    def apply_releases(self) -> PhaseResult:
        helmfile = self._config.helmfile
        if not helmfile.is_file():
            raise MissingDependencyError([str(helmfile)], kind="file")

        log.debug("releases_apply", helmfile=str(helmfile))
        result = self._releases.apply(helmfile, self._config.helmfile_flags)
        for line in result.stdout.splitlines():
            log.debug("helmfile_output", line=line)
        if not result.ok:
            raise PhaseError("release_apply", f"Failed to apply Helm releases: {result.diagnostic}")

        log.info("releases_applied", helmfile=str(helmfile))
        return PhaseResult(phase="release_apply", status="completed", detail="helmfile apply ok")


def load_namespace(name: str, manifest: str) -> Resource:
    return Resource(kind="Namespace", name=name, body=manifest)
