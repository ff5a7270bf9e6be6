"""Bootstrap orchestrator: preflight checks plus the fixed phase sequence."""

from __future__ import annotations

import shutil
import time
from typing import TYPE_CHECKING, Protocol

from clusterboot.cluster.commands import CommandRunner, Which, require_tools
from clusterboot.cluster.helmfile import Helmfile
from clusterboot.cluster.kubectl import Kubectl
from clusterboot.cluster.kustomize import KustomizeSource
from clusterboot.cluster.sops import SopsDecryptor
from clusterboot.errors import MissingDependencyError
from clusterboot.observability.logging import get_logger
from clusterboot.pipeline.applier import IdempotentApplier
from clusterboot.pipeline.differ import ResourceDiffer
from clusterboot.pipeline.gates import PhaseGateHook, RequireSuccessGate
from clusterboot.pipeline.phases import BootstrapPhases, ManifestSource, ReleaseManager
from clusterboot.pipeline.readiness import ReadinessCondition, ReadinessGate
from clusterboot.pipeline.runner import Phase, PhaseRunner, RunReport

if TYPE_CHECKING:
    from collections.abc import Callable

    from clusterboot.cluster.commands import CommandResult
    from clusterboot.models import Resource
    from clusterboot.pipeline.config import BootstrapConfig

log = get_logger(__name__)

PREFLIGHT_PHASE = "preflight"


class ClusterClient(Protocol):
    """Everything the pipeline asks of the cluster (satisfied by ``Kubectl``)."""

    def wait_for_nodes(self, condition: str, timeout: float) -> bool: ...

    def diff(self, resource: Resource) -> CommandResult: ...

    def apply(self, resource: Resource) -> CommandResult: ...

    def namespace_exists(self, name: str) -> bool: ...

    def render_namespace(self, name: str) -> str: ...


class BootstrapOrchestrator:
    """Bring a fresh cluster to the state a GitOps controller can take over.

    Phases, in order:
    1. wait_for_nodes - nodes registered (fast path if already Ready)
    2. crd_sync - CustomResourceDefinitions from a pinned bundle
    3. namespace_sync - one namespace per application directory
    4. configmap_sync - shared non-secret settings
    5. secret_sync - sops secrets, decrypted just in time
    6. release_apply - helmfile apply

    The orchestrator holds no state beyond its configuration; all real state
    lives in the cluster, which is why re-running it is the recovery path.

    Attributes:
        config: The bootstrap configuration this run uses.
    """

    def __init__(
        self,
        config: BootstrapConfig,
        *,
        runner: CommandRunner | None = None,
        cluster: ClusterClient | None = None,
        manifests: ManifestSource | None = None,
        releases: ReleaseManager | None = None,
        phase_gate: PhaseGateHook | None = None,
        which: Which = shutil.which,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Bootstrap configuration.
            runner: Command runner shared by the default tool wrappers.
            cluster: Cluster client; defaults to ``Kubectl`` with sops decryption.
            manifests: Manifest source for CRDs; defaults to ``KustomizeSource``.
            releases: Release manager; defaults to ``Helmfile``.
            phase_gate: Gate deciding whether to continue after each phase.
                Defaults to RequireSuccessGate.
            which: PATH lookup used by the preflight tool check.
            sleep: Sleep function used between readiness polls.
        """
        self.config = config
        runner = runner or CommandRunner()
        self._cluster: ClusterClient = cluster or Kubectl(
            runner,
            decryptor=SopsDecryptor(runner),
            context=config.kube_context,
            field_manager=config.field_manager,
        )
        self._manifests = manifests or KustomizeSource(runner)
        self._releases = releases or Helmfile(runner)
        self._phase_gate = phase_gate or RequireSuccessGate()
        self._which = which

        readiness = config.readiness
        self._gate = ReadinessGate(
            self._cluster,
            ready_condition=ReadinessCondition.parse(readiness.ready_condition),
            poll_interval=readiness.poll_interval,
            poll_timeout=readiness.poll_timeout,
            sleep=sleep,
        )
        self._applier = IdempotentApplier(ResourceDiffer(self._cluster), self._cluster)

    def check_prerequisites(self) -> None:
        """Verify every required tool is on PATH.

        Raises:
            MissingDependencyError: Naming each missing tool.
        """
        require_tools(self.config.required_tools, self._which)
        log.debug("tools_present", tools=",".join(self.config.required_tools))

    def build_phases(self) -> list[Phase]:
        phases = BootstrapPhases(
            self.config,
            gate=self._gate,
            applier=self._applier,
            namespaces=self._cluster,
            manifests=self._manifests,
            releases=self._releases,
        )
        return [
            Phase("wait_for_nodes", phases.wait_for_nodes, "Wait for nodes to register"),
            Phase("crd_sync", phases.sync_crds, "Apply CustomResourceDefinitions"),
            Phase("namespace_sync", phases.sync_namespaces, "Create application namespaces"),
            Phase("configmap_sync", phases.sync_configmaps, "Apply shared ConfigMaps"),
            Phase("secret_sync", phases.sync_secrets, "Apply sops-encrypted Secrets"),
            Phase("release_apply", phases.apply_releases, "Apply Helm releases with helmfile"),
        ]

    def run(self) -> RunReport:
        """Run preflight checks and then every phase in order.

        Returns:
            RunReport; ``exit_code`` is 0 only if every mandatory phase succeeded.
        """
        log.info("bootstrap_start", root=str(self.config.root_dir))

        try:
            self.check_prerequisites()
        except MissingDependencyError as e:
            log.error("bootstrap_failed", phase=PREFLIGHT_PHASE, error=str(e))
            return RunReport(status="failed", failed_phase=PREFLIGHT_PHASE, error=str(e))

        report = PhaseRunner(self._phase_gate).run(self.build_phases())

        if report.status == "failed":
            log.error(
                "bootstrap_failed",
                phase=report.failed_phase,
                resource=report.failed_resource,
                error=report.error,
            )
        else:
            log.info(
                "bootstrap_complete",
                duration=f"{report.duration_seconds:.1f}s",
                msg="The cluster is bootstrapped and Flux is syncing the Git repository",
            )
        return report
