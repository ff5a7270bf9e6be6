"""Bootstrap pipeline: configuration, staleness checks, phases and orchestration."""

from clusterboot.pipeline.applier import IdempotentApplier
from clusterboot.pipeline.config import (
    BootstrapConfig,
    CrdSourceConfig,
    ReadinessConfig,
    create_default_config,
    load_bootstrap_config,
)
from clusterboot.pipeline.differ import ResourceDiffer
from clusterboot.pipeline.gates import PhaseGateHook, RequireSuccessGate
from clusterboot.pipeline.orchestrator import BootstrapOrchestrator
from clusterboot.pipeline.readiness import (
    NODES_NOT_READY,
    NODES_READY,
    GateResult,
    ReadinessCondition,
    ReadinessGate,
)
from clusterboot.pipeline.runner import Phase, PhaseRunner, RunReport

__all__ = [
    "NODES_NOT_READY",
    "NODES_READY",
    "BootstrapConfig",
    "BootstrapOrchestrator",
    "CrdSourceConfig",
    "GateResult",
    "IdempotentApplier",
    "Phase",
    "PhaseGateHook",
    "PhaseRunner",
    "ReadinessCondition",
    "ReadinessConfig",
    "ReadinessGate",
    "RequireSuccessGate",
    "ResourceDiffer",
    "RunReport",
    "create_default_config",
    "load_bootstrap_config",
]
