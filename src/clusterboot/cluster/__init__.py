"""Wrappers around the external command-line tools the bootstrap drives."""

from clusterboot.cluster.commands import (
    CommandResult,
    CommandRunner,
    find_missing_tools,
    require_tools,
)
from clusterboot.cluster.helmfile import QUIET_APPLY_FLAGS, Helmfile
from clusterboot.cluster.kubectl import Kubectl
from clusterboot.cluster.kustomize import KustomizeSource
from clusterboot.cluster.sops import SopsDecryptor

__all__ = [
    "QUIET_APPLY_FLAGS",
    "CommandResult",
    "CommandRunner",
    "Helmfile",
    "Kubectl",
    "KustomizeSource",
    "SopsDecryptor",
    "find_missing_tools",
    "require_tools",
]
