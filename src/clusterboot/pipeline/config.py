"""Bootstrap configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from clusterboot.cluster.helmfile import QUIET_APPLY_FLAGS
from clusterboot.cluster.kubectl import DEFAULT_FIELD_MANAGER
from clusterboot.errors import ConfigError
from clusterboot.pipeline.readiness import ReadinessCondition

CONFIG_FILE_NAME = "clusterboot.yaml"

# Default configuration values
DEFAULT_FLUX_NAMESPACE = "flux-system"
DEFAULT_REQUIRED_TOOLS = ["helmfile", "kubectl", "kustomize", "sops"]
DEFAULT_CONFIGMAPS = ["components/common/cluster-settings.yaml"]
DEFAULT_SECRETS = [
    "bootstrap/github-deploy-key.sops.yaml",
    "components/common/cluster-secrets.sops.yaml",
    "components/common/sops-age.sops.yaml",
]
DEFAULT_CRD_URL = "https://github.com/prometheus-operator/prometheus-operator/"
# renovate: datasource=docker depName=ghcr.io/prometheus-operator/prometheus-operator
DEFAULT_CRD_REF = "v0.80.0"
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_POLL_TIMEOUT = 10.0


@dataclass
class CrdSourceConfig:
    """Pinned remote bundle the CRD phase installs type definitions from."""

    url: str = DEFAULT_CRD_URL
    ref: str = DEFAULT_CRD_REF
    kind: str = "CustomResourceDefinition"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CrdSourceConfig:
        return cls(
            url=str(data.get("url", DEFAULT_CRD_URL)),
            ref=str(data.get("ref", DEFAULT_CRD_REF)),
            kind=str(data.get("kind", "CustomResourceDefinition")),
        )


@dataclass
class ReadinessConfig:
    """Node readiness polling settings.

    Attributes:
        poll_interval: Fixed seconds between polls of the pending condition.
        poll_timeout: Upper bound for a single evaluation.
        ready_condition: Checked once up front; if it holds the wait is skipped.
        pending_condition: Polled until it holds (freshly provisioned nodes
            register as ``Ready=False`` until the CNI is installed).
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    ready_condition: str = "Ready=True"
    pending_condition: str = "Ready=False"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReadinessConfig:
        return cls(
            poll_interval=float(data.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            poll_timeout=float(data.get("poll_timeout", DEFAULT_POLL_TIMEOUT)),
            ready_condition=str(data.get("ready_condition", "Ready=True")),
            pending_condition=str(data.get("pending_condition", "Ready=False")),
        )


@dataclass
class BootstrapConfig:
    """Everything the orchestrator needs, resolved to absolute paths.

    Relative paths in ``configmaps`` and ``secrets`` are relative to
    ``kubernetes_dir``; ``kubernetes_dir`` and ``helmfile`` are relative to
    ``root_dir``.
    """

    root_dir: Path
    kubernetes_dir: Path
    apps_dir: Path
    helmfile: Path
    configmaps: list[Path] = field(default_factory=list)
    secrets: list[Path] = field(default_factory=list)
    flux_namespace: str = DEFAULT_FLUX_NAMESPACE
    kube_context: str | None = None
    field_manager: str = DEFAULT_FIELD_MANAGER
    required_tools: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_TOOLS))
    helmfile_flags: list[str] = field(default_factory=lambda: list(QUIET_APPLY_FLAGS))
    crd_source: CrdSourceConfig = field(default_factory=CrdSourceConfig)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any], root_dir: Path) -> BootstrapConfig:
        """Create config from dictionary.

        Environment variables take precedence over the file:
        ``CLUSTERBOOT_KUBERNETES_DIR``, ``CLUSTERBOOT_FLUX_NAMESPACE`` and
        ``CLUSTERBOOT_POLL_INTERVAL``.

        Args:
            data: Parsed ``clusterboot.yaml`` contents (may be empty).
            root_dir: Repository root that relative paths resolve against.

        Returns:
            BootstrapConfig instance.
        """
        root_dir = root_dir.resolve()
        kubernetes_dir = _resolve(
            root_dir,
            os.getenv("CLUSTERBOOT_KUBERNETES_DIR") or data.get("kubernetes_dir", "kubernetes"),
        )
        apps_dir = _resolve(kubernetes_dir, data.get("apps_dir", "apps"))
        helmfile = _resolve(root_dir, data.get("helmfile", "bootstrap/helmfile.yaml"))

        readiness = ReadinessConfig.from_dict(dict(data.get("readiness") or {}))
        poll_interval = os.getenv("CLUSTERBOOT_POLL_INTERVAL")
        if poll_interval:
            readiness.poll_interval = float(poll_interval)

        return cls(
            root_dir=root_dir,
            kubernetes_dir=kubernetes_dir,
            apps_dir=apps_dir,
            helmfile=helmfile,
            configmaps=[
                _resolve(kubernetes_dir, p) for p in data.get("configmaps", DEFAULT_CONFIGMAPS)
            ],
            secrets=[_resolve(kubernetes_dir, p) for p in data.get("secrets", DEFAULT_SECRETS)],
            flux_namespace=os.getenv("CLUSTERBOOT_FLUX_NAMESPACE")
            or str(data.get("flux_namespace", DEFAULT_FLUX_NAMESPACE)),
            kube_context=data.get("kube_context"),
            field_manager=str(data.get("field_manager", DEFAULT_FIELD_MANAGER)),
            required_tools=[str(t) for t in data.get("required_tools", DEFAULT_REQUIRED_TOOLS)],
            helmfile_flags=[str(f) for f in data.get("helmfile_flags", QUIET_APPLY_FLAGS)],
            crd_source=CrdSourceConfig.from_dict(dict(data.get("crd_source") or {})),
            readiness=readiness,
        )


def _resolve(base: Path, value: str | Path) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return base / path


def create_default_config(root_dir: Path) -> BootstrapConfig:
    """Create a configuration with every default applied under ``root_dir``."""
    return BootstrapConfig.from_dict({}, root_dir)


def load_bootstrap_config(root_dir: Path, config_path: Path | None = None) -> BootstrapConfig:
    """Load bootstrap configuration.

    Reads ``config_path`` if given, else ``{root_dir}/clusterboot.yaml`` if it
    exists. Without a file the defaults apply.

    Args:
        root_dir: Repository root directory.
        config_path: Explicit config file; must exist when given.

    Returns:
        BootstrapConfig instance.

    Raises:
        ConfigError: If the config file cannot be loaded.
    """
    explicit = config_path is not None
    config_path = config_path or root_dir / CONFIG_FILE_NAME

    if explicit and not config_path.exists():
        raise ConfigError(config_path, "File not found")

    yaml = YAML(typ="safe")
    try:
        data: Any = {}
        if config_path.exists():
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.load(f)
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ConfigError(config_path, "Top level must be a mapping")

        config = BootstrapConfig.from_dict(data, root_dir)
        validate_config(config)
        return config
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(config_path, str(e)) from e


def validate_config(config: BootstrapConfig) -> None:
    """Reject values that would only fail once the cluster is being touched.

    Raises:
        ValueError: On an unparsable readiness condition or a bad poll setting.
    """
    readiness = config.readiness
    ReadinessCondition.parse(readiness.ready_condition)
    ReadinessCondition.parse(readiness.pending_condition)
    if readiness.poll_interval < 0:
        raise ValueError(f"readiness.poll_interval must be >= 0, got {readiness.poll_interval:g}")
    if readiness.poll_timeout <= 0:
        raise ValueError(f"readiness.poll_timeout must be > 0, got {readiness.poll_timeout:g}")
