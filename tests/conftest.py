"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from clusterboot.pipeline import BootstrapConfig, create_default_config

APP_DIRS = ["cert-manager", "flux-system", "observability"]

CLUSTER_SETTINGS = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: cluster-settings
data:
  CLUSTER_DOMAIN: example.internal
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of config resolution."""
    for name in (
        "CLUSTERBOOT_ROOT_DIR",
        "CLUSTERBOOT_KUBERNETES_DIR",
        "CLUSTERBOOT_FLUX_NAMESPACE",
        "CLUSTERBOOT_POLL_INTERVAL",
        "CLUSTERBOOT_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A home-ops style repository with every default input present.

    Secret files hold plain YAML; the fake cluster reads them as if sops had
    decrypted them.
    """
    kubernetes = tmp_path / "kubernetes"
    for app in APP_DIRS:
        (kubernetes / "apps" / app).mkdir(parents=True)
    (kubernetes / "apps" / ".hidden").mkdir()
    (kubernetes / "apps" / "README.md").write_text("not a namespace\n")

    common = kubernetes / "components" / "common"
    common.mkdir(parents=True)
    (common / "cluster-settings.yaml").write_text(CLUSTER_SETTINGS)
    (common / "cluster-secrets.sops.yaml").write_text(
        "apiVersion: v1\nkind: Secret\nmetadata:\n  name: cluster-secrets\n"
    )
    (common / "sops-age.sops.yaml").write_text(
        "apiVersion: v1\nkind: Secret\nmetadata:\n  name: sops-age\n"
    )
    (kubernetes / "bootstrap").mkdir()
    (kubernetes / "bootstrap" / "github-deploy-key.sops.yaml").write_text(
        "apiVersion: v1\nkind: Secret\nmetadata:\n  name: github-deploy-key\n"
    )

    (tmp_path / "bootstrap").mkdir()
    (tmp_path / "bootstrap" / "helmfile.yaml").write_text("releases: []\n")
    return tmp_path


@pytest.fixture
def bootstrap_config(repo_root: Path) -> BootstrapConfig:
    return create_default_config(repo_root)
