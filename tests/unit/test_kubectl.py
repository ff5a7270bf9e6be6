"""Tests for the kubectl, sops, kustomize and helmfile wrappers."""

from __future__ import annotations

from pathlib import Path

import pytest

from clusterboot.cluster.commands import CommandResult
from clusterboot.cluster.helmfile import QUIET_APPLY_FLAGS, Helmfile
from clusterboot.cluster.kubectl import WAIT_GRACE_SECONDS, Kubectl, format_duration
from clusterboot.cluster.kustomize import KustomizeSource, pinned_url
from clusterboot.cluster.sops import SopsDecryptor
from clusterboot.errors import ClusterbootError, ManifestError
from clusterboot.models import Resource
from tests.fixtures.fake_cluster import RecordingRunner

CONFIGMAP = Resource(
    kind="ConfigMap",
    name="cluster-settings",
    namespace="flux-system",
    body="kind: ConfigMap\n",
)
SECRET = Resource(
    kind="Secret",
    name="sops-age",
    namespace="flux-system",
    source=Path("/repo/kubernetes/components/common/sops-age.sops.yaml"),
    encrypted=True,
)


def _kubectl(runner: RecordingRunner, **kwargs: object) -> Kubectl:
    return Kubectl(runner, decryptor=SopsDecryptor(runner), **kwargs)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(10, "10s"), (0.2, "1s"), (60, "1m"), (90, "1m30s"), (9.6, "10s")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


class TestWaitForNodes:
    def test_argv_and_timeout(self) -> None:
        runner = RecordingRunner()

        assert _kubectl(runner).wait_for_nodes("Ready=True", 10.0) is True

        call = runner.calls[0]
        assert call["argv"] == [
            "kubectl",
            "wait",
            "nodes",
            "--for=condition=Ready=True",
            "--all",
            "--timeout=10s",
        ]
        assert call["timeout"] == 10.0 + WAIT_GRACE_SECONDS

    def test_unmet_condition_is_false(self) -> None:
        runner = RecordingRunner(
            [CommandResult(argv=["kubectl"], returncode=1, stderr="timed out waiting")]
        )
        assert _kubectl(runner).wait_for_nodes("Ready=False", 10.0) is False

    def test_context_flag(self) -> None:
        runner = RecordingRunner()
        _kubectl(runner, context="home").wait_for_nodes("Ready=True", 5.0)
        assert runner.calls[0]["argv"][:3] == ["kubectl", "--context", "home"]


class TestDiffAndApply:
    def test_plain_resource_piped_on_stdin(self) -> None:
        runner = RecordingRunner()

        _kubectl(runner).apply(CONFIGMAP)

        call = runner.calls[0]
        assert call["argv"] == [
            "kubectl",
            "--namespace",
            "flux-system",
            "apply",
            "--server-side",
            "--field-manager=clusterboot",
            "--filename",
            "-",
        ]
        assert call["stdin"] == "kind: ConfigMap\n"

    def test_diff_is_server_side(self) -> None:
        runner = RecordingRunner()

        _kubectl(runner, field_manager="bootstrap").diff(CONFIGMAP)

        argv = runner.calls[0]["argv"]
        assert "diff" in argv
        assert "--server-side" in argv
        assert "--field-manager=bootstrap" in argv

    def test_encrypted_resource_goes_through_sops(self) -> None:
        runner = RecordingRunner()

        _kubectl(runner).apply(SECRET)

        call = runner.calls[0]
        assert call["argv"][:3] == ["sops", "exec-file", str(SECRET.source)]
        assert call["argv"][3] == (
            "kubectl --namespace flux-system apply --server-side "
            "--field-manager=clusterboot --filename {}"
        )
        assert call["stdin"] is None

    def test_encrypted_without_decryptor(self) -> None:
        with pytest.raises(ClusterbootError, match="no decryptor"):
            Kubectl(RecordingRunner()).apply(SECRET)

    def test_apply_result_returned(self) -> None:
        failure = CommandResult(argv=["kubectl"], returncode=1, stderr="denied")
        result = _kubectl(RecordingRunner([failure])).apply(CONFIGMAP)
        assert result.diagnostic == "denied"


class TestNamespaces:
    def test_namespace_exists(self) -> None:
        runner = RecordingRunner([CommandResult(argv=["kubectl"], returncode=1)])

        assert _kubectl(runner).namespace_exists("observability") is False
        assert runner.calls[0]["argv"] == ["kubectl", "get", "namespace", "observability"]

    def test_render_namespace(self) -> None:
        manifest = "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: observability\n"
        runner = RecordingRunner([CommandResult(argv=["kubectl"], returncode=0, stdout=manifest)])

        assert _kubectl(runner).render_namespace("observability") == manifest
        assert runner.calls[0]["argv"] == [
            "kubectl",
            "create",
            "namespace",
            "observability",
            "--dry-run=client",
            "--output=yaml",
        ]

    def test_render_namespace_failure(self) -> None:
        runner = RecordingRunner([CommandResult(argv=["kubectl"], returncode=1, stderr="boom")])
        with pytest.raises(ClusterbootError, match="Failed to render namespace observability"):
            _kubectl(runner).render_namespace("observability")


class TestSops:
    def test_quotes_arguments_except_placeholder(self) -> None:
        runner = RecordingRunner()

        SopsDecryptor(runner).exec_file(Path("a b.sops.yaml"), ["echo", "it's", "{}"])

        assert runner.calls[0]["argv"] == ["sops", "exec-file", "a b.sops.yaml", "echo 'it'\"'\"'s' {}"]

    def test_requires_placeholder(self) -> None:
        with pytest.raises(ValueError, match="decrypted file"):
            SopsDecryptor(RecordingRunner()).exec_file(Path("x.sops.yaml"), ["cat"])


class TestKustomize:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://github.com/org/repo/", "https://github.com/org/repo/?ref=v1"),
            ("https://github.com/org/repo/?timeout=120", "https://github.com/org/repo/?timeout=120&ref=v1"),
        ],
    )
    def test_pinned_url(self, url: str, expected: str) -> None:
        assert pinned_url(url, "v1") == expected

    def test_fetch(self) -> None:
        runner = RecordingRunner([CommandResult(argv=["kustomize"], returncode=0, stdout="kind: A\n")])

        assert KustomizeSource(runner).fetch("https://github.com/org/repo/", "v1") == "kind: A\n"
        assert runner.calls[0]["argv"] == ["kustomize", "build", "https://github.com/org/repo/?ref=v1"]

    def test_fetch_failure(self) -> None:
        runner = RecordingRunner(
            [CommandResult(argv=["kustomize"], returncode=1, stderr="no such ref")]
        )
        with pytest.raises(ManifestError, match="check the version or the repository URL"):
            KustomizeSource(runner).fetch("https://github.com/org/repo/", "v9")

    def test_fetch_empty(self) -> None:
        runner = RecordingRunner([CommandResult(argv=["kustomize"], returncode=0, stdout="\n")])
        with pytest.raises(ManifestError, match="empty"):
            KustomizeSource(runner).fetch("https://github.com/org/repo/", "v1")


def test_helmfile_apply() -> None:
    runner = RecordingRunner()

    Helmfile(runner).apply(Path("/repo/bootstrap/helmfile.yaml"))

    assert runner.calls[0]["argv"] == [
        "helmfile",
        "--file",
        "/repo/bootstrap/helmfile.yaml",
        "apply",
        *QUIET_APPLY_FLAGS,
    ]
