"""Tests for the idempotent applier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from clusterboot.models import ApplyOutcome, Resource
from clusterboot.pipeline.applier import IdempotentApplier
from clusterboot.pipeline.differ import ResourceDiffer
from tests.fixtures.fake_cluster import FakeCluster

if TYPE_CHECKING:
    from pathlib import Path

CRD = Resource(
    kind="CustomResourceDefinition",
    name="servicemonitors.monitoring.coreos.com",
    body="kind: CustomResourceDefinition\nmetadata:\n  name: servicemonitors.monitoring.coreos.com\n",
)


def _applier(cluster: FakeCluster) -> IdempotentApplier:
    return IdempotentApplier(ResourceDiffer(cluster), cluster)


def test_first_apply_then_current() -> None:
    cluster = FakeCluster()
    applier = _applier(cluster)

    first = applier.apply_if_stale(CRD)
    second = applier.apply_if_stale(CRD)

    assert first.outcome is ApplyOutcome.APPLIED
    assert second.outcome is ApplyOutcome.CURRENT
    assert cluster.mutations == 1


def test_already_matching_is_current_without_mutation() -> None:
    cluster = FakeCluster()
    cluster.objects[CRD.identity] = CRD.body
    result = _applier(cluster).apply_if_stale(CRD)

    assert result.outcome is ApplyOutcome.CURRENT
    assert cluster.applied() == []


def test_changed_body_is_reapplied() -> None:
    cluster = FakeCluster()
    cluster.objects[CRD.identity] = "kind: CustomResourceDefinition\nold: true\n"

    result = _applier(cluster).apply_if_stale(CRD)

    assert result.outcome is ApplyOutcome.APPLIED
    assert cluster.objects[CRD.identity] == CRD.body


def test_failed_apply_surfaces_diagnostic_without_retry() -> None:
    cluster = FakeCluster(reject=[CRD.ref])

    result = _applier(cluster).apply_if_stale(CRD)

    assert result.outcome is ApplyOutcome.FAILED
    assert "admission webhook denied" in result.message
    assert result.resource == CRD.ref
    assert cluster.applied() == [CRD.ref]


def test_encrypted_resource_goes_through_same_path(tmp_path: Path) -> None:
    secret_file = tmp_path / "cluster-secrets.sops.yaml"
    secret_file.write_text("kind: Secret\n")
    secret = Resource(
        kind="Secret",
        name="cluster-secrets",
        namespace="flux-system",
        source=secret_file,
        encrypted=True,
    )
    cluster = FakeCluster()
    applier = _applier(cluster)

    assert applier.apply_if_stale(secret).outcome is ApplyOutcome.APPLIED
    assert applier.apply_if_stale(secret).outcome is ApplyOutcome.CURRENT
