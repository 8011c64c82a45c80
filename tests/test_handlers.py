"""Tests for the kopf handlers of workloadoperator.handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import kopf
import pytest
import yaml
from kubernetes.client.exceptions import ApiException

from workloadoperator import state
from workloadoperator.errors import UnsupportedVersionError
from workloadoperator.handlers.rotation import (
    evaluate_member,
    inspect_members,
    owned_by,
)
from workloadoperator.inspector import kinds
from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import DeploymentSpec
from workloadoperator.startup import start_operator

if TYPE_CHECKING:
    from conftest import FakeCluster

    from workloadoperator.inspector.inspector import Inspector

logger = logging.getLogger(__name__)

CLUSTER = """
apiVersion: v1
kind: Pod
metadata:
  name: example-workers-1
  uid: 5b1e4d6c-0000-4000-8000-000000000001
spec:
  containers:
  - name: server
    image: server:1.0
---
apiVersion: v1
kind: Pod
metadata:
  name: example-workers-2
  uid: 5b1e4d6c-0000-4000-8000-000000000002
spec:
  containers:
  - name: server
    image: server:1.0
"""

MEMBERS = """
apiVersion: workloadoperator.io/v1
kind: WorkloadMember
metadata:
  name: example-workers-1
spec:
  deploymentName: example
  group: workers
  template:
    podSpec:
      spec:
        schedulerName: custom
        containers:
        - name: server
          image: server:1.0
status:
  id: example-workers-1
  phase: Created
  conditions:
  - type: Ready
    status: "True"
  pod:
    name: example-workers-1
    uid: 5b1e4d6c-0000-4000-8000-000000000001
    specVersion: abc
  template:
    podSpec:
      spec:
        containers:
        - name: server
          image: server:1.0
---
apiVersion: workloadoperator.io/v1
kind: WorkloadMember
metadata:
  name: example-workers-2
spec:
  deploymentName: example
  group: workers
  template:
    podSpec:
      spec:
        containers:
        - name: server
          image: server:2.0
status:
  id: example-workers-2
  phase: Created
  conditions:
  - type: Ready
    status: "True"
  pod:
    name: example-workers-2
    uid: 5b1e4d6c-0000-4000-8000-000000000002
    specVersion: abc
  template:
    podSpec:
      spec:
        containers:
        - name: server
          image: server:1.0
---
apiVersion: workloadoperator.io/v1
kind: WorkloadMember
metadata:
  name: other-single-1
spec:
  deploymentName: other
  group: single
status:
  id: other-single-1
"""


@pytest.fixture
def populated(
    cluster: FakeCluster,
    inspector: Inspector,
    monkeypatch: pytest.MonkeyPatch,
) -> Inspector:
    cluster.add_yaml(kinds.POD, CLUSTER)
    cluster.add_yaml(kinds.WORKLOAD_MEMBER, MEMBERS)
    monkeypatch.setitem(state.inspectors, "test", inspector)
    return inspector


def test_owned_by() -> None:
    members = list(yaml.safe_load_all(MEMBERS))

    assert [m["metadata"]["name"] for m in members if owned_by("other")(m)] == [
        "other-single-1"
    ]
    assert not owned_by("example")({"metadata": {"name": "x"}})


def test_inspect_members(populated: Inspector) -> None:
    result = inspect_members(
        spec={"mode": "cluster"},
        name="example",
        namespace="test",
        logger=logger,
    )

    members = result["members"]
    assert sorted(members) == ["example-workers-1", "example-workers-2"]
    assert members["example-workers-1"] == {
        "mode": Mode.SILENT.name,
        "reason": "Pod templates differ, silent rotation",
        "actions": [],
    }
    assert members["example-workers-2"]["mode"] == Mode.GRACEFUL.name


def test_evaluate_member_without_pod(populated: Inspector) -> None:
    populated.refresh()
    member: dict[str, Any] = populated.members.get("other-single-1")

    decision = evaluate_member(
        inspector=populated, deployment=DeploymentSpec(), member=member
    )

    assert decision.mode is Mode.SKIPPED
    assert decision.reason == "Pod is not found"


def test_inspect_members_api_error(
    cluster: FakeCluster, populated: Inspector
) -> None:
    cluster.fail("list_namespaced_pod", ApiException(status=503, reason="Busy"))

    with pytest.raises(kopf.TemporaryError) as excinfo:
        inspect_members(spec={}, name="example", namespace="test", logger=logger)

    assert "Busy" in str(excinfo.value)


def test_inspect_members_unsupported_version(
    cluster: FakeCluster, populated: Inspector
) -> None:
    cluster.git_version = "v1.14.10"

    with pytest.raises(UnsupportedVersionError):
        inspect_members(spec={}, name="example", namespace="test", logger=logger)


def test_start_operator_primes_inspector(
    cluster: FakeCluster,
    inspector: Inspector,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(state, "namespace", "test")
    monkeypatch.setitem(state.inspectors, "test", inspector)

    start_operator(logger=logger)

    assert inspector.initialised


def test_start_operator_tolerates_api_errors(
    cluster: FakeCluster,
    inspector: Inspector,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(state, "namespace", "test")
    monkeypatch.setitem(state.inspectors, "test", inspector)
    cluster.fail("list_namespaced_secret", ApiException(status=500))

    start_operator(logger=logger)

    assert not inspector.initialised


def test_unknown_group_is_reported_per_member(
    cluster: FakeCluster, populated: Inspector
) -> None:
    cluster.add(
        kinds.WORKLOAD_MEMBER,
        {
            "apiVersion": "workloadoperator.io/v1",
            "kind": "WorkloadMember",
            "metadata": {"name": "example-gateways-1"},
            "spec": {"deploymentName": "example", "group": "gateways"},
            "status": {"id": "example-gateways-1", "phase": "Created"},
        },
    )

    result = inspect_members(
        spec={}, name="example", namespace="test", logger=logger
    )

    members = result["members"]
    assert members["example-gateways-1"]["mode"] == Mode.SKIPPED.name
    assert members["example-gateways-1"]["reason"] == (
        "Unknown server group 'gateways'"
    )
    assert "gateways" in members["example-gateways-1"]["error"]
    # The other members of the deployment are still evaluated.
    assert members["example-workers-2"]["mode"] == Mode.GRACEFUL.name
    assert "error" not in members["example-workers-2"]
