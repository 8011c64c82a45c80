"""Tests for the workloadoperator.config module."""

from __future__ import annotations

import pytest

from workloadoperator.config import OperatorConfig, kind_env_key, load_config


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "WO_NAMESPACE",
        "WO_THROTTLE_DEFAULT",
        "WO_THROTTLE_PODS",
        "WO_REQUEST_BATCH_SIZE",
        "WO_REQUEST_TIMEOUT",
        "WO_REFRESH_THREADS",
        "WO_RECONCILE_INTERVAL",
    ):
        monkeypatch.delenv(key, raising=False)

    config = load_config()

    assert config == OperatorConfig(
        namespace="default",
        throttle_default=30.0,
        throttles={},
        request_batch_size=256,
        request_timeout=2.0,
        refresh_threads=15,
        reconcile_interval=30.0,
    )


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WO_NAMESPACE", "workloads")
    monkeypatch.setenv("WO_THROTTLE_DEFAULT", "10")
    monkeypatch.setenv("WO_THROTTLE_PODS", "0")
    monkeypatch.setenv("WO_THROTTLE_PERSISTENT_VOLUME_CLAIMS", "60")
    monkeypatch.setenv("WO_THROTTLE_PERSISTENT_VOLUMES", "120")
    monkeypatch.setenv("WO_REQUEST_BATCH_SIZE", "0")

    config = load_config()
    intervals = config.throttle_intervals()

    assert config.namespace == "workloads"
    assert config.request_batch_size == 1
    assert intervals["pods"] == 0
    assert intervals["persistentVolumeClaims"] == 60
    assert intervals["persistentVolumes"] == 120
    assert intervals["secrets"] == 10


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("pods", "PODS"),
        ("configMaps", "CONFIG_MAPS"),
        ("persistentVolumes", "PERSISTENT_VOLUMES"),
        ("podDisruptionBudgets", "POD_DISRUPTION_BUDGETS"),
        ("workloadMembers", "WORKLOAD_MEMBERS"),
    ],
)
def test_kind_env_key(name: str, expected: str) -> None:
    assert kind_env_key(name) == expected
