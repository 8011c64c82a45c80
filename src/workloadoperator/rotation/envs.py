"""Comparator for container environment variables."""

from __future__ import annotations

__all__ = ("SILENT_ENV_KEYS", "compare_envs")

from typing import Any

from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.pod import adopt_field

SILENT_ENV_KEYS = frozenset(
    {
        "WORKLOAD_ZONE",
        "WORKLOAD_OVERRIDE_SERVER_GROUP",
        "WORKLOAD_OVERRIDE_DEPLOYMENT_MODE",
        "WORKLOAD_OVERRIDE_VERSION",
        "WORKLOAD_OVERRIDE_ENTERPRISE",
        "WORKLOAD_OVERRIDE_DETECTED_TOTAL_MEMORY",
        "WORKLOAD_OVERRIDE_DETECTED_NUMBER_OF_CORES",
        "MY_POD_NAME",
        "MY_POD_NAMESPACE",
        "MY_NODE_NAME",
        "NODE_NAME",
    }
)
"""Variables set by the operator itself, whose change never needs a restart."""


def _by_name(envs: list[dict[str, Any]] | None) -> dict[str, dict[str, Any]]:
    return {env["name"]: env for env in envs or []}


def compare_envs(spec: dict[str, Any], status: dict[str, Any]) -> Mode:
    """Compare the ``env`` of two containers.

    Differences restricted to `SILENT_ENV_KEYS` are adopted into ``status``;
    any other differing variable gives `Mode.GRACEFUL`.
    """
    if spec.get("env") == status.get("env"):
        return Mode.SKIPPED

    a, b = _by_name(spec.get("env")), _by_name(status.get("env"))
    changed = {name for name in a.keys() | b.keys() if a.get(name) != b.get(name)}
    if changed - SILENT_ENV_KEYS:
        return Mode.GRACEFUL

    adopt_field(spec, status, "env")
    return Mode.SILENT
