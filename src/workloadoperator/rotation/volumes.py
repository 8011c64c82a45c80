"""Comparators for pod volumes and container volume mounts."""

from __future__ import annotations

__all__ = (
    "LIFECYCLE_VOLUME",
    "TIMEZONE_VOLUME",
    "compare_volume_mounts",
    "compare_volumes",
)

from typing import Any

from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import DeploymentSpec, ServerGroup
from workloadoperator.rotation.plan import Comparison
from workloadoperator.rotation.pod import adopt_field

LIFECYCLE_VOLUME = "lifecycle"
TIMEZONE_VOLUME = "timezone"


def _by_name(items: list[dict[str, Any]] | None) -> dict[str, dict[str, Any]]:
    return {item["name"]: item for item in items or []}


def _is_silent(name: str, *, removed: bool, group: ServerGroup) -> bool:
    if name == LIFECYCLE_VOLUME:
        return True
    if name == TIMEZONE_VOLUME:
        return not removed and not group.is_external
    return False


def _compare_named(
    spec: dict[str, Any], status: dict[str, Any], key: str, group: ServerGroup
) -> Mode:
    if spec.get(key) == status.get(key):
        return Mode.SKIPPED

    a, b = _by_name(spec.get(key)), _by_name(status.get(key))
    for name in a.keys() | b.keys():
        if a.get(name) == b.get(name):
            continue
        if not _is_silent(name, removed=name not in a, group=group):
            return Mode.GRACEFUL

    adopt_field(spec, status, key)
    return Mode.SILENT


def compare_volumes(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    """Compare pod ``volumes``.

    The lifecycle volume is always adopted. The timezone volume is adopted
    unless it is removed or the group serves external clients. Any other
    differing volume gives `Mode.GRACEFUL`.
    """
    return Comparison(_compare_named(spec, status, "volumes", group), [], status)


def compare_volume_mounts(
    spec: dict[str, Any], status: dict[str, Any], *, group: ServerGroup
) -> Mode:
    """Compare the ``volumeMounts`` of two containers, with the same rules as
    `compare_volumes`.
    """
    return _compare_named(spec, status, "volumeMounts", group)
