"""Comparators for containers and init containers."""

from __future__ import annotations

__all__ = (
    "FEATURES_CONFIG_MAP",
    "RESERVED_CONTAINERS",
    "RESERVED_INIT_CONTAINERS",
    "SERVER_CONTAINER",
    "compare_containers",
    "compare_init_containers",
    "compare_lifecycle",
    "is_only_log_level_changed",
)

from typing import Any

from workloadoperator.rotation.envs import compare_envs
from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import (
    DeploymentSpec,
    InitContainersMode,
    ServerGroup,
)
from workloadoperator.rotation.plan import Action, Comparison, Plan
from workloadoperator.rotation.pod import adopt_field
from workloadoperator.rotation.probes import compare_probes
from workloadoperator.rotation.templates import canonical_json
from workloadoperator.rotation.volumes import compare_volume_mounts

SERVER_CONTAINER = "server"
EXPORTER_CONTAINER = "exporter"
RESERVED_CONTAINERS = frozenset({SERVER_CONTAINER, EXPORTER_CONTAINER})

RESERVED_INIT_CONTAINERS = frozenset(
    {"init-lifecycle", "uuid", "version-check", "upgrade"}
)
"""Init containers managed by the operator; they never force a restart."""

FEATURES_CONFIG_MAP = "workload-features"
"""ConfigMap of feature flags, mounted with ``envFrom`` and reloaded live."""

LOG_LEVEL_ARG = "--log.level"


def is_only_log_level_changed(spec_args: list[str], status_args: list[str]) -> bool:
    """Return `True` if the arguments differ, and every differing argument is
    a ``--log.level`` one.
    """
    diff = set(spec_args) ^ set(status_args)
    if not diff:
        return False
    return all(arg.lstrip(" ").startswith(LOG_LEVEL_ARG) for arg in diff)


def compare_lifecycle(spec: dict[str, Any], status: dict[str, Any]) -> Mode:
    if spec.get("lifecycle") == status.get("lifecycle"):
        return Mode.SKIPPED
    adopt_field(spec, status, "lifecycle")
    return Mode.SILENT


def _env_from_by_name(
    sources: list[dict[str, Any]] | None,
) -> dict[str, dict[str, Any]]:
    result = {}
    for source in sources or []:
        ref = source.get("configMapRef") or source.get("secretRef")
        if ref is not None:
            result[ref.get("name", "")] = source
    return result


def _compare_env_from(spec: dict[str, Any], status: dict[str, Any]) -> Mode:
    if spec.get("envFrom") == status.get("envFrom"):
        return Mode.SKIPPED
    a, b = _env_from_by_name(spec.get("envFrom")), _env_from_by_name(
        status.get("envFrom")
    )
    a.pop(FEATURES_CONFIG_MAP, None)
    b.pop(FEATURES_CONFIG_MAP, None)
    if a != b:
        return Mode.SKIPPED
    adopt_field(spec, status, "envFrom")
    return Mode.SILENT


def _compare_server(
    spec: dict[str, Any], status: dict[str, Any], group: ServerGroup, plan: Plan
) -> Mode:
    mode = Mode.SKIPPED
    if is_only_log_level_changed(
        spec.get("command") or [], status.get("command") or []
    ):
        plan.append(Action.log_level_update(spec["name"]))
        adopt_field(spec, status, "command")
        mode = mode.combine(Mode.IN_PLACE)

    mode = mode.combine(compare_volume_mounts(spec, status, group=group))
    mode = mode.combine(compare_probes(spec, status))
    mode = mode.combine(compare_envs(spec, status))
    mode = mode.combine(_compare_env_from(spec, status))

    if spec.get("ports") != status.get("ports"):
        adopt_field(spec, status, "ports")
        mode = mode.combine(Mode.SILENT)
    return mode


def _compare_other(
    spec: dict[str, Any], status: dict[str, Any], group: ServerGroup, plan: Plan
) -> Mode:
    mode = Mode.SKIPPED
    if spec.get("image") != status.get("image"):
        plan.append(Action.image_update(spec["name"], spec.get("image", "")))
        adopt_field(spec, status, "image")
        mode = mode.combine(Mode.IN_PLACE)

    mode = mode.combine(compare_volume_mounts(spec, status, group=group))
    mode = mode.combine(compare_envs(spec, status))
    return mode


def compare_containers(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    """Compare the containers of two pod specs pairwise.

    Nothing is compared when either side has no container or the counts
    differ. Pairs with different names are left to the final checksum.
    """
    a, b = spec.get("containers") or [], status.get("containers") or []
    if not a or len(a) != len(b):
        return Comparison.skipped(status)

    mode = Mode.SKIPPED
    plan: Plan = []
    for ac, bc in zip(a, b):
        name = ac.get("name")
        if name != bc.get("name"):
            continue
        if name == SERVER_CONTAINER:
            mode = mode.combine(_compare_server(ac, bc, group, plan))
        else:
            mode = mode.combine(_compare_other(ac, bc, group, plan))
        if name in RESERVED_CONTAINERS:
            mode = mode.combine(compare_lifecycle(ac, bc))

    return Comparison(mode, plan, status)


def _without_reserved(containers: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [c for c in containers if c.get("name") not in RESERVED_INIT_CONTAINERS]


def compare_init_containers(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    """Compare init containers according to the group's init container mode.

    In ``ignore`` mode every difference is adopted. In ``update`` mode the
    lists are adopted only when they are equal once reserved init containers
    are left out.
    """
    a, b = spec.get("initContainers") or [], status.get("initContainers") or []
    if canonical_json(a) == canonical_json(b):
        # An empty list and a missing field describe the same pod.
        if spec.get("initContainers") != status.get("initContainers"):
            adopt_field(spec, status, "initContainers")
            return Comparison(Mode.SILENT, [], status)
        return Comparison.skipped(status)

    mode = deployment.group_spec(group).init_containers_mode
    if mode is InitContainersMode.IGNORE or canonical_json(
        _without_reserved(a)
    ) == canonical_json(_without_reserved(b)):
        adopt_field(spec, status, "initContainers")
        return Comparison(Mode.SILENT, [], status)

    return Comparison.skipped(status)
