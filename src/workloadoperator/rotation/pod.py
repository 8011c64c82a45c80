"""Comparators for pod-level fields."""

from __future__ import annotations

__all__ = (
    "adopt_field",
    "compare_affinity",
    "compare_pod",
    "compare_tolerations",
)

import copy
from typing import Any

from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import DeploymentSpec, ServerGroup
from workloadoperator.rotation.plan import Comparison
from workloadoperator.rotation.templates import content_hash


def adopt_field(spec: dict[str, Any], status: dict[str, Any], key: str) -> None:
    """Replace ``status[key]`` with a copy of ``spec[key]``; a field absent
    from ``spec`` is removed from ``status``.
    """
    if key in spec:
        status[key] = copy.deepcopy(spec[key])
    else:
        status.pop(key, None)


def _adopt_if_changed(
    spec: dict[str, Any], status: dict[str, Any], key: str
) -> Mode:
    if spec.get(key) == status.get(key):
        return Mode.SKIPPED
    adopt_field(spec, status, key)
    return Mode.SILENT


def compare_pod(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    """Silently adopt the scheduler name, the termination grace period and a
    switch between an absent and an empty security context.
    """
    mode = Mode.SKIPPED
    mode = mode.combine(_adopt_if_changed(spec, status, "schedulerName"))
    mode = mode.combine(
        _adopt_if_changed(spec, status, "terminationGracePeriodSeconds")
    )

    a, b = spec.get("securityContext"), status.get("securityContext")
    if a != b and a in (None, {}) and b in (None, {}):
        adopt_field(spec, status, "securityContext")
        mode = mode.combine(Mode.SILENT)

    return Comparison(mode, [], status)


def compare_tolerations(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    return Comparison(_adopt_if_changed(spec, status, "tolerations"), [], status)


def compare_affinity(
    deployment: DeploymentSpec,
    group: ServerGroup,
    spec: dict[str, Any],
    status: dict[str, Any],
) -> Comparison:
    """Silently adopt any affinity change, detected by content hash."""
    if content_hash(spec.get("affinity")) == content_hash(status.get("affinity")):
        return Comparison.skipped(status)
    adopt_field(spec, status, "affinity")
    return Comparison(Mode.SILENT, [], status)
