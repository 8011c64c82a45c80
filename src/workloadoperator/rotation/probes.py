"""Comparator for the probes of the server container."""

from __future__ import annotations

__all__ = (
    "LIFECYCLE_BINARY",
    "compare_probes",
    "is_derivative",
    "is_managed_probe",
)

import copy
from typing import Any

from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.pod import adopt_field

LIFECYCLE_BINARY = "/lifecycle/tools/workload-operator"
"""Binary injected into every member pod that runs the managed probes."""


def is_managed_probe(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Return `True` if both probes are run by the lifecycle binary."""
    commands = [((p.get("exec") or {}).get("command") or []) for p in (a, b)]
    return all(c and c[0] == LIFECYCLE_BINARY for c in commands)


def _is_unset(value: Any) -> bool:
    return value is None or value == "" or value == {} or value == []


def is_derivative(spec: Any, status: Any) -> bool:
    """Return `True` if every field set in ``spec`` has the same value in
    ``status``.

    Unset (`None` or empty) fields of ``spec`` are ignored, so a status that
    carries server-side defaults is still derived from the spec.
    """
    if _is_unset(spec):
        return True
    if isinstance(spec, dict):
        if not isinstance(status, dict):
            return False
        return all(is_derivative(v, status.get(k)) for k, v in spec.items())
    if isinstance(spec, list):
        if not isinstance(status, list) or len(spec) != len(status):
            return False
        return all(is_derivative(a, b) for a, b in zip(spec, status))
    return spec == status


def _compare_managed(
    spec: dict[str, Any],
    status: dict[str, Any],
    key: str,
    normalized: tuple[str, ...],
) -> Mode:
    a, b = spec.get(key), status.get(key)
    if a == b or a is None or b is None or not is_managed_probe(a, b):
        return Mode.SKIPPED

    q = copy.deepcopy(b)
    for field in normalized:
        adopt_field(a, q, field)
    if not is_derivative(a, q):
        return Mode.SKIPPED

    adopt_field(spec, status, key)
    return Mode.SILENT


def compare_probes(spec: dict[str, Any], status: dict[str, Any]) -> Mode:
    """Compare the probes of the server container.

    The startup probe is always adopted. A managed readiness probe is adopted
    when it differs only in its ``exec`` script; a managed liveness probe when
    it differs only in its ``exec`` script and ``failureThreshold``.
    """
    mode = Mode.SKIPPED
    if spec.get("startupProbe") != status.get("startupProbe"):
        adopt_field(spec, status, "startupProbe")
        mode = mode.combine(Mode.SILENT)
    mode = mode.combine(
        _compare_managed(spec, status, "readinessProbe", ("exec",))
    )
    mode = mode.combine(
        _compare_managed(
            spec, status, "livenessProbe", ("exec", "failureThreshold")
        )
    )
    return mode
