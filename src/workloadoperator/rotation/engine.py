"""Decide how a workload member's pod has to be rotated."""

from __future__ import annotations

__all__ = (
    "COMPARATORS",
    "ROTATE_ANNOTATION",
    "RotationDecision",
    "compare",
    "is_rotation_required",
)

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from workloadoperator.rotation.containers import (
    compare_containers,
    compare_init_containers,
)
from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import (
    ConditionType,
    DeploymentSpec,
    MemberStatus,
    PropagationMode,
    ServerGroup,
)
from workloadoperator.rotation.plan import Comparison, Plan
from workloadoperator.rotation.pod import (
    compare_affinity,
    compare_pod,
    compare_tolerations,
)
from workloadoperator.rotation.templates import WorkloadUnitTemplate
from workloadoperator.rotation.volumes import compare_volumes

logger = structlog.getLogger(__name__)

ROTATE_ANNOTATION = "deployment.workloadoperator.io/rotate"
"""Pod annotation that requests an immediate rotation."""

Comparator = Callable[
    [DeploymentSpec, ServerGroup, dict[str, Any], dict[str, Any]], Comparison
]

COMPARATORS: tuple[Comparator, ...] = (
    compare_pod,
    compare_affinity,
    compare_volumes,
    compare_containers,
    compare_init_containers,
    compare_tolerations,
)


@dataclass
class RotationDecision:
    """Outcome of `is_rotation_required`.

    Attributes
    ----------
    mode : `Mode`
        How the member's pod has to be rotated.
    plan : `list` of `Action`
        Actions to run for an in-place rotation.
    reason : `str`
        Human readable explanation of the decision.
    error : `Exception`, optional
        Set when the comparison failed; the mode is then `Mode.SKIPPED`.
    template : `WorkloadUnitTemplate`, optional
        The status template with silently adopted fields applied, when the
        comparison ran.
    """

    mode: Mode
    plan: Plan = field(default_factory=list)
    reason: str = ""
    error: Exception | None = None
    template: WorkloadUnitTemplate | None = None


def compare(
    deployment: DeploymentSpec,
    member: MemberStatus,
    group: ServerGroup,
    spec: WorkloadUnitTemplate,
    status: WorkloadUnitTemplate,
) -> tuple[Mode, Plan, WorkloadUnitTemplate]:
    """Compare the desired template with the applied one.

    ``status`` is never modified; comparators work on a copy whose adopted
    fields are returned as the third element.

    Raises
    ------
    Exception
        Any error raised by a comparator or by the checksum.
    """
    if spec.checksum == status.checksum:
        return Mode.SKIPPED, [], status

    working = status.copy()
    mode = Mode.SILENT
    plan: Plan = []
    desired = spec.pod_template.get("spec") or {}
    pod_spec = working.pod_spec
    for comparator in COMPARATORS:
        result = comparator(deployment, group, desired, pod_spec)
        mode = mode.combine(result.mode)
        plan.extend(result.plan)
        pod_spec = result.status
    working.pod_template["spec"] = pod_spec

    working.checksum = working.rechecksum()
    if working.checksum != spec.checksum:
        logger.debug(
            "Pod needs rotation - templates does not match",
            member=member.id,
            spec_checksum=spec.checksum,
            status_checksum=working.checksum,
        )
        mode = mode.combine(Mode.GRACEFUL)
    return mode, plan, working


def _is_condition_true(obj: dict[str, Any] | None, condition: str) -> bool:
    for c in ((obj or {}).get("status") or {}).get("conditions") or []:
        if c.get("type") == condition and str(c.get("status")) == "True":
            return True
    return False


def _decision(mode: Mode, reason: str, member: MemberStatus) -> RotationDecision:
    logger.debug(reason, member=member.id, mode=mode.name)
    return RotationDecision(mode=mode, reason=reason)


def is_rotation_required(
    *,
    deployment: DeploymentSpec,
    member: MemberStatus,
    group: ServerGroup,
    pod: dict[str, Any] | None,
    spec: WorkloadUnitTemplate | None,
    status: WorkloadUnitTemplate | None,
    pvc: dict[str, Any] | None = None,
) -> RotationDecision:
    """Decide whether the pod of a member has to be rotated, and how.

    Parameters
    ----------
    deployment : `DeploymentSpec`
        Spec of the member's deployment.
    member : `MemberStatus`
        Status of the member.
    group : `ServerGroup`
        Group the member belongs to.
    pod : `dict`, optional
        The member's live pod, as cached by the inspector.
    spec : `WorkloadUnitTemplate`, optional
        Desired pod template.
    status : `WorkloadUnitTemplate`, optional
        Pod template the pod was last created from.
    pvc : `dict`, optional
        The member's persistent volume claim.

    Returns
    -------
    decision : `RotationDecision`
        The rotation mode, the in-place plan and the reason. Errors raised
        while comparing are returned in ``decision.error``, never raised.
    """
    if pod is None:
        return _decision(Mode.SKIPPED, "Pod is not found", member)
    if (
        not member.is_phase_ready()
        or not member.is_true(ConditionType.READY)
        or member.is_true(ConditionType.TERMINATING)
        or member.is_true(ConditionType.TERMINATED)
        or (pod.get("metadata") or {}).get("deletionTimestamp")
    ):
        return _decision(
            Mode.SKIPPED, "Rotation is not possible in the current state", member
        )

    if deployment.propagation_mode is PropagationMode.ALWAYS and member.is_true(
        ConditionType.PENDING_RESTART
    ):
        return _decision(Mode.ENFORCED, "Restart is pending", member)

    metadata = pod.get("metadata") or {}
    if metadata.get("uid") != member.pod_uid:
        return _decision(Mode.ENFORCED, "Pod UID does not match", member)

    if ROTATE_ANNOTATION in (metadata.get("annotations") or {}):
        return _decision(Mode.ENFORCED, "Rotation flag present", member)

    if not member.pod_spec_version:
        return _decision(Mode.ENFORCED, "Pod spec version is missing", member)

    if spec is None or status is None:
        return _decision(Mode.SKIPPED, "Pod templates are missing", member)

    if member.is_true(ConditionType.PENDING_TLS_ROTATION):
        return _decision(Mode.ENFORCED, "TLS rotation is pending", member)

    if pvc is not None and _is_condition_true(pvc, "FileSystemResizePending"):
        return _decision(Mode.ENFORCED, "PVC resize pending", member)

    try:
        mode, plan, template = compare(deployment, member, group, spec, status)
    except Exception as err:
        logger.error(
            "Error while comparing pod templates",
            member=member.id,
            error=str(err),
        )
        return RotationDecision(
            mode=Mode.SKIPPED,
            reason="Unable to compare pod templates",
            error=err,
        )

    if mode is Mode.SKIPPED:
        reason = "Pod templates are equal"
    else:
        reason = f"Pod templates differ, {mode.name.lower()} rotation"
    logger.debug(reason, member=member.id, mode=mode.name, actions=len(plan))
    return RotationDecision(
        mode=mode, plan=plan, reason=reason, template=template
    )
