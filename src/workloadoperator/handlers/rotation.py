"""Kopf timer that evaluates the rotation decision of every member of a
WorkloadDeployment.
"""

from __future__ import annotations

__all__ = ("evaluate_member", "inspect_members", "owned_by")

from collections.abc import Callable
from typing import Any

import kopf
from kubernetes.client.exceptions import ApiException

from workloadoperator import state
from workloadoperator.errors import UnsupportedVersionError
from workloadoperator.inspector.inspector import Inspector
from workloadoperator.rotation.engine import (
    RotationDecision,
    is_rotation_required,
)
from workloadoperator.rotation.mode import Mode
from workloadoperator.rotation.models import (
    DeploymentSpec,
    MemberStatus,
    ServerGroup,
)
from workloadoperator.rotation.templates import WorkloadUnitTemplate
from workloadoperator.startup import get_inspector


def owned_by(deployment_name: str) -> Callable[[dict[str, Any]], bool]:
    """Filter members that belong to the deployment ``deployment_name``."""

    def _filter(member: dict[str, Any]) -> bool:
        spec = member.get("spec") or {}
        return spec.get("deploymentName") == deployment_name

    return _filter


def evaluate_member(
    *,
    inspector: Inspector,
    deployment: DeploymentSpec,
    member: dict[str, Any],
) -> RotationDecision:
    """Evaluate the rotation decision of a WorkloadMember from the objects
    cached by ``inspector``.
    """
    spec = member.get("spec") or {}
    status = member.get("status") or {}
    member_status = MemberStatus.from_dict(status)
    try:
        group = ServerGroup(spec.get("group", ServerGroup.SINGLE.value))
    except ValueError as err:
        return RotationDecision(
            mode=Mode.SKIPPED,
            reason=f"Unknown server group {spec.get('group')!r}",
            error=err,
        )

    pod = None
    if member_status.pod_name:
        pod = inspector.pods.get_simple(member_status.pod_name)
    pvc = None
    if member_status.persistent_volume_claim_name:
        pvc = inspector.persistent_volume_claims.get_simple(
            member_status.persistent_volume_claim_name
        )

    return is_rotation_required(
        deployment=deployment,
        member=member_status,
        group=group,
        pod=pod,
        spec=WorkloadUnitTemplate.from_dict(spec.get("template")),
        status=WorkloadUnitTemplate.from_dict(status.get("template")),
        pvc=pvc,
    )


@kopf.timer(  # type: ignore[arg-type]
    "workloadoperator.io",
    "v1",
    "workloaddeployments",
    interval=state.config.reconcile_interval,
)
def inspect_members(
    *,
    spec: dict[str, Any],
    name: str,
    namespace: str,
    logger: Any,
    **kwargs: Any,
) -> dict[str, Any]:
    """Refresh the namespace inspector and evaluate the rotation decision of
    each member of a WorkloadDeployment.

    Parameters
    ----------
    spec : `dict`
        The ``spec`` field of the ``WorkloadDeployment`` resource.
    name : `str`
        The name of the ``WorkloadDeployment`` resource.
    namespace : `str`
        The Kubernetes namespace of the ``WorkloadDeployment`` resource.
    logger : `Any`
        The kopf logger.
    **kwargs : `Any`
        Additional keyword arguments provided by kopf.

    Returns
    -------
    summary : `dict`
        Decision of each member, keyed by member name. Kopf stores it in the
        ``status`` of the deployment.
    """
    inspector = get_inspector(namespace)
    try:
        inspector.refresh(timeout=state.config.reconcile_interval)
    except UnsupportedVersionError:
        raise
    except ApiException as err:
        raise kopf.TemporaryError(
            f"Unable to refresh the inspector of {namespace}: {err.reason}",
            delay=state.config.reconcile_interval,
        ) from err

    deployment = DeploymentSpec.from_dict(spec)
    members: dict[str, Any] = {}
    for member in inspector.members.filter(owned_by(name)):
        member_name = member["metadata"]["name"]
        decision = evaluate_member(
            inspector=inspector, deployment=deployment, member=member
        )
        if decision.error is not None:
            logger.warning(
                f"Rotation check of {member_name} failed: {decision.error}"
            )
        else:
            logger.info(
                f"Rotation check of {member_name}: {decision.mode.name} "
                f"({decision.reason})"
            )
        summary: dict[str, Any] = {
            "mode": decision.mode.name,
            "reason": decision.reason,
            "actions": [action.to_dict() for action in decision.plan],
        }
        if decision.error is not None:
            summary["error"] = str(decision.error)
        members[member_name] = summary
    return {"members": members}
