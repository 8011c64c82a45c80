"""Typed views over the parts of the WorkloadDeployment and WorkloadMember
resources that the rotation engine reads.
"""

from __future__ import annotations

__all__ = (
    "Condition",
    "ConditionType",
    "DeploymentSpec",
    "InitContainersMode",
    "MemberStatus",
    "PropagationMode",
    "READY_PHASES",
    "ServerGroup",
    "ServerGroupSpec",
)

import enum
from dataclasses import dataclass, field
from typing import Any


class ServerGroup(str, enum.Enum):
    """Role of a member inside a workload deployment."""

    SINGLE = "single"
    AGENTS = "agents"
    WORKERS = "workers"
    COORDINATORS = "coordinators"

    @property
    def is_external(self) -> bool:
        """Whether the group serves clients from outside the deployment."""
        return self in (ServerGroup.SINGLE, ServerGroup.COORDINATORS)


class InitContainersMode(str, enum.Enum):
    UPDATE = "update"
    IGNORE = "ignore"


class PropagationMode(str, enum.Enum):
    """When pending restarts are applied to running pods."""

    DEFAULT = "default"
    ALWAYS = "always"


@dataclass
class ServerGroupSpec:
    """Per-group settings of a deployment."""

    init_containers_mode: InitContainersMode = InitContainersMode.UPDATE

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ServerGroupSpec:
        data = data or {}
        mode = (data.get("initContainers") or {}).get("mode")
        return cls(
            init_containers_mode=InitContainersMode(
                mode or InitContainersMode.UPDATE.value
            )
        )


@dataclass
class DeploymentSpec:
    """The ``spec`` of a WorkloadDeployment."""

    mode: str = "cluster"
    propagation_mode: PropagationMode = PropagationMode.DEFAULT
    groups: dict[ServerGroup, ServerGroupSpec] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DeploymentSpec:
        """Parse a deployment ``spec``; unknown fields are ignored.

        Group settings are read from the key of the group's name, for
        example ``spec["coordinators"]["initContainers"]["mode"]``.
        """
        data = data or {}
        propagation = (data.get("rotation") or {}).get("propagationMode")
        groups = {
            group: ServerGroupSpec.from_dict(data[group.value])
            for group in ServerGroup
            if group.value in data
        }
        return cls(
            mode=data.get("mode", "cluster"),
            propagation_mode=PropagationMode(
                propagation or PropagationMode.DEFAULT.value
            ),
            groups=groups,
        )

    def group_spec(self, group: ServerGroup) -> ServerGroupSpec:
        return self.groups.get(group) or ServerGroupSpec()


READY_PHASES = frozenset({"Created", "Running"})
"""Member phases in which the member's pod is up and may be rotated."""


class ConditionType(str, enum.Enum):
    READY = "Ready"
    TERMINATING = "Terminating"
    TERMINATED = "Terminated"
    PENDING_RESTART = "PendingRestart"
    PENDING_TLS_ROTATION = "PendingTLSRotation"


@dataclass(frozen=True)
class Condition:
    type: str
    status: bool
    reason: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        status = data.get("status")
        return cls(
            type=data["type"],
            status=status is True or str(status).lower() == "true",
            reason=data.get("reason") or "",
        )


@dataclass
class MemberStatus:
    """The ``status`` of a WorkloadMember.

    Attributes
    ----------
    id : `str`
        Member identifier.
    phase : `str`
        Lifecycle phase reported by the operator.
    conditions : `list` of `Condition`
        Member conditions.
    pod_name : `str`
        Name of the member's pod.
    pod_uid : `str`
        UID of the pod the member was last bound to.
    pod_spec_version : `str`
        Checksum of the pod template the pod was created from.
    persistent_volume_claim_name : `str`
        Name of the member's data volume claim, if any.
    """

    id: str
    phase: str = ""
    conditions: list[Condition] = field(default_factory=list)
    pod_name: str = ""
    pod_uid: str = ""
    pod_spec_version: str = ""
    persistent_volume_claim_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MemberStatus:
        data = data or {}
        pod = data.get("pod") or {}
        pvc = data.get("persistentVolumeClaim") or {}
        return cls(
            id=data.get("id", ""),
            phase=data.get("phase", ""),
            conditions=[
                Condition.from_dict(c) for c in data.get("conditions") or []
            ],
            pod_name=pod.get("name", ""),
            pod_uid=pod.get("uid", ""),
            pod_spec_version=pod.get("specVersion", ""),
            persistent_volume_claim_name=pvc.get("name", ""),
        )

    def is_phase_ready(self) -> bool:
        return self.phase.capitalize() in READY_PHASES

    def is_true(self, condition: ConditionType | str) -> bool:
        name = condition.value if isinstance(condition, ConditionType) else condition
        return any(c.type == name and c.status for c in self.conditions)
