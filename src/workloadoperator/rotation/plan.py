"""In-place remediation actions and comparator results."""

from __future__ import annotations

__all__ = ("Action", "ActionType", "Comparison", "Plan")

import enum
from dataclasses import dataclass, field
from typing import Any

from workloadoperator.rotation.mode import Mode


class ActionType(str, enum.Enum):
    RUNTIME_CONTAINER_IMAGE_UPDATE = "RuntimeContainerImageUpdate"
    RUNTIME_CONTAINER_ARGS_LOG_LEVEL_UPDATE = "RuntimeContainerArgsLogLevelUpdate"


@dataclass(frozen=True)
class Action:
    """One named remediation step with its parameters."""

    type: ActionType
    params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def image_update(cls, name: str, image: str) -> Action:
        return cls(
            ActionType.RUNTIME_CONTAINER_IMAGE_UPDATE,
            {"name": name, "image": image},
        )

    @classmethod
    def log_level_update(cls, name: str) -> Action:
        return cls(
            ActionType.RUNTIME_CONTAINER_ARGS_LOG_LEVEL_UPDATE, {"name": name}
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "params": dict(self.params)}


Plan = list[Action]
"""Ordered actions of an in-place rotation."""


@dataclass
class Comparison:
    """Result of one comparator.

    Attributes
    ----------
    mode : `Mode`
        Severity the comparator assigns to the differences it inspected.
    plan : `list` of `Action`
        Actions required for an in-place rotation.
    status : `dict`
        The status pod spec, with every silently adopted field replaced by
        the desired value.
    """

    mode: Mode
    plan: Plan
    status: dict[str, Any]

    @classmethod
    def skipped(cls, status: dict[str, Any]) -> Comparison:
        return cls(Mode.SKIPPED, [], status)
