"""Checksummed pod templates of workload members."""

from __future__ import annotations

__all__ = (
    "WorkloadUnitTemplate",
    "canonical_json",
    "checksum_pod_spec",
    "checksum_pod_template",
    "content_hash",
)

import copy
import hashlib
import json
from dataclasses import dataclass
from typing import Any


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value]
    return value


def canonical_json(value: Any) -> str:
    """Serialize ``value`` with sorted keys, compact separators and without
    `None` fields.

    Empty mappings and lists are kept, so ``{}`` and a missing field differ.
    """
    return json.dumps(
        _drop_nulls(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def content_hash(value: Any) -> str:
    """SHA-256 hex digest of the canonical JSON of ``value``."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def checksum_pod_spec(pod_spec: dict[str, Any] | None) -> str:
    return content_hash(pod_spec or {})


def checksum_pod_template(pod_template: dict[str, Any]) -> str:
    """Checksum of a pod template; only its ``spec`` is covered, so label
    and annotation changes never change the checksum.
    """
    return checksum_pod_spec(pod_template.get("spec"))


@dataclass
class WorkloadUnitTemplate:
    """A member's pod template together with its checksum.

    Attributes
    ----------
    pod_template : `dict`
        A ``PodTemplateSpec`` manifest, with ``metadata`` and ``spec``.
    checksum : `str`
        Checksum of ``pod_template`` as computed by `checksum_pod_template`.
    """

    pod_template: dict[str, Any]
    checksum: str

    @classmethod
    def from_pod_template(cls, pod_template: dict[str, Any]) -> WorkloadUnitTemplate:
        return cls(
            pod_template=pod_template,
            checksum=checksum_pod_template(pod_template),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkloadUnitTemplate | None:
        """Read a template stored as ``{"podSpec": ..., "checksum": ...}``.

        A missing checksum is computed from the pod template.
        """
        if not data or data.get("podSpec") is None:
            return None
        pod_template = data["podSpec"]
        checksum = data.get("checksum") or checksum_pod_template(pod_template)
        return cls(pod_template=pod_template, checksum=checksum)

    @property
    def pod_spec(self) -> dict[str, Any]:
        return self.pod_template.setdefault("spec", {})

    def rechecksum(self) -> str:
        return checksum_pod_template(self.pod_template)

    def copy(self) -> WorkloadUnitTemplate:
        return WorkloadUnitTemplate(
            pod_template=copy.deepcopy(self.pod_template),
            checksum=self.checksum,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"podSpec": self.pod_template, "checksum": self.checksum}
