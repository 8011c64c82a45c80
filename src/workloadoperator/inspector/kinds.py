"""Catalogue of the object kinds tracked by the inspector."""

from __future__ import annotations

__all__ = (
    "ALL_KINDS",
    "CLUSTER_SYNCHRONIZATION",
    "CONFIG_MAP",
    "CUSTOM_OBJECTS_API",
    "ENDPOINTS",
    "GroupVersionKind",
    "GroupVersionResource",
    "NODE",
    "ObjectKind",
    "PERSISTENT_VOLUME",
    "PERSISTENT_VOLUME_CLAIM",
    "POD",
    "POD_DISRUPTION_BUDGET",
    "SECRET",
    "SERVICE",
    "SERVICE_ACCOUNT",
    "SERVICE_MONITOR",
    "WORKLOAD_MEMBER",
    "WORKLOAD_TASK",
    "find_kind",
)

from dataclasses import dataclass
from typing import NamedTuple

CRD_GROUP = "workloadoperator.io"
CRD_VERSION = "v1"
CUSTOM_OBJECTS_API = "CustomObjectsApi"


class GroupVersionKind(NamedTuple):
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


class GroupVersionResource(NamedTuple):
    group: str
    version: str
    resource: str


@dataclass(frozen=True)
class ObjectKind:
    """Static description of one kind of Kubernetes object.

    Attributes
    ----------
    name : `str`
        Registry name; also the key of the kind in a snapshot.
    kind : `str`
        The ``kind`` of the objects.
    group : `str`
        API group, empty for the core group.
    plural : `str`
        Plural resource name.
    versions : `tuple`
        Pairs of ``(version, client API class)``, preferred version first.
        Custom kinds, and built-in versions the client no longer generates
        (``policy/v1beta1``), use ``CustomObjectsApi``.
    resource : `str` or `None`
        Snake-case suffix of the typed client methods (``pod`` for
        ``list_namespaced_pod``). `None` for custom kinds.
    namespaced : `bool`
        Whether objects live in a namespace.
    has_status : `bool`
        Whether the kind exposes a status subresource.
    """

    name: str
    kind: str
    group: str
    plural: str
    versions: tuple[tuple[str, str], ...]
    resource: str | None = None
    namespaced: bool = True
    has_status: bool = True

    @property
    def version(self) -> str:
        """The preferred API version."""
        return self.versions[0][0]

    def is_custom(self, version: str | None = None) -> bool:
        """Return `True` if ``version`` is served through the generic
        ``CustomObjectsApi`` instead of a typed API.
        """
        return self.api_class(version) == CUSTOM_OBJECTS_API

    def supports(self, version: str) -> bool:
        return any(v == version for v, _ in self.versions)

    def api_class(self, version: str | None = None) -> str:
        version = version or self.version
        for v, api_class in self.versions:
            if v == version:
                return api_class
        raise ValueError(f"{self.kind} does not support version {version}")

    def gvk(self, version: str | None = None) -> GroupVersionKind:
        return GroupVersionKind(self.group, version or self.version, self.kind)

    def gvr(self, version: str | None = None) -> GroupVersionResource:
        return GroupVersionResource(
            self.group, version or self.version, self.plural
        )


POD = ObjectKind(
    name="pods",
    kind="Pod",
    group="",
    plural="pods",
    versions=(("v1", "CoreV1Api"),),
    resource="pod",
)

SECRET = ObjectKind(
    name="secrets",
    kind="Secret",
    group="",
    plural="secrets",
    versions=(("v1", "CoreV1Api"),),
    resource="secret",
    has_status=False,
)

CONFIG_MAP = ObjectKind(
    name="configMaps",
    kind="ConfigMap",
    group="",
    plural="configmaps",
    versions=(("v1", "CoreV1Api"),),
    resource="config_map",
    has_status=False,
)

PERSISTENT_VOLUME = ObjectKind(
    name="persistentVolumes",
    kind="PersistentVolume",
    group="",
    plural="persistentvolumes",
    versions=(("v1", "CoreV1Api"),),
    resource="persistent_volume",
    namespaced=False,
)

PERSISTENT_VOLUME_CLAIM = ObjectKind(
    name="persistentVolumeClaims",
    kind="PersistentVolumeClaim",
    group="",
    plural="persistentvolumeclaims",
    versions=(("v1", "CoreV1Api"),),
    resource="persistent_volume_claim",
)

SERVICE = ObjectKind(
    name="services",
    kind="Service",
    group="",
    plural="services",
    versions=(("v1", "CoreV1Api"),),
    resource="service",
)

SERVICE_ACCOUNT = ObjectKind(
    name="serviceAccounts",
    kind="ServiceAccount",
    group="",
    plural="serviceaccounts",
    versions=(("v1", "CoreV1Api"),),
    resource="service_account",
    has_status=False,
)

ENDPOINTS = ObjectKind(
    name="endpoints",
    kind="Endpoints",
    group="",
    plural="endpoints",
    versions=(("v1", "CoreV1Api"),),
    resource="endpoints",
    has_status=False,
)

NODE = ObjectKind(
    name="nodes",
    kind="Node",
    group="",
    plural="nodes",
    versions=(("v1", "CoreV1Api"),),
    resource="node",
    namespaced=False,
)

POD_DISRUPTION_BUDGET = ObjectKind(
    name="podDisruptionBudgets",
    kind="PodDisruptionBudget",
    group="policy",
    plural="poddisruptionbudgets",
    versions=(("v1", "PolicyV1Api"), ("v1beta1", CUSTOM_OBJECTS_API)),
    resource="pod_disruption_budget",
)

SERVICE_MONITOR = ObjectKind(
    name="serviceMonitors",
    kind="ServiceMonitor",
    group="monitoring.coreos.com",
    plural="servicemonitors",
    versions=(("v1", CUSTOM_OBJECTS_API),),
    has_status=False,
)

WORKLOAD_MEMBER = ObjectKind(
    name="workloadMembers",
    kind="WorkloadMember",
    group=CRD_GROUP,
    plural="workloadmembers",
    versions=((CRD_VERSION, CUSTOM_OBJECTS_API),),
)

WORKLOAD_TASK = ObjectKind(
    name="workloadTasks",
    kind="WorkloadTask",
    group=CRD_GROUP,
    plural="workloadtasks",
    versions=((CRD_VERSION, CUSTOM_OBJECTS_API),),
)

CLUSTER_SYNCHRONIZATION = ObjectKind(
    name="clusterSynchronizations",
    kind="ClusterSynchronization",
    group=CRD_GROUP,
    plural="clustersynchronizations",
    versions=((CRD_VERSION, CUSTOM_OBJECTS_API),),
)

ALL_KINDS: tuple[ObjectKind, ...] = (
    POD,
    SECRET,
    CONFIG_MAP,
    PERSISTENT_VOLUME,
    PERSISTENT_VOLUME_CLAIM,
    SERVICE,
    SERVICE_ACCOUNT,
    ENDPOINTS,
    NODE,
    POD_DISRUPTION_BUDGET,
    SERVICE_MONITOR,
    WORKLOAD_MEMBER,
    WORKLOAD_TASK,
    CLUSTER_SYNCHRONIZATION,
)


def find_kind(group: str, kind: str) -> ObjectKind | None:
    """Look up a catalogued kind by API group and ``kind``."""
    for candidate in ALL_KINDS:
        if candidate.group == group and candidate.kind == kind:
            return candidate
    return None
