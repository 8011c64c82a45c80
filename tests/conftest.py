"""Shared fixtures, including an in-memory stand-in for the Kubernetes client.

`FakeCluster` answers the calls that `workloadoperator.k8s` makes through the
generated client APIs (``CoreV1Api().list_namespaced_pod(...)``,
``CustomObjectsApi().get_namespaced_custom_object(...)``, ...) from plain
dicts, so the inspector and mod client can be tested without a cluster.
"""

from __future__ import annotations

import copy
import json
import re
from collections import defaultdict
from types import SimpleNamespace
from typing import Any

import kubernetes.client
import pytest
import yaml
from kubernetes.client.exceptions import ApiException

from workloadoperator.config import OperatorConfig
from workloadoperator.inspector import kinds
from workloadoperator.inspector.inspector import Inspector
from workloadoperator.inspector.metrics import ClientMetrics

_TYPED_RESOURCES = {
    kind.resource: kind.plural
    for kind in kinds.ALL_KINDS
    if kind.resource is not None
}
_METHOD = re.compile(
    r"^(?P<verb>list|read|get|create|replace|patch|delete)_"
    r"(?P<namespaced>namespaced_)?(?P<resource>.+?)(?P<status>_status)?$"
)


class FakeResponse:
    """Mimics the raw urllib3 response returned with
    ``_preload_content=False``.
    """

    def __init__(self, payload: Any) -> None:
        self.data = json.dumps(payload).encode("utf-8")


class FakeClock:
    """A manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeApi:
    def __init__(self, cluster: FakeCluster, api_class: str) -> None:
        self._cluster = cluster
        self._api_class = api_class

    def __getattr__(self, method: str) -> Any:
        match = _METHOD.match(method)
        real_api = getattr(kubernetes.client, self._api_class)
        if match is None or not hasattr(real_api, method):
            raise AttributeError(f"{self._api_class} has no method {method}")

        def call(**kwargs: Any) -> FakeResponse:
            return self._cluster.handle(
                self._api_class,
                method,
                verb=match.group("verb"),
                resource=match.group("resource"),
                status=bool(match.group("status")),
                kwargs=kwargs,
            )

        return call


class FakeVersionApi:
    def __init__(self, cluster: FakeCluster) -> None:
        self._cluster = cluster

    def get_code(self, **kwargs: Any) -> SimpleNamespace:
        self._cluster.calls.append(("VersionApi", "get_code", kwargs))
        error = self._cluster.failures.get(("get_code", None))
        if error is not None:
            raise error
        return SimpleNamespace(git_version=self._cluster.git_version)


class FakeCluster:
    """Objects of one namespace, served through fake client APIs.

    Attributes
    ----------
    objects : `dict`
        Objects keyed by plural resource name, then by object name.
    calls : `list`
        Every call as ``(api class, method, kwargs)``.
    failures : `dict`
        Exceptions to raise, keyed by ``(method, plural)``; a `None` plural
        matches every resource.
    git_version : `str`
        Version reported by ``VersionApi().get_code()``.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.failures: dict[tuple[str, str | None], BaseException] = {}
        self.git_version = "v1.27.3"

    def __getattr__(self, name: str) -> Any:
        # Only API classes that the installed client actually generates.
        if name.endswith("Api") and hasattr(kubernetes.client, name):
            return lambda: FakeApi(self, name)
        raise AttributeError(name)

    def VersionApi(self) -> FakeVersionApi:  # noqa: N802
        return FakeVersionApi(self)

    def add(self, kind: kinds.ObjectKind, *objs: dict[str, Any]) -> None:
        for obj in objs:
            self.objects[kind.plural][obj["metadata"]["name"]] = obj

    def add_yaml(self, kind: kinds.ObjectKind, manifest: str) -> None:
        self.add(kind, *yaml.safe_load_all(manifest))

    def fail(
        self, method: str, error: BaseException, plural: str | None = None
    ) -> None:
        self.failures[(method, plural)] = error

    def count(self, method: str) -> int:
        return sum(1 for _, m, _ in self.calls if m == method)

    def handle(
        self,
        api_class: str,
        method: str,
        *,
        verb: str,
        resource: str,
        status: bool,
        kwargs: dict[str, Any],
    ) -> FakeResponse:
        self.calls.append((api_class, method, kwargs))
        if resource == "custom_object":
            plural = kwargs["plural"]
        else:
            plural = _TYPED_RESOURCES[resource]

        error = self.failures.get((method, plural)) or self.failures.get(
            (method, None)
        )
        if error is not None:
            raise error
        store = self.objects[plural]

        if verb == "list":
            items = sorted(store.values(), key=lambda o: o["metadata"]["name"])
            offset = int(kwargs.get("_continue") or 0)
            limit = kwargs.get("limit") or len(items)
            page = items[offset : offset + limit]
            more = offset + limit < len(items)
            return FakeResponse(
                {
                    "items": page,
                    "metadata": {"continue": str(offset + limit) if more else ""},
                }
            )

        if verb in ("create", "replace"):
            body = copy.deepcopy(kwargs["body"])
            name = body["metadata"]["name"]
            if verb == "create" and name in store:
                raise ApiException(status=409, reason="AlreadyExists")
            if verb == "replace" and name not in store:
                raise ApiException(status=404, reason="Not Found")
            if status:
                store[name]["status"] = body.get("status")
                return FakeResponse(store[name])
            store[name] = body
            return FakeResponse(body)

        name = kwargs["name"]
        if name not in store:
            raise ApiException(status=404, reason="Not Found")
        if verb in ("read", "get"):
            return FakeResponse(store[name])
        if verb == "patch":
            if isinstance(kwargs["body"], dict):
                store[name].update(copy.deepcopy(kwargs["body"]))
            return FakeResponse(store[name])
        del store[name]
        return FakeResponse({"kind": "Status", "status": "Success"})


def make_pod(name: str, **metadata: Any) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": "test", **metadata},
        "spec": {"containers": [{"name": "server", "image": "server:1.0"}]},
    }


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(namespace="test", throttle_default=30, refresh_threads=4)


@pytest.fixture
def metrics() -> ClientMetrics:
    return ClientMetrics()


@pytest.fixture
def inspector(
    cluster: FakeCluster,
    config: OperatorConfig,
    clock: FakeClock,
    metrics: ClientMetrics,
) -> Inspector:
    return Inspector(
        k8s_client=cluster, config=config, clock=clock, metrics=metrics
    )
