"""Helpers for interacting with Kubernetes APIs.

Every call is dispatched from an `ObjectKind` to the matching method of the
official client: typed kinds use the ``<verb>_namespaced_<resource>`` naming
convention of the generated APIs, custom kinds go through
``CustomObjectsApi``. Payloads are always returned as raw `dict` manifests.
"""

from __future__ import annotations

__all__ = (
    "Deadline",
    "create_k8sclient",
    "create_object",
    "delete_object",
    "get_object",
    "get_server_version",
    "list_objects",
    "parse_server_version",
    "patch_object",
    "replace_object",
    "replace_object_status",
)

import json
import re
import threading
import time
from typing import TYPE_CHECKING, Any

import kubernetes

from workloadoperator.errors import RefreshCancelledError

if TYPE_CHECKING:
    from workloadoperator.inspector.kinds import ObjectKind


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.
    """
    try:
        kubernetes.config.load_incluster_config()
    except Exception:
        kubernetes.config.load_kube_config()
    kubernetes.client.configuration.assert_hostname = False
    return kubernetes.client


class Deadline:
    """Time budget and cancellation flag shared by the calls of one refresh.

    Parameters
    ----------
    timeout : `float`, optional
        Seconds the whole operation may take. `None` means unbounded.
    request_timeout : `float`, optional
        Upper bound for a single request.
    cancel : `threading.Event`, optional
        When set, the next call raises `RefreshCancelledError`.
    """

    def __init__(
        self,
        timeout: float | None = None,
        *,
        request_timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._expires = None if timeout is None else time.monotonic() + timeout
        self._request_timeout = request_timeout
        self._cancel = cancel

    def request_timeout(self) -> float | None:
        """Return the timeout for the next request.

        Raises
        ------
        RefreshCancelledError
            Raised if the caller cancelled the operation.
        TimeoutError
            Raised if the deadline has passed.
        """
        if self._cancel is not None and self._cancel.is_set():
            raise RefreshCancelledError("refresh cancelled by caller")
        if self._expires is None:
            return self._request_timeout
        remaining = self._expires - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("deadline exceeded")
        if self._request_timeout is None:
            return remaining
        return min(remaining, self._request_timeout)


def _api(k8s_client: Any, kind: ObjectKind, version: str | None) -> Any:
    return getattr(k8s_client, kind.api_class(version))()


def _typed_method(api: Any, verb: str, kind: ObjectKind, suffix: str = "") -> Any:
    scope = "namespaced_" if kind.namespaced else ""
    return getattr(api, f"{verb}_{scope}{kind.resource}{suffix}")


def _scope_kwargs(kind: ObjectKind, namespace: str) -> dict[str, Any]:
    return {"namespace": namespace} if kind.namespaced else {}


def _custom_kwargs(
    kind: ObjectKind, version: str | None, namespace: str
) -> dict[str, Any]:
    return {
        "group": kind.group,
        "version": version or kind.version,
        "namespace": namespace,
        "plural": kind.plural,
    }


def _load(result: Any) -> dict[str, Any]:
    return json.loads(result.data)


def list_objects(
    *,
    kind: ObjectKind,
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    limit: int | None = None,
    continue_token: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """List one page of objects of a kind.

    Parameters
    ----------
    kind : `ObjectKind`
        The kind of object to list.
    namespace : `str`
        The namespace to list; ignored for cluster-scoped kinds.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    version : `str`, optional
        API version to use; defaults to the kind's preferred version.
    limit : `int`, optional
        Maximum number of items in the page.
    continue_token : `str`, optional
        Continuation token from the previous page.
    timeout : `float`, optional
        Request timeout in seconds.

    Returns
    -------
    page : `dict`
        The raw list manifest, with ``items`` and ``metadata.continue``.
    """
    api = _api(k8s_client, kind, version)
    options = {
        "limit": limit,
        "_continue": continue_token,
        "_preload_content": False,
        "_request_timeout": timeout,
    }
    if kind.is_custom(version):
        result = api.list_namespaced_custom_object(
            **_custom_kwargs(kind, version, namespace), **options
        )
    else:
        result = _typed_method(api, "list", kind)(
            **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


def get_object(
    *,
    kind: ObjectKind,
    name: str,
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Read a single object directly from the API server."""
    api = _api(k8s_client, kind, version)
    options = {"_preload_content": False, "_request_timeout": timeout}
    if kind.is_custom(version):
        result = api.get_namespaced_custom_object(
            **_custom_kwargs(kind, version, namespace), name=name, **options
        )
    else:
        result = _typed_method(api, "read", kind)(
            name=name, **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


def create_object(
    *,
    kind: ObjectKind,
    body: dict[str, Any],
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Create an object and return the stored manifest."""
    api = _api(k8s_client, kind, version)
    options = {"_preload_content": False, "_request_timeout": timeout}
    if kind.is_custom(version):
        result = api.create_namespaced_custom_object(
            **_custom_kwargs(kind, version, namespace), body=body, **options
        )
    else:
        result = _typed_method(api, "create", kind)(
            body=body, **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


def replace_object(
    *,
    kind: ObjectKind,
    body: dict[str, Any],
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Replace (update) an object; the name is taken from ``body``."""
    return _replace(
        kind=kind,
        body=body,
        namespace=namespace,
        k8s_client=k8s_client,
        version=version,
        timeout=timeout,
        status=False,
    )


def replace_object_status(
    *,
    kind: ObjectKind,
    body: dict[str, Any],
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Replace the status subresource of an object."""
    return _replace(
        kind=kind,
        body=body,
        namespace=namespace,
        k8s_client=k8s_client,
        version=version,
        timeout=timeout,
        status=True,
    )


def _replace(
    *,
    kind: ObjectKind,
    body: dict[str, Any],
    namespace: str,
    k8s_client: Any,
    version: str | None,
    timeout: float | None,
    status: bool,
) -> dict[str, Any]:
    api = _api(k8s_client, kind, version)
    name = body["metadata"]["name"]
    options = {"_preload_content": False, "_request_timeout": timeout}
    if kind.is_custom(version):
        method = (
            api.replace_namespaced_custom_object_status
            if status
            else api.replace_namespaced_custom_object
        )
        result = method(
            **_custom_kwargs(kind, version, namespace),
            name=name,
            body=body,
            **options,
        )
    else:
        suffix = "_status" if status else ""
        result = _typed_method(api, "replace", kind, suffix)(
            name=name, body=body, **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


def patch_object(
    *,
    kind: ObjectKind,
    name: str,
    body: Any,
    content_type: str,
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Patch an object with an explicit patch content type."""
    api = _api(k8s_client, kind, version)
    options = {
        "_content_type": content_type,
        "_preload_content": False,
        "_request_timeout": timeout,
    }
    if kind.is_custom(version):
        result = api.patch_namespaced_custom_object(
            **_custom_kwargs(kind, version, namespace),
            name=name,
            body=body,
            **options,
        )
    else:
        result = _typed_method(api, "patch", kind)(
            name=name, body=body, **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


def delete_object(
    *,
    kind: ObjectKind,
    name: str,
    namespace: str,
    k8s_client: Any,
    version: str | None = None,
    grace_period_seconds: int | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Delete an object, optionally with an explicit grace period."""
    api = _api(k8s_client, kind, version)
    options = {
        "grace_period_seconds": grace_period_seconds,
        "_preload_content": False,
        "_request_timeout": timeout,
    }
    if kind.is_custom(version):
        result = api.delete_namespaced_custom_object(
            **_custom_kwargs(kind, version, namespace), name=name, **options
        )
    else:
        result = _typed_method(api, "delete", kind)(
            name=name, **_scope_kwargs(kind, namespace), **options
        )
    return _load(result)


_VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)")


def parse_server_version(git_version: str) -> tuple[int, int]:
    """Parse a ``gitVersion`` such as ``v1.27.3-gke.100`` into ``(1, 27)``."""
    match = _VERSION_PATTERN.match(git_version.strip())
    if match is None:
        raise ValueError(f"Unable to parse server version {git_version!r}")
    return int(match.group(1)), int(match.group(2))


def get_server_version(
    *, k8s_client: Any, timeout: float | None = None
) -> tuple[int, int]:
    """Get the ``(major, minor)`` version of the Kubernetes API server."""
    info = k8s_client.VersionApi().get_code(_request_timeout=timeout)
    return parse_server_version(info.git_version)
