"""Exceptions raised by the inspector cache and the rotation engine.

Transport failures from the Kubernetes API are never wrapped: they propagate
as `kubernetes.client.exceptions.ApiException` (or the underlying urllib3
error). The classes here add the conditions that the cache itself detects.
kopf's retry semantics are reused: a `kopf.TemporaryError` is expected to be
retried by the handler machinery, a `kopf.PermanentError` is not.
"""

from __future__ import annotations

__all__ = (
    "InvalidObjectTypeError",
    "LoaderRegistrationError",
    "NotFoundError",
    "NotImplementedVerbError",
    "RefreshCancelledError",
    "UnsupportedVersionError",
    "is_not_found",
)

from typing import TYPE_CHECKING, Any

import kopf
from kubernetes.client.exceptions import ApiException

if TYPE_CHECKING:
    from workloadoperator.inspector.kinds import (
        GroupVersionKind,
        GroupVersionResource,
    )


class NotFoundError(ApiException):
    """An object is absent from the current cache snapshot.

    The exception mimics a remote 404 so callers can handle cache misses and
    API misses with the same ``err.status == 404`` check.

    Parameters
    ----------
    gvr : `GroupVersionResource`
        Identity of the resource that was queried.
    name : `str`
        Name of the object that was not found.
    """

    def __init__(self, gvr: GroupVersionResource, name: str) -> None:
        resource = gvr.resource if not gvr.group else f"{gvr.resource}.{gvr.group}"
        super().__init__(status=404, reason=f'{resource} "{name}" not found')
        self.gvr = gvr
        self.name = name


def is_not_found(err: BaseException) -> bool:
    """Return `True` if ``err`` is a 404, either from the cache or the API."""
    return isinstance(err, ApiException) and err.status == 404


class UnsupportedVersionError(kopf.TemporaryError):
    """The Kubernetes server is too old for a version-sensitive kind.

    Parameters
    ----------
    kind : `str`
        Registry name of the kind (for example ``podDisruptionBudgets``).
    server_version : `tuple` of `int`
        The detected ``(major, minor)`` server version.
    minimum_version : `tuple` of `int`
        The oldest ``(major, minor)`` version the kind supports.
    """

    def __init__(
        self,
        kind: str,
        server_version: tuple[int, int],
        minimum_version: tuple[int, int],
        delay: float = 60,
    ) -> None:
        super().__init__(
            f"{kind}: server version {_format(server_version)} is older "
            f"than the minimum supported {_format(minimum_version)}",
            delay=delay,
        )
        self.kind = kind
        self.server_version = server_version
        self.minimum_version = minimum_version


def _format(version: tuple[int, int]) -> str:
    return ".".join(str(v) for v in version)


class InvalidObjectTypeError(kopf.PermanentError, TypeError):
    """An object handed to a type-erased accessor is of a different kind."""

    def __init__(self, expected: GroupVersionKind, obj: Any) -> None:
        if isinstance(obj, dict):
            got = f"{obj.get('apiVersion')}/{obj.get('kind')}"
        else:
            got = type(obj).__name__
        super().__init__(
            f"Invalid object type: expected {expected.api_version}/"
            f"{expected.kind}, got {got}"
        )
        self.expected = expected


class NotImplementedVerbError(kopf.PermanentError, NotImplementedError):
    """A verb is not available for a kind, for example ``update_status`` on a
    kind without a status subresource.
    """

    def __init__(self, gvk: GroupVersionKind, verb: str) -> None:
        super().__init__(
            f"{verb} is not implemented for {gvk.api_version}/{gvk.kind}"
        )
        self.gvk = gvk
        self.verb = verb


class LoaderRegistrationError(RuntimeError):
    """Two loaders were registered under the same name."""


class RefreshCancelledError(Exception):
    """The caller cancelled an in-flight refresh."""
