"""Write-through client for a single kind.

Every remote attempt is counted in `ClientMetrics`. A successful mutation
invalidates the kind's throttle so the next inspector refresh reloads it.
"""

from __future__ import annotations

__all__ = ("ModClient", "PatchType")

import enum
from typing import TYPE_CHECKING, Any

import structlog

from workloadoperator import k8s
from workloadoperator.errors import NotImplementedVerbError
from workloadoperator.inspector.metrics import ClientMetrics, client_metrics

if TYPE_CHECKING:
    from collections.abc import Callable

    from workloadoperator.inspector.kinds import ObjectKind
    from workloadoperator.inspector.throttle import ThrottleComponents

logger = structlog.getLogger(__name__)


class PatchType(enum.Enum):
    """Patch strategies and their HTTP content types."""

    JSON = "application/json-patch+json"
    MERGE = "application/merge-patch+json"
    STRATEGIC = "application/strategic-merge-patch+json"
    APPLY = "application/apply-patch+yaml"

    @property
    def content_type(self) -> str:
        return self.value


class ModClient:
    """Create, update, patch and delete objects of one kind.

    Parameters
    ----------
    kind : `ObjectKind`
        The kind the client writes.
    namespace : `str`
        The namespace the client writes into.
    k8s_client
        A Kubernetes client (see `workloadoperator.k8s.create_k8sclient`).
    throttles : `ThrottleComponents`
        Throttles invalidated after a successful mutation. Pass a callable to
        resolve the throttles of the current snapshot at call time.
    version : `str`, optional
        API version used for the calls.
    request_timeout : `float`, optional
        Timeout of each request, in seconds.
    metrics : `ClientMetrics`, optional
        Counters to update; defaults to the process-wide ones.
    """

    def __init__(
        self,
        *,
        kind: ObjectKind,
        namespace: str,
        k8s_client: Any,
        throttles: ThrottleComponents | Callable[[], ThrottleComponents],
        version: str | None = None,
        request_timeout: float | None = None,
        metrics: ClientMetrics | None = None,
    ) -> None:
        self.kind = kind
        self.namespace = namespace
        self.version = version or kind.version
        self._k8s_client = k8s_client
        self._throttles = throttles
        self._request_timeout = request_timeout
        self._metrics = metrics if metrics is not None else client_metrics

    def create(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._call(
            "Create",
            k8s.create_object,
            body=body,
        )

    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._call(
            "Update",
            k8s.replace_object,
            body=body,
        )

    def update_status(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource of an object.

        Raises
        ------
        NotImplementedVerbError
            Raised, without any remote call, if the kind has no status
            subresource.
        """
        if not self.kind.has_status:
            raise NotImplementedVerbError(
                self.kind.gvk(self.version), "UpdateStatus"
            )
        return self._call(
            "UpdateStatus",
            k8s.replace_object_status,
            body=body,
        )

    def patch(
        self, name: str, patch_type: PatchType, payload: Any
    ) -> dict[str, Any]:
        return self._call(
            "Patch",
            k8s.patch_object,
            name=name,
            body=payload,
            content_type=PatchType(patch_type).content_type,
        )

    def delete(
        self, name: str, grace_period_seconds: int | None = None
    ) -> dict[str, Any]:
        verb = "ForceDelete" if grace_period_seconds == 0 else "Delete"
        return self._call(
            verb,
            k8s.delete_object,
            name=name,
            grace_period_seconds=grace_period_seconds,
        )

    def _call(
        self, verb: str, func: Callable[..., dict[str, Any]], **kwargs: Any
    ) -> dict[str, Any]:
        try:
            result = func(
                kind=self.kind,
                namespace=self.namespace,
                k8s_client=self._k8s_client,
                version=self.version,
                timeout=self._request_timeout,
                **kwargs,
            )
        except Exception:
            self._metrics.inc(self.kind.kind, verb, True)
            raise
        self._metrics.inc(self.kind.kind, verb, False)
        self._current_throttles().invalidate(self.kind.name)
        logger.debug(
            "Modified object", component=self.kind.name, verb=verb
        )
        return result

    def _current_throttles(self) -> ThrottleComponents:
        if callable(self._throttles):
            return self._throttles()
        return self._throttles
