"""The namespace inspector: a throttled, read-mostly cache of Kubernetes
objects.

A refresh runs the loaders whose throttle is due in a thread pool, carries
the remaining kinds over from the previous snapshot, verifies the result and
only then publishes it. Readers always see a complete snapshot.
"""

from __future__ import annotations

__all__ = ("Inspector", "KindAccessor")

import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from workloadoperator import k8s
from workloadoperator.config import OperatorConfig
from workloadoperator.errors import NotFoundError
from workloadoperator.inspector import kinds
from workloadoperator.inspector.anonymous import AnonymousAccessor
from workloadoperator.inspector.loaders import LoaderRegistry, default_registry
from workloadoperator.inspector.mod import ModClient
from workloadoperator.inspector.snapshot import Snapshot, SnapshotBuilder
from workloadoperator.inspector.throttle import ThrottleComponents

if TYPE_CHECKING:
    from workloadoperator.inspector.kinds import GroupVersionKind, ObjectKind
    from workloadoperator.inspector.loaders import Loader
    from workloadoperator.inspector.metrics import ClientMetrics

logger = structlog.getLogger(__name__)

Filter = Callable[[dict[str, Any]], bool]


class Inspector:
    """Cache of the objects of one namespace.

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `workloadoperator.k8s.create_k8sclient`).
    config : `OperatorConfig`, optional
        Throttle intervals, batch size, timeouts and fan-out.
    namespace : `str`, optional
        Namespace to inspect; defaults to ``config.namespace``.
    registry : `LoaderRegistry`, optional
        Loaders to run; defaults to every catalogued kind.
    clock : callable, optional
        Monotonic clock driving the throttles.
    metrics : `ClientMetrics`, optional
        Counters updated by the mod clients.
    """

    def __init__(
        self,
        *,
        k8s_client: Any,
        config: OperatorConfig | None = None,
        namespace: str | None = None,
        registry: LoaderRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: ClientMetrics | None = None,
    ) -> None:
        self.config = config if config is not None else OperatorConfig()
        self.namespace = namespace or self.config.namespace
        self.registry = registry if registry is not None else default_registry()
        self._k8s_client = k8s_client
        self._metrics = metrics
        self._lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._snapshot = Snapshot(
            throttles=ThrottleComponents.from_intervals(
                self.config.throttle_intervals(), clock
            )
        )

    @property
    def snapshot(self) -> Snapshot:
        """The currently published snapshot."""
        with self._lock:
            return self._snapshot

    @property
    def throttles(self) -> ThrottleComponents:
        return self.snapshot.throttles

    @property
    def server_version(self) -> tuple[int, int] | None:
        return self.snapshot.server_version

    @property
    def last_refresh(self) -> datetime | None:
        return self.snapshot.last_refresh

    @property
    def initialised(self) -> bool:
        return self.snapshot.initialised

    def refresh(
        self,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Reload every kind whose throttle is due and publish a new snapshot.

        Parameters
        ----------
        timeout : `float`, optional
            Seconds the whole refresh may take.
        cancel : `threading.Event`, optional
            Set it to abort the refresh before its next remote call.

        Raises
        ------
        Exception
            The first listing or verification error. The previous snapshot
            stays published and every kind loaded by this call is due again.
        """
        self._refresh(self.registry.loaders(), timeout=timeout, cancel=cancel)

    def refresh_kind(
        self,
        name: str,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Force one kind due and reload only that kind."""
        loader = self.registry.get(name)
        if loader is None:
            raise KeyError(f"No inspector loader registered for {name}")
        self.throttles.invalidate(name)
        self._refresh([loader], timeout=timeout, cancel=cancel)

    def _refresh(
        self,
        loaders: list[Loader],
        *,
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> None:
        with self._refresh_lock:
            current = self.snapshot
            throttles = current.throttles.copy()
            state = SnapshotBuilder(
                throttles=throttles, server_version=current.server_version
            )
            deadline = k8s.Deadline(
                timeout,
                request_timeout=self.config.request_timeout or None,
                cancel=cancel,
            )

            due = []
            for loader in loaders:
                if throttles.get(loader.name).throttle():
                    due.append(loader)
                else:
                    logger.debug(
                        "Inspector refresh skipped", component=loader.name
                    )

            start = time.monotonic()
            logger.debug("Inspector refresh start", namespace=self.namespace)
            if due:
                workers = max(1, min(self.config.refresh_threads, len(due)))
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = [
                        executor.submit(self._load, loader, state, deadline)
                        for loader in due
                    ]
                    for future in futures:
                        future.result()
            logger.debug(
                "Inspector refresh done",
                namespace=self.namespace,
                duration=time.monotonic() - start,
            )

            for loader in self.registry:
                loader.copy(current, state, override=False)
            for loader in self.registry:
                loader.verify(state)

            snapshot = state.build()
            with self._lock:
                self._snapshot = snapshot

    def _load(
        self, loader: Loader, state: SnapshotBuilder, deadline: k8s.Deadline
    ) -> None:
        logger.debug("Inspector refresh", component=loader.name)
        try:
            loader.load(
                state,
                k8s_client=self._k8s_client,
                namespace=self.namespace,
                batch_size=self.config.request_batch_size,
                deadline=deadline,
            )
        finally:
            state.throttles.get(loader.name).delay()

    def accessor(self, kind: ObjectKind) -> KindAccessor:
        return KindAccessor(self, kind)

    def mod(self, kind: ObjectKind, version: str | None = None) -> ModClient:
        """Return a write client for ``kind``.

        The client invalidates the throttles of whichever snapshot is
        published when a call succeeds.
        """
        if version is None:
            entry = self.snapshot.entry(kind.name)
            if entry is not None:
                version = entry.api_version
        return ModClient(
            kind=kind,
            namespace=self.namespace,
            k8s_client=self._k8s_client,
            throttles=lambda: self.throttles,
            version=version,
            request_timeout=self.config.request_timeout or None,
            metrics=self._metrics,
        )

    def anonymous(self, gvk: GroupVersionKind) -> AnonymousAccessor | None:
        """Return a type-erased accessor for ``gvk``.

        Returns `None` if the kind is not registered, the version is not the
        one currently served, or the kind's entry is missing or errored.
        """
        kind = kinds.find_kind(gvk.group, gvk.kind)
        if kind is None or kind.name not in self.registry:
            return None
        if not kind.supports(gvk.version):
            return None
        entry = self.snapshot.entry(kind.name)
        if entry is None or entry.error is not None:
            return None
        if entry.api_version is not None and entry.api_version != gvk.version:
            return None
        return AnonymousAccessor(
            kind=kind, gvk=gvk, entry=entry, mod=self.mod(kind, gvk.version)
        )

    @property
    def pods(self) -> KindAccessor:
        return self.accessor(kinds.POD)

    @property
    def secrets(self) -> KindAccessor:
        return self.accessor(kinds.SECRET)

    @property
    def config_maps(self) -> KindAccessor:
        return self.accessor(kinds.CONFIG_MAP)

    @property
    def persistent_volumes(self) -> KindAccessor:
        return self.accessor(kinds.PERSISTENT_VOLUME)

    @property
    def persistent_volume_claims(self) -> KindAccessor:
        return self.accessor(kinds.PERSISTENT_VOLUME_CLAIM)

    @property
    def services(self) -> KindAccessor:
        return self.accessor(kinds.SERVICE)

    @property
    def service_accounts(self) -> KindAccessor:
        return self.accessor(kinds.SERVICE_ACCOUNT)

    @property
    def endpoints(self) -> KindAccessor:
        return self.accessor(kinds.ENDPOINTS)

    @property
    def nodes(self) -> KindAccessor:
        return self.accessor(kinds.NODE)

    @property
    def pod_disruption_budgets(self) -> KindAccessor:
        return self.accessor(kinds.POD_DISRUPTION_BUDGET)

    @property
    def service_monitors(self) -> KindAccessor:
        return self.accessor(kinds.SERVICE_MONITOR)

    @property
    def members(self) -> KindAccessor:
        return self.accessor(kinds.WORKLOAD_MEMBER)

    @property
    def tasks(self) -> KindAccessor:
        return self.accessor(kinds.WORKLOAD_TASK)

    @property
    def cluster_synchronizations(self) -> KindAccessor:
        return self.accessor(kinds.CLUSTER_SYNCHRONIZATION)


class KindAccessor:
    """Read access to one kind of the inspector's current snapshot."""

    def __init__(self, inspector: Inspector, kind: ObjectKind) -> None:
        self._inspector = inspector
        self.kind = kind

    def _items(self) -> dict[str, dict[str, Any]]:
        entry = self._inspector.snapshot.entry(self.kind.name)
        if entry is None or entry.items is None:
            return {}
        return dict(entry.items)

    @property
    def last_refresh(self) -> datetime | None:
        entry = self._inspector.snapshot.entry(self.kind.name)
        return None if entry is None else entry.last_refresh

    @property
    def api_version(self) -> str | None:
        entry = self._inspector.snapshot.entry(self.kind.name)
        if entry is None or entry.api_version is None:
            return self.kind.version
        return entry.api_version

    @property
    def error(self) -> BaseException | None:
        entry = self._inspector.snapshot.entry(self.kind.name)
        return None if entry is None else entry.error

    @property
    def mod(self) -> ModClient:
        return self._inspector.mod(self.kind)

    def list_simple(self) -> list[dict[str, Any]]:
        return list(self._items().values())

    def get_simple(self, name: str) -> dict[str, Any] | None:
        return self._items().get(name)

    def get(self, name: str) -> dict[str, Any]:
        """Return object ``name``.

        Raises
        ------
        NotFoundError
            Raised if the object is not in the current snapshot.
        """
        obj = self.get_simple(name)
        if obj is None:
            raise NotFoundError(self.kind.gvr(self.api_version), name)
        return obj

    def filter(self, *filters: Filter | None) -> list[dict[str, Any]]:
        """Return every object accepted by all ``filters``."""
        return [
            obj
            for obj in self._items().values()
            if all(f(obj) for f in filters if f is not None)
        ]

    def iterate(
        self, action: Callable[[dict[str, Any]], None], *filters: Filter | None
    ) -> None:
        """Call ``action`` on every object accepted by all ``filters``.

        Filters run in order and stop at the first rejection of an object;
        `None` filters are ignored. Exceptions from ``action`` propagate.
        """
        for obj in self._items().values():
            if all(f(obj) for f in filters if f is not None):
                action(obj)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.list_simple())

    def __len__(self) -> int:
        return len(self._items())

    def refresh(
        self,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._inspector.refresh_kind(
            self.kind.name, timeout=timeout, cancel=cancel
        )
