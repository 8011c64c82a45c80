"""Per-kind loaders and the registry that holds them."""

from __future__ import annotations

__all__ = (
    "ListLoader",
    "Loader",
    "LoaderRegistry",
    "PodDisruptionBudgetLoader",
    "default_registry",
)

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

import structlog

from workloadoperator import k8s
from workloadoperator.errors import (
    LoaderRegistrationError,
    UnsupportedVersionError,
)
from workloadoperator.inspector import kinds
from workloadoperator.inspector.snapshot import KindEntry, Snapshot

if TYPE_CHECKING:
    from workloadoperator.inspector.kinds import ObjectKind
    from workloadoperator.inspector.snapshot import SnapshotBuilder

logger = structlog.getLogger(__name__)


class Loader:
    """Fetches, verifies and carries forward the cached state of one kind.

    Parameters
    ----------
    kind : `ObjectKind`
        The kind handled by this loader.
    optional : `bool`
        If `True`, a listing error stays recorded in the kind's entry but does
        not fail verification. Used for kinds whose CRD may not be installed.
    """

    def __init__(self, kind: ObjectKind, *, optional: bool = False) -> None:
        self.kind = kind
        self.optional = optional

    @property
    def name(self) -> str:
        return self.kind.name

    def load(
        self,
        state: SnapshotBuilder,
        *,
        k8s_client: Any,
        namespace: str,
        batch_size: int,
        deadline: k8s.Deadline,
    ) -> None:
        """List the kind into ``state``, recording either items or an error."""
        raise NotImplementedError

    def verify(self, state: SnapshotBuilder) -> None:
        """Raise the error recorded for this kind, if any."""
        if self.optional:
            return
        entry = state.entry(self.name)
        if entry is not None and entry.error is not None:
            raise entry.error

    def copy(
        self, source: Snapshot, target: SnapshotBuilder, override: bool
    ) -> None:
        """Carry this kind's entry from ``source`` into ``target``.

        An entry already present in ``target`` is kept unless ``override``
        is set.
        """
        entry = source.entry(self.name)
        if entry is None:
            return
        if target.has_entry(self.name) and not override:
            return
        target.set_entry(self.name, entry)

    def list_all(
        self,
        *,
        k8s_client: Any,
        namespace: str,
        batch_size: int,
        deadline: k8s.Deadline,
        version: str | None = None,
        continue_token: str | None = None,
    ) -> list[dict[str, Any]]:
        """List every page of the kind, following continuation tokens."""
        page = k8s.list_objects(
            kind=self.kind,
            namespace=namespace,
            k8s_client=k8s_client,
            version=version,
            limit=batch_size,
            continue_token=continue_token,
            timeout=deadline.request_timeout(),
        )
        items = list(page.get("items") or [])
        token = (page.get("metadata") or {}).get("continue")
        if token:
            items.extend(
                self.list_all(
                    k8s_client=k8s_client,
                    namespace=namespace,
                    batch_size=batch_size,
                    deadline=deadline,
                    version=version,
                    continue_token=token,
                )
            )
        return items


class ListLoader(Loader):
    """Loader for kinds served in a single API version."""

    def load(
        self,
        state: SnapshotBuilder,
        *,
        k8s_client: Any,
        namespace: str,
        batch_size: int,
        deadline: k8s.Deadline,
    ) -> None:
        try:
            objects = self.list_all(
                k8s_client=k8s_client,
                namespace=namespace,
                batch_size=batch_size,
                deadline=deadline,
            )
        except Exception as err:
            logger.debug(
                "Inspector load failed", component=self.name, error=str(err)
            )
            state.set_entry(
                self.name, KindEntry.failed(err, api_version=self.kind.version)
            )
            return
        state.set_entry(
            self.name,
            KindEntry.loaded(objects, api_version=self.kind.version),
        )


class PodDisruptionBudgetLoader(Loader):
    """Loader that picks the ``policy`` API version from the server version.

    The server version is fetched once and carried forward between snapshots.
    """

    minimum_versions: tuple[tuple[str, tuple[int, int]], ...] = (
        ("v1", (1, 21)),
        ("v1beta1", (1, 16)),
    )

    def __init__(self, kind: ObjectKind = kinds.POD_DISRUPTION_BUDGET) -> None:
        super().__init__(kind)

    @property
    def oldest_supported(self) -> tuple[int, int]:
        return min(minimum for _, minimum in self.minimum_versions)

    def select_version(self, server_version: tuple[int, int]) -> str | None:
        for version, minimum in self.minimum_versions:
            if server_version >= minimum:
                return version
        return None

    def load(
        self,
        state: SnapshotBuilder,
        *,
        k8s_client: Any,
        namespace: str,
        batch_size: int,
        deadline: k8s.Deadline,
    ) -> None:
        try:
            if state.server_version is None:
                state.server_version = k8s.get_server_version(
                    k8s_client=k8s_client, timeout=deadline.request_timeout()
                )
                logger.debug(
                    "Detected server version",
                    component=self.name,
                    version=state.server_version,
                )
        except Exception as err:
            state.set_entry(self.name, KindEntry.failed(err))
            return

        server_version = state.server_version
        version = self.select_version(server_version)
        if version is None:
            state.set_entry(
                self.name,
                KindEntry.failed(
                    UnsupportedVersionError(
                        self.name, server_version, self.oldest_supported
                    ),
                    server_version=server_version,
                ),
            )
            return

        try:
            objects = self.list_all(
                k8s_client=k8s_client,
                namespace=namespace,
                batch_size=batch_size,
                deadline=deadline,
                version=version,
            )
        except Exception as err:
            state.set_entry(
                self.name,
                KindEntry.failed(
                    err, api_version=version, server_version=server_version
                ),
            )
            return
        state.set_entry(
            self.name,
            KindEntry.loaded(
                objects, api_version=version, server_version=server_version
            ),
        )

    def verify(self, state: SnapshotBuilder) -> None:
        entry = state.entry(self.name)
        if entry is None:
            return
        if (
            entry.server_version is not None
            and entry.server_version < self.oldest_supported
        ):
            raise UnsupportedVersionError(
                self.name, entry.server_version, self.oldest_supported
            )
        super().verify(state)


class LoaderRegistry:
    """The set of loaders an inspector refreshes, one per name."""

    def __init__(self) -> None:
        self._loaders: dict[str, Loader] = {}

    def register(self, loader: Loader) -> None:
        """Register a loader.

        Raises
        ------
        LoaderRegistrationError
            Raised if a loader with the same name is already registered.
        """
        if loader.name in self._loaders:
            raise LoaderRegistrationError(
                f"Unable to register inspector loader {loader.name}: "
                "already registered"
            )
        self._loaders[loader.name] = loader

    def get(self, name: str) -> Loader | None:
        return self._loaders.get(name)

    def loaders(self) -> list[Loader]:
        return list(self._loaders.values())

    def __iter__(self) -> Iterator[Loader]:
        return iter(self.loaders())

    def __len__(self) -> int:
        return len(self._loaders)

    def __contains__(self, name: object) -> bool:
        return name in self._loaders


def default_registry() -> LoaderRegistry:
    """Build a registry with a loader for every catalogued kind."""
    registry = LoaderRegistry()
    for kind in kinds.ALL_KINDS:
        if kind is kinds.POD_DISRUPTION_BUDGET:
            registry.register(PodDisruptionBudgetLoader(kind))
        elif kind is kinds.SERVICE_MONITOR:
            registry.register(ListLoader(kind, optional=True))
        else:
            registry.register(ListLoader(kind))
    return registry
