"""Immutable cache snapshots and the builder used during a refresh."""

from __future__ import annotations

__all__ = ("KindEntry", "Snapshot", "SnapshotBuilder")

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from workloadoperator.inspector.throttle import ThrottleComponents


@dataclass(frozen=True)
class KindEntry:
    """Cached state of one kind.

    Exactly one of ``items`` and ``error`` is set.

    Attributes
    ----------
    last_refresh : `datetime.datetime`
        When the kind was loaded.
    items : `Mapping`, optional
        Read-only mapping of object name to raw manifest.
    error : `BaseException`, optional
        The first error met while loading the kind.
    api_version : `str`, optional
        The API version the objects were listed with.
    server_version : `tuple`, optional
        The server version the API version was selected for.
    """

    last_refresh: datetime
    items: Mapping[str, dict[str, Any]] | None = None
    error: BaseException | None = None
    api_version: str | None = None
    server_version: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if (self.items is None) == (self.error is None):
            raise ValueError("KindEntry needs exactly one of items or error")

    @classmethod
    def loaded(
        cls,
        objects: list[dict[str, Any]],
        *,
        api_version: str | None = None,
        server_version: tuple[int, int] | None = None,
    ) -> KindEntry:
        """Build an entry from listed objects, indexed by name."""
        items = {obj["metadata"]["name"]: obj for obj in objects}
        return cls(
            last_refresh=datetime.now(tz=UTC),
            items=MappingProxyType(items),
            api_version=api_version,
            server_version=server_version,
        )

    @classmethod
    def failed(
        cls,
        error: BaseException,
        *,
        api_version: str | None = None,
        server_version: tuple[int, int] | None = None,
    ) -> KindEntry:
        return cls(
            last_refresh=datetime.now(tz=UTC),
            error=error,
            api_version=api_version,
            server_version=server_version,
        )


@dataclass(frozen=True)
class Snapshot:
    """A published, point-in-time view over every cached kind."""

    entries: Mapping[str, KindEntry] = field(
        default_factory=lambda: MappingProxyType({})
    )
    throttles: ThrottleComponents = field(default_factory=ThrottleComponents)
    server_version: tuple[int, int] | None = None
    last_refresh: datetime | None = None

    @property
    def initialised(self) -> bool:
        return self.last_refresh is not None

    def entry(self, name: str) -> KindEntry | None:
        return self.entries.get(name)


class SnapshotBuilder:
    """Mutable state of a snapshot under construction.

    Loaders run concurrently and write their entries through `set_entry`.
    """

    def __init__(
        self,
        *,
        throttles: ThrottleComponents,
        server_version: tuple[int, int] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, KindEntry] = {}
        self.throttles = throttles
        self.server_version = server_version

    def entry(self, name: str) -> KindEntry | None:
        with self._lock:
            return self._entries.get(name)

    def has_entry(self, name: str) -> bool:
        with self._lock:
            return name in self._entries

    def set_entry(self, name: str, entry: KindEntry) -> None:
        with self._lock:
            self._entries[name] = entry

    def build(self) -> Snapshot:
        with self._lock:
            entries = dict(self._entries)
        return Snapshot(
            entries=MappingProxyType(entries),
            throttles=self.throttles,
            server_version=self.server_version,
            last_refresh=datetime.now(tz=UTC),
        )
