"""Type-erased access to cached kinds, for callers that walk across kinds
without knowing them statically.
"""

from __future__ import annotations

__all__ = ("AnonymousAccessor",)

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from workloadoperator.errors import InvalidObjectTypeError, NotFoundError

if TYPE_CHECKING:
    from workloadoperator.inspector.kinds import GroupVersionKind, ObjectKind
    from workloadoperator.inspector.mod import ModClient, PatchType
    from workloadoperator.inspector.snapshot import KindEntry


class AnonymousAccessor:
    """Get, create, update, patch and delete objects of a kind given only its
    group, version and kind.

    Reads are served from the snapshot entry the accessor was created from;
    writes go through the kind's `ModClient`. Objects handed to a write are
    checked against the accessor's ``apiVersion`` and ``kind``.
    """

    def __init__(
        self,
        *,
        kind: ObjectKind,
        gvk: GroupVersionKind,
        entry: KindEntry,
        mod: ModClient,
    ) -> None:
        self.kind = kind
        self.gvk = gvk
        self._entry = entry
        self._mod = mod

    def _items(self) -> Mapping[str, dict[str, Any]]:
        return self._entry.items or {}

    def list(self) -> list[dict[str, Any]]:
        return list(self._items().values())

    def get(self, name: str) -> dict[str, Any]:
        """Return the cached object ``name``.

        Raises
        ------
        NotFoundError
            Raised if the object is not in the snapshot.
        """
        try:
            return self._items()[name]
        except KeyError:
            raise NotFoundError(self.kind.gvr(self.gvk.version), name) from None

    def create(self, obj: Any) -> dict[str, Any]:
        return self._mod.create(self._check(obj))

    def update(self, obj: Any) -> dict[str, Any]:
        return self._mod.update(self._check(obj))

    def update_status(self, obj: Any) -> dict[str, Any]:
        return self._mod.update_status(self._check(obj))

    def patch(
        self, name: str, patch_type: PatchType, payload: Any
    ) -> dict[str, Any]:
        return self._mod.patch(name, patch_type, payload)

    def delete(
        self, name: str, grace_period_seconds: int | None = None
    ) -> dict[str, Any]:
        return self._mod.delete(name, grace_period_seconds)

    def _check(self, obj: Any) -> dict[str, Any]:
        if (
            not isinstance(obj, dict)
            or obj.get("apiVersion") != self.gvk.api_version
            or obj.get("kind") != self.gvk.kind
        ):
            raise InvalidObjectTypeError(self.gvk, obj)
        return obj
