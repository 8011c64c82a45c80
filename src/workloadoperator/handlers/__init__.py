"""Kopf handlers for the workload-operator."""

__all__ = ("inspect_members", "on_startup")

from typing import Any

import kopf

from workloadoperator.handlers.rotation import inspect_members
from workloadoperator.startup import start_operator


@kopf.on.startup()
def on_startup(*, logger: Any, **kwargs: Any) -> None:
    """Prime the inspector cache before any other handler runs."""
    start_operator(logger=logger)
