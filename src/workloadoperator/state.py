"""Constructed (cached) state as module-level attributes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from workloadoperator.config import load_config

if TYPE_CHECKING:
    from workloadoperator.inspector.inspector import Inspector

config = load_config()
"""Operator configuration, read from ``WO_*`` environment variables."""

namespace = config.namespace
"""The name of the Kubernetes namespace monitored by this operator."""

inspectors: dict[str, Inspector] = {}
"""Inspector of each namespace, created by `workloadoperator.startup`.

The inspectors are created on start-up and refreshed by the handlers.
"""
