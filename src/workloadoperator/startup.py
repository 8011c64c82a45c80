"""Code intended to run on start-up, before running any handlers."""

from __future__ import annotations

__all__ = ("get_inspector", "start_operator")

from typing import Any

import structlog
from kubernetes.client.exceptions import ApiException

from workloadoperator import state
from workloadoperator.inspector.inspector import Inspector
from workloadoperator.k8s import create_k8sclient
from workloadoperator.version import get_version


def get_inspector(namespace: str | None = None) -> Inspector:
    """Return the inspector of ``namespace``, creating it if needed."""
    namespace = namespace or state.namespace
    inspector = state.inspectors.get(namespace)
    if inspector is None:
        inspector = Inspector(
            k8s_client=create_k8sclient(),
            config=state.config,
            namespace=namespace,
        )
        state.inspectors[namespace] = inspector
    return inspector


def start_operator(logger: Any) -> None:
    """Start up the operator, priming the inspector cache of the watched
    namespace.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)

    logger.info(f"Starting workload-operator {get_version()}")
    inspector = get_inspector(state.namespace)
    try:
        inspector.refresh(timeout=60)
    except ApiException:
        logger.exception("Exception when priming the inspector cache")
        return
    except TimeoutError:
        logger.warning("Timed out priming the inspector cache")
        return

    logger.info(
        f"Inspector primed for namespace {inspector.namespace} "
        f"(server version {inspector.server_version})"
    )
