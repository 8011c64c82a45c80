"""Configuration loading from environment variables."""

from __future__ import annotations

__all__ = ("OperatorConfig", "kind_env_key", "load_config")

import os
import re
from dataclasses import dataclass, field

from workloadoperator.inspector import kinds


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"WO_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def kind_env_key(name: str) -> str:
    """Convert a kind registry name to its environment key suffix.

    ``persistentVolumeClaims`` becomes ``PERSISTENT_VOLUME_CLAIMS``.
    """
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()


@dataclass
class OperatorConfig:
    """Runtime configuration of the operator."""

    namespace: str = "default"
    throttle_default: float = 30.0
    throttles: dict[str, float] = field(default_factory=dict)
    request_batch_size: int = 256
    request_timeout: float = 2.0
    refresh_threads: int = 15
    reconcile_interval: float = 30.0

    def throttle_intervals(self) -> dict[str, float]:
        """Refresh interval of every catalogued kind."""
        return {
            kind.name: self.throttles.get(kind.name, self.throttle_default)
            for kind in kinds.ALL_KINDS
        }


def load_config() -> OperatorConfig:
    """Load configuration from WO_* environment variables."""
    throttle_default = _env_float("THROTTLE_DEFAULT", 30.0, min_val=0.0)
    throttles = {}
    for kind in kinds.ALL_KINDS:
        key = f"THROTTLE_{kind_env_key(kind.name)}"
        if _env(key):
            throttles[kind.name] = _env_float(key, throttle_default, min_val=0.0)
    return OperatorConfig(
        namespace=_env("NAMESPACE", "default"),
        throttle_default=throttle_default,
        throttles=throttles,
        request_batch_size=_env_int("REQUEST_BATCH_SIZE", 256, min_val=1),
        request_timeout=_env_float("REQUEST_TIMEOUT", 2.0, min_val=0.0),
        refresh_threads=_env_int("REFRESH_THREADS", 15, min_val=1),
        reconcile_interval=_env_float("RECONCILE_INTERVAL", 30.0, min_val=1.0),
    )
