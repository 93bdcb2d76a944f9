"""Operator settings read from the environment."""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Namespace to watch for ServiceGroups; empty means all namespaces.
    namespace: str = field(default_factory=lambda: os.getenv("HABITAT_NAMESPACE", ""))
    # Namespace the Deployment and ConfigMap are created in.
    workload_namespace: str = field(
        default_factory=lambda: os.getenv("HABITAT_WORKLOAD_NAMESPACE", "default")
    )
    # Seconds between full resyncs; 0 disables them.
    resync_period: float = field(
        default_factory=lambda: _env_float("HABITAT_RESYNC_PERIOD", 60.0)
    )
    log_level: str = field(default_factory=lambda: os.getenv("HABITAT_LOG_LEVEL", "INFO"))
    kubeconfig: Optional[str] = field(default_factory=lambda: os.getenv("KUBECONFIG") or None)
