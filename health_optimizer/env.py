from __future__ import annotations

import os

PRIMARY_PREFIX = "HEALTH_OPTIMIZER_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    All settings share the ``HEALTH_OPTIMIZER_`` prefix, e.g.
    ``HEALTH_OPTIMIZER_DATA_DIR`` or ``HEALTH_OPTIMIZER_CONFIG``.
    """
    value = os.getenv(f"{PRIMARY_PREFIX}{name}")
    if value is not None:
        return value
    return default

