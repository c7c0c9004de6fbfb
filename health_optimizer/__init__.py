"""health_optimizer package."""

from importlib import metadata
from typing import Any

try:
    __version__ = metadata.version("health-optimizer")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for local edits
    __version__ = "0.0.0"

__all__ = ["app", "__version__", "build_analysis_report"]


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name == "app":
        from .cli import app

        return app
    if name == "build_analysis_report":
        from .services import build_analysis_report

        return build_analysis_report
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
