"""Fetch state machine and orchestration entry points."""

from .fetch import DatasetHandler, FetchOptions, fetch_dataset
from .orchestrator import FetchOverrides, Orchestrator, build_overrides

__all__ = [
    "DatasetHandler",
    "FetchOptions",
    "FetchOverrides",
    "Orchestrator",
    "build_overrides",
    "fetch_dataset",
]
