"""Generic cache-or-fetch-or-reuse routine shared by every dataset kind."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from biodata_manager.models.records import FetchItemResult
from biodata_manager.services.cache import Store, StoreTier
from biodata_manager.services.metadata import build_metadata

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class FetchOptions:
    # Treat existing project and cache copies as stale
    force: bool = False
    # Skip mirroring a fresh download into the cache tier
    no_cache: bool = False
    # Report what would happen without network or disk writes
    dry_run: bool = False


@dataclass
class StagedDataset:
    """A payload sitting in the staging area, ready to publish."""

    payload: Path
    # Files published next to a single-file payload
    sidecars: List[Path] = field(default_factory=list)


@dataclass
class DatasetHandler:
    """Everything the state machine needs to know about one dataset."""

    dataset_type: str
    dataset_id: str
    format: Optional[str]
    source: str
    project_path: Path
    cache_path: Path
    download: Callable[[Path], StagedDataset]
    verify: Optional[Callable[[StagedDataset, Path], StagedDataset]] = None
    # Names of sidecar files kept beside a file payload
    sidecars: Sequence[str] = ()

    @property
    def key(self) -> str:
        return f"{self.dataset_type}:{self.dataset_id}"


def _result(handler: DatasetHandler, action: str, **kwargs) -> FetchItemResult:
    return FetchItemResult(
        dataset_type=handler.dataset_type,
        id=handler.dataset_id,
        format=handler.format,
        source=handler.source,
        action=action,
        **kwargs,
    )


def _write_tier_metadata(
    store: Store,
    tier: StoreTier,
    handler: DatasetHandler,
    path: Path,
    tool: str,
) -> None:
    store.write_metadata(
        store.metadata_path(tier, handler.dataset_type, handler.dataset_id),
        build_metadata(
            source=handler.source,
            dataset_type=handler.dataset_type,
            dataset_id=handler.dataset_id,
            fmt=handler.format,
            path=path,
            tool=tool,
        ),
    )


def fetch_dataset(
    store: Store,
    handler: DatasetHandler,
    options: FetchOptions,
    progress: ProgressCallback,
    tool: str,
) -> FetchItemResult:
    """
    Bring one dataset into the project tier.

    Parameters
    ----------
    store : Store
        Two-tier store the dataset is published into.
    handler : DatasetHandler
        Paths and download hooks for the dataset.
    options : FetchOptions
        ``force``, ``no_cache`` and ``dry_run`` switches.
    progress : callable
        Receives one plain-text message per phase transition.
    tool : str
        Identity recorded in metadata files.

    Returns
    -------
    FetchItemResult
        ``project`` when already present, ``cache`` when promoted from the
        cache tier, ``download`` when fetched (or, for a dry run, when a
        fetch would happen).
    """
    progress(f"phase=Resolve; {handler.dataset_type} {handler.dataset_id}")
    project_path = handler.project_path
    cache_path = handler.cache_path

    if not options.force and store.exists(project_path):
        progress("phase=Store; already in project store")
        return _result(
            handler,
            "project",
            project_path=str(project_path),
            cache_path=str(cache_path) if store.exists(cache_path) else None,
            dry_run=options.dry_run,
        )

    if not options.force and store.exists(cache_path):
        progress("phase=Store; using cached dataset")
        if not options.dry_run:
            store.ensure_project_root()
            store.promote(cache_path, project_path, handler.sidecars)
            _write_tier_metadata(store, StoreTier.PROJECT, handler, project_path, tool)
        return _result(
            handler,
            "cache",
            project_path=str(project_path),
            cache_path=str(cache_path),
            dry_run=options.dry_run,
        )

    if options.dry_run:
        progress("phase=Prepare; dry run, download skipped")
        return _result(
            handler,
            "download",
            project_path=str(project_path),
            cache_path=None if options.no_cache else str(cache_path),
            dry_run=True,
        )

    store.ensure_project_root()
    if not options.no_cache:
        store.ensure_cache_root()

    progress("phase=Prepare; preparing download")
    with store.staging_dir(handler.dataset_type) as staging:
        progress(f"{handler.source}.request")
        started = time.monotonic()
        staged = handler.download(staging)
        latency_ms = int((time.monotonic() - started) * 1000)
        progress(f"{handler.source}.response latency_ms={latency_ms}")

        if handler.verify is not None:
            progress("phase=Verify; validating package")
            staged = handler.verify(staged, staging)

        progress("phase=Store; writing files")
        store.publish(staged.payload, project_path, staged.sidecars)
        _write_tier_metadata(store, StoreTier.PROJECT, handler, project_path, tool)

    if not options.no_cache:
        store.promote(project_path, cache_path, handler.sidecars)
        _write_tier_metadata(store, StoreTier.CACHE, handler, cache_path, tool)

    logger.info(
        "Fetched dataset",
        extra={
            "dataset": handler.key,
            "project_path": str(project_path),
            "cached": not options.no_cache,
        },
    )
    return _result(
        handler,
        "download",
        project_path=str(project_path),
        cache_path=None if options.no_cache else str(cache_path),
    )


__all__ = [
    "DatasetHandler",
    "FetchOptions",
    "ProgressCallback",
    "StagedDataset",
    "fetch_dataset",
]
