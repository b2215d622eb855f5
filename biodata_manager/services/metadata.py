"""Helpers for building and merging per-tier metadata records."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from biodata_manager.models.records import DatasetEntry, DatasetMetadata


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_metadata(
    *,
    source: str,
    dataset_type: str,
    dataset_id: str,
    fmt: Optional[str],
    path: Path,
    tool: str,
) -> DatasetMetadata:
    return DatasetMetadata(
        source=source,
        dataset_type=dataset_type,
        id=dataset_id,
        format=fmt,
        downloaded_at=utc_timestamp(),
        tool=tool,
        resolved_path=str(path),
    )


def merge_entries(
    project: Iterable[DatasetMetadata],
    cache: Iterable[DatasetMetadata],
) -> List[DatasetEntry]:
    """Merge both tiers into one entry per (kind, id), sorted by that key.

    Format and source come from the project record when both tiers have one.
    """
    merged: Dict[Tuple[str, str], DatasetEntry] = {}

    for record in project:
        entry = merged.setdefault(
            (record.dataset_type, record.id),
            DatasetEntry(
                dataset_type=record.dataset_type,
                id=record.id,
                format=record.format,
                source=record.source,
            ),
        )
        entry.project_path = record.resolved_path

    for record in cache:
        entry = merged.setdefault(
            (record.dataset_type, record.id),
            DatasetEntry(
                dataset_type=record.dataset_type,
                id=record.id,
                format=record.format,
                source=record.source,
            ),
        )
        entry.cache_path = record.resolved_path
        if entry.format is None:
            entry.format = record.format

    return [merged[key] for key in sorted(merged)]


__all__ = ["build_metadata", "merge_entries", "utc_timestamp"]
