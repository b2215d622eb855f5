"""Records persisted in the store and returned by the orchestrator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class DatasetMetadata:
    """
    Bookkeeping record for one dataset in one store tier.

    A record exists if and only if the tier holds a complete copy.
    """

    # Registry the payload came from (rcsb, ncbi, ...)
    source: str

    # Dataset kind name (protein, genome, ...)
    dataset_type: str

    # Normalized identifier
    id: str

    # Payload format where the kind has one (cif, fastq, ...)
    format: Optional[str]

    # UTC ISO-8601 timestamp
    downloaded_at: str

    # Producing tool and version, e.g. "biodata-manager/0.1.0"
    tool: str

    # Absolute path of the payload inside the tier
    resolved_path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DatasetMetadata":
        return cls(
            source=str(payload["source"]),
            dataset_type=str(payload["dataset_type"]),
            id=str(payload["id"]),
            format=payload.get("format"),
            downloaded_at=str(payload.get("downloaded_at", "")),
            tool=str(payload.get("tool", "")),
            resolved_path=str(payload["resolved_path"]),
        )


@dataclass
class FetchItemResult:
    dataset_type: str
    id: str
    format: Optional[str]
    source: str
    # One of "project", "cache" or "download"
    action: str
    project_path: Optional[str] = None
    cache_path: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DoiFetchSummary:
    doi: str
    # "resolved" when computed now, "reused" when loaded from the project tier
    action: str
    counts: Dict[str, int] = field(default_factory=dict)
    resolved: int = 0
    unresolved: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FetchResult:
    items: List[FetchItemResult] = field(default_factory=list)
    doi: List[DoiFetchSummary] = field(default_factory=list)

    def extend(self, other: "FetchResult") -> None:
        self.items.extend(other.items)
        self.doi.extend(other.doi)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "items": [item.to_dict() for item in self.items],
        }
        if self.doi:
            payload["doi"] = [summary.to_dict() for summary in self.doi]
        return payload


@dataclass
class DatasetEntry:
    """A dataset as seen across both tiers, used by ``list`` and ``info``."""

    dataset_type: str
    id: str
    format: Optional[str] = None
    source: Optional[str] = None
    project_path: Optional[str] = None
    cache_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "DatasetEntry",
    "DatasetMetadata",
    "DoiFetchSummary",
    "FetchItemResult",
    "FetchResult",
]
