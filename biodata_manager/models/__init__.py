"""Convenience re-exports for core data models."""

from .batch import (
    BatchConfig,
    DoiRequest,
    GenomeRequest,
    ProteinRequest,
    SrrRequest,
    UniprotRequest,
    default_genome_include,
    load_batch_config,
)
from .ids import (
    DatasetKind,
    DatasetSpecifier,
    Doi,
    GenomeAccession,
    GeoSeriesAccession,
    ProteinFormat,
    ProteinId,
    Registry,
    SrrFormat,
    SrrId,
    UniprotId,
)
from .records import (
    DatasetEntry,
    DatasetMetadata,
    DoiFetchSummary,
    FetchItemResult,
    FetchResult,
)
from .resolution import (
    DoiResolution,
    DoiSource,
    ExtractedIds,
    ResolvedTarget,
    UnresolvedId,
)

__all__ = [
    "BatchConfig",
    "DatasetEntry",
    "DatasetKind",
    "DatasetMetadata",
    "DatasetSpecifier",
    "Doi",
    "DoiFetchSummary",
    "DoiRequest",
    "DoiResolution",
    "DoiSource",
    "ExtractedIds",
    "FetchItemResult",
    "FetchResult",
    "GenomeAccession",
    "GenomeRequest",
    "GeoSeriesAccession",
    "ProteinFormat",
    "ProteinId",
    "ProteinRequest",
    "Registry",
    "ResolvedTarget",
    "SrrFormat",
    "SrrId",
    "SrrRequest",
    "UniprotId",
    "UniprotRequest",
    "UnresolvedId",
    "default_genome_include",
    "load_batch_config",
]
