"""Declarative batch file (``biodata.json``) models and loader."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from biodata_manager.errors import (
    ConfigParseError,
    ConfigReadError,
    MissingConfigError,
)
from biodata_manager.models.ids import (
    Doi,
    GenomeAccession,
    ProteinFormat,
    ProteinId,
    SrrFormat,
    SrrId,
    UniprotId,
)

logger = logging.getLogger(__name__)

DEFAULT_GENOME_INCLUDE = ["genome", "gff3", "protein", "seq-report"]
CURRENT_SCHEMA_VERSION = 1


def default_genome_include() -> List[str]:
    return list(DEFAULT_GENOME_INCLUDE)


class _Entry(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProteinEntry(_Entry):
    id: str
    format: Optional[ProteinFormat] = None


class GenomeEntry(_Entry):
    accession: str
    include: Optional[List[str]] = None


class SrrEntry(_Entry):
    id: str
    format: Optional[SrrFormat] = None
    paired: Optional[bool] = None


class UniprotEntry(_Entry):
    id: str


class DoiEntry(_Entry):
    id: str


class BatchConfigFile(BaseModel):
    """Raw file shape; every entry may be a bare string or a detailed object."""

    model_config = ConfigDict(extra="ignore")

    schema_version: Optional[int] = None
    proteins: List[Union[str, ProteinEntry]] = []
    genomes: List[Union[str, GenomeEntry]] = []
    srr: List[Union[str, SrrEntry]] = []
    uniprot: List[Union[str, UniprotEntry]] = []
    doi: List[Union[str, DoiEntry]] = []


@dataclass
class ProteinRequest:
    id: ProteinId
    format: ProteinFormat = ProteinFormat.CIF


@dataclass
class GenomeRequest:
    accession: GenomeAccession
    include: List[str] = field(default_factory=default_genome_include)


@dataclass
class SrrRequest:
    id: SrrId
    format: SrrFormat = SrrFormat.FASTQ
    paired: bool = False


@dataclass
class UniprotRequest:
    id: UniprotId


@dataclass
class DoiRequest:
    id: Doi


@dataclass
class BatchConfig:
    """Validated batch with every identifier parsed and defaults applied."""

    schema_version: int = CURRENT_SCHEMA_VERSION
    proteins: List[ProteinRequest] = field(default_factory=list)
    genomes: List[GenomeRequest] = field(default_factory=list)
    srr: List[SrrRequest] = field(default_factory=list)
    uniprot: List[UniprotRequest] = field(default_factory=list)
    doi: List[DoiRequest] = field(default_factory=list)

    def to_file_dict(self) -> Dict[str, Any]:
        """Serialize in the detailed-object form of the batch file."""
        return {
            "schema_version": self.schema_version,
            "proteins": [
                {"id": str(item.id), "format": item.format.value}
                for item in self.proteins
            ],
            "genomes": [
                {"accession": str(item.accession), "include": list(item.include)}
                for item in self.genomes
            ],
            "srr": [
                {
                    "id": str(item.id),
                    "format": item.format.value,
                    "paired": item.paired,
                }
                for item in self.srr
            ],
            "uniprot": [{"id": str(item.id)} for item in self.uniprot],
            "doi": [{"id": str(item.id)} for item in self.doi],
        }


def resolve_config(config: BatchConfigFile) -> BatchConfig:
    """Parse every entry of a raw batch file into typed requests."""

    proteins = []
    for entry in config.proteins:
        if isinstance(entry, str):
            proteins.append(ProteinRequest(ProteinId.parse(entry)))
        else:
            proteins.append(
                ProteinRequest(
                    ProteinId.parse(entry.id),
                    entry.format or ProteinFormat.CIF,
                )
            )

    genomes = []
    for entry in config.genomes:
        if isinstance(entry, str):
            genomes.append(GenomeRequest(GenomeAccession.parse(entry)))
        else:
            genomes.append(
                GenomeRequest(
                    GenomeAccession.parse(entry.accession),
                    list(entry.include) if entry.include else default_genome_include(),
                )
            )

    runs = []
    for entry in config.srr:
        if isinstance(entry, str):
            runs.append(SrrRequest(SrrId.parse(entry)))
        else:
            runs.append(
                SrrRequest(
                    SrrId.parse(entry.id),
                    entry.format or SrrFormat.FASTQ,
                    bool(entry.paired),
                )
            )

    uniprot = [
        UniprotRequest(
            UniprotId.parse(entry if isinstance(entry, str) else entry.id)
        )
        for entry in config.uniprot
    ]
    dois = [
        DoiRequest(Doi.parse(entry if isinstance(entry, str) else entry.id))
        for entry in config.doi
    ]

    return BatchConfig(
        schema_version=config.schema_version or CURRENT_SCHEMA_VERSION,
        proteins=proteins,
        genomes=genomes,
        srr=runs,
        uniprot=uniprot,
        doi=dois,
    )


def parse_config_text(text: str) -> BatchConfig:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(f"invalid JSON: {exc}") from exc
    try:
        raw = BatchConfigFile.model_validate(payload)
    except ValidationError as exc:
        raise ConfigParseError(str(exc)) from exc
    return resolve_config(raw)


def load_batch_config(path: Path, *, explicit: bool = False) -> BatchConfig:
    """
    Load and validate a batch file.

    Parameters
    ----------
    path : Path
        Location of the batch file.
    explicit : bool
        True when the caller named the file; a missing default file is
        reported as ``MissingConfigError`` while a missing explicit file
        is a read error.

    Returns
    -------
    BatchConfig
        Typed requests in declaration order.
    """
    if not explicit and not path.exists():
        raise MissingConfigError(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigReadError(path) from exc
    config = parse_config_text(text)
    logger.info(
        "Loaded batch config",
        extra={
            "config_path": str(path),
            "proteins": len(config.proteins),
            "genomes": len(config.genomes),
            "srr": len(config.srr),
            "uniprot": len(config.uniprot),
            "doi": len(config.doi),
        },
    )
    return config


__all__ = [
    "BatchConfig",
    "BatchConfigFile",
    "DEFAULT_GENOME_INCLUDE",
    "DoiEntry",
    "DoiRequest",
    "GenomeEntry",
    "GenomeRequest",
    "ProteinEntry",
    "ProteinRequest",
    "SrrEntry",
    "SrrRequest",
    "UniprotEntry",
    "UniprotRequest",
    "default_genome_include",
    "load_batch_config",
    "parse_config_text",
    "resolve_config",
]
