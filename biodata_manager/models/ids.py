"""Typed dataset identifiers, specifiers and registry routing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from biodata_manager.errors import InvalidIdentifier, InvalidSpecifier


class DatasetKind(str, Enum):
    PROTEIN = "protein"
    GENOME = "genome"
    SRR = "srr"
    UNIPROT = "uniprot"
    DOI = "doi"
    EXPRESSION = "expression"
    EXPRESSION_10X = "expression10x"
    GO = "go"
    KEGG = "kegg"
    REACTOME = "reactome"


KNOWLEDGE_KINDS = (DatasetKind.GO, DatasetKind.KEGG, DatasetKind.REACTOME)


class Registry(str, Enum):
    RCSB = "rcsb"
    NCBI = "ncbi"
    UNIPROT = "uniprot"
    DOI = "doi"
    GEO = "geo"
    GO = "go"
    KEGG = "kegg"
    REACTOME = "reactome"


class ProteinFormat(str, Enum):
    CIF = "cif"
    PDB = "pdb"
    BCIF = "bcif"

    @property
    def extension(self) -> str:
        return self.value


class SrrFormat(str, Enum):
    FASTQ = "fastq"
    FASTA = "fasta"


_ALNUM = re.compile(r"^[A-Z0-9]+$")
_GENOME = re.compile(r"^GC[AF]_(\d+)\.(\d+)$")
_RUN = re.compile(r"^(SRR|ERR)\d+$")
_GEO_SERIES = re.compile(r"^GSE\d+$")


@dataclass(frozen=True, order=True)
class ProteinId:
    value: str

    @classmethod
    def parse(cls, raw: str) -> "ProteinId":
        value = (raw or "").strip().upper()
        if len(value) != 4 or not value.isascii() or not _ALNUM.match(value):
            raise InvalidIdentifier("protein", raw)
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class GenomeAccession:
    """RefSeq (``GCF_``) or GenBank (``GCA_``) assembly with a version."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "GenomeAccession":
        value = (raw or "").strip()
        if not _GENOME.match(value):
            raise InvalidIdentifier("genome", raw)
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class SrrId:
    """Sequencing run accession (SRA ``SRR`` or ENA ``ERR``)."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "SrrId":
        value = (raw or "").strip().upper()
        if not _RUN.match(value):
            raise InvalidIdentifier("srr", raw)
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class UniprotId:
    value: str

    @classmethod
    def parse(cls, raw: str) -> "UniprotId":
        value = (raw or "").strip().upper()
        if not 6 <= len(value) <= 10 or not value.isascii() or not _ALNUM.match(value):
            raise InvalidIdentifier("uniprot", raw)
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class Doi:
    value: str

    @classmethod
    def parse(cls, raw: str) -> "Doi":
        value = (raw or "").strip().lower()
        if not value.startswith("10.") or "/" not in value:
            raise InvalidIdentifier("doi", raw)
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class GeoSeriesAccession:
    value: str

    @classmethod
    def parse(cls, raw: str) -> "GeoSeriesAccession":
        value = (raw or "").strip().upper()
        if not _GEO_SERIES.match(value):
            raise InvalidIdentifier("expression", raw)
        return cls(value)

    @property
    def digits(self) -> str:
        return self.value[3:]

    def __str__(self) -> str:
        return self.value


Accession = Union[
    ProteinId,
    GenomeAccession,
    SrrId,
    UniprotId,
    Doi,
    GeoSeriesAccession,
    None,
]

_PARSERS = {
    DatasetKind.PROTEIN: ProteinId.parse,
    DatasetKind.GENOME: GenomeAccession.parse,
    DatasetKind.SRR: SrrId.parse,
    DatasetKind.UNIPROT: UniprotId.parse,
    DatasetKind.DOI: Doi.parse,
    DatasetKind.EXPRESSION: GeoSeriesAccession.parse,
    DatasetKind.EXPRESSION_10X: GeoSeriesAccession.parse,
}

_ROUTES = {
    DatasetKind.PROTEIN: Registry.RCSB,
    DatasetKind.GENOME: Registry.NCBI,
    DatasetKind.SRR: Registry.NCBI,
    DatasetKind.UNIPROT: Registry.UNIPROT,
    DatasetKind.DOI: Registry.DOI,
    DatasetKind.EXPRESSION: Registry.GEO,
    DatasetKind.EXPRESSION_10X: Registry.GEO,
    DatasetKind.GO: Registry.GO,
    DatasetKind.KEGG: Registry.KEGG,
    DatasetKind.REACTOME: Registry.REACTOME,
}


@dataclass(frozen=True)
class DatasetSpecifier:
    """One fetchable unit: a kind plus its validated accession.

    Knowledge-base kinds (go, kegg, reactome) carry no accession.
    """

    kind: DatasetKind
    accession: Accession = None

    @classmethod
    def parse(cls, text: str) -> "DatasetSpecifier":
        raw = (text or "").strip()
        lowered = raw.lower()
        for kind in KNOWLEDGE_KINDS:
            if lowered == kind.value:
                return cls(kind)
        prefix, sep, rest = raw.partition(":")
        if not sep:
            raise InvalidSpecifier(text)
        try:
            kind = DatasetKind(prefix.strip().lower())
        except ValueError as exc:
            raise InvalidSpecifier(text) from exc
        parser = _PARSERS.get(kind)
        if parser is None:
            raise InvalidSpecifier(text)
        return cls(kind, parser(rest))

    @classmethod
    def of(cls, kind: Union[DatasetKind, str], value: str) -> "DatasetSpecifier":
        """Build a specifier from a kind name and raw accession."""
        kind = DatasetKind(kind)
        if kind in KNOWLEDGE_KINDS:
            return cls(kind)
        return cls(kind, _PARSERS[kind](value))

    @property
    def dataset_id(self) -> str:
        if self.accession is None:
            return self.kind.value
        return str(self.accession)

    def resolve_registry(
        self, protein_format: Optional[ProteinFormat] = None
    ) -> Registry:
        # Every protein format is served by RCSB.
        return _ROUTES[self.kind]

    def __str__(self) -> str:
        if self.accession is None:
            return self.kind.value
        return f"{self.kind.value}:{self.accession}"


__all__ = [
    "DatasetKind",
    "DatasetSpecifier",
    "Doi",
    "GenomeAccession",
    "GeoSeriesAccession",
    "KNOWLEDGE_KINDS",
    "ProteinFormat",
    "ProteinId",
    "Registry",
    "SrrFormat",
    "SrrId",
    "UniprotId",
]
