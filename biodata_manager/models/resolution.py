"""Data structures produced by DOI resolution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from biodata_manager.models.ids import DatasetSpecifier

# Bucket attribute -> short id type used in counts and status records.
BUCKET_ID_TYPES: Dict[str, str] = {
    "geo_series": "gse",
    "geo_samples": "gsm",
    "sra_runs": "srr",
    "ena_runs": "err",
    "bioprojects": "bioproject",
    "ena_projects": "ena_project",
    "assemblies": "assembly",
    "pdb": "pdb",
    "uniprot": "uniprot",
}


@dataclass
class DoiSource:
    """Bibliographic text the identifiers were extracted from."""

    title: Optional[str] = None
    abstract_text: Optional[str] = None
    references: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)
    data_availability: List[str] = field(default_factory=list)

    def texts(self) -> List[str]:
        corpus: List[str] = []
        if self.title:
            corpus.append(self.title)
        if self.abstract_text:
            corpus.append(self.abstract_text)
        corpus.extend(self.references)
        corpus.extend(self.links)
        corpus.extend(self.data_availability)
        return corpus


@dataclass
class ExtractedIds:
    """Nine buckets of sorted, de-duplicated pattern matches."""

    geo_series: List[str] = field(default_factory=list)
    geo_samples: List[str] = field(default_factory=list)
    sra_runs: List[str] = field(default_factory=list)
    ena_runs: List[str] = field(default_factory=list)
    bioprojects: List[str] = field(default_factory=list)
    ena_projects: List[str] = field(default_factory=list)
    assemblies: List[str] = field(default_factory=list)
    pdb: List[str] = field(default_factory=list)
    uniprot: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(getattr(self, item.name) for item in fields(self))

    def counts(self) -> Dict[str, int]:
        return {
            BUCKET_ID_TYPES[item.name]: len(getattr(self, item.name))
            for item in fields(self)
        }


@dataclass
class IdStatus:
    id_type: str
    id: str
    exists: bool
    # Provenance note such as "from gse"
    source: Optional[str] = None


@dataclass
class ValidationSummary:
    geo_series: List[IdStatus] = field(default_factory=list)
    geo_samples: List[IdStatus] = field(default_factory=list)
    sra_runs: List[IdStatus] = field(default_factory=list)
    ena_runs: List[IdStatus] = field(default_factory=list)
    bioprojects: List[IdStatus] = field(default_factory=list)
    ena_projects: List[IdStatus] = field(default_factory=list)
    assemblies: List[IdStatus] = field(default_factory=list)
    pdb: List[IdStatus] = field(default_factory=list)
    uniprot: List[IdStatus] = field(default_factory=list)


@dataclass
class HydratedGeo:
    gse: str
    gsm: List[str] = field(default_factory=list)
    srr: List[str] = field(default_factory=list)


@dataclass
class HydratedBioProject:
    bioproject: str
    srr: List[str] = field(default_factory=list)
    assemblies: List[str] = field(default_factory=list)


@dataclass
class HydratedEnaProject:
    ena_project: str
    runs: List[str] = field(default_factory=list)


@dataclass
class HydratedSummary:
    geo: List[HydratedGeo] = field(default_factory=list)
    bioprojects: List[HydratedBioProject] = field(default_factory=list)
    ena_projects: List[HydratedEnaProject] = field(default_factory=list)


@dataclass(frozen=True, order=True)
class ResolvedTarget:
    dataset_type: str
    id: str

    def specifier(self) -> DatasetSpecifier:
        return DatasetSpecifier.parse(f"{self.dataset_type}:{self.id}")


@dataclass
class UnresolvedId:
    id_type: str
    id: str
    reason: str


@dataclass
class DoiResolution:
    doi: str
    source: DoiSource = field(default_factory=DoiSource)
    extracted: ExtractedIds = field(default_factory=ExtractedIds)
    validation: ValidationSummary = field(default_factory=ValidationSummary)
    hydrated: HydratedSummary = field(default_factory=HydratedSummary)
    resolved_targets: List[ResolvedTarget] = field(default_factory=list)
    unresolved: List[UnresolvedId] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return self.extracted.counts()

    def resolved_specifiers(self) -> List[DatasetSpecifier]:
        return [target.specifier() for target in self.resolved_targets]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DoiResolution":
        validation = payload.get("validation") or {}
        hydrated = payload.get("hydrated") or {}
        return cls(
            doi=str(payload["doi"]),
            source=DoiSource(**(payload.get("source") or {})),
            extracted=ExtractedIds(**(payload.get("extracted") or {})),
            validation=ValidationSummary(
                **{
                    name: [IdStatus(**status) for status in statuses]
                    for name, statuses in validation.items()
                }
            ),
            hydrated=HydratedSummary(
                geo=[HydratedGeo(**item) for item in hydrated.get("geo", [])],
                bioprojects=[
                    HydratedBioProject(**item)
                    for item in hydrated.get("bioprojects", [])
                ],
                ena_projects=[
                    HydratedEnaProject(**item)
                    for item in hydrated.get("ena_projects", [])
                ],
            ),
            resolved_targets=[
                ResolvedTarget(**item)
                for item in payload.get("resolved_targets", [])
            ],
            unresolved=[
                UnresolvedId(**item) for item in payload.get("unresolved", [])
            ],
        )


__all__ = [
    "BUCKET_ID_TYPES",
    "DoiResolution",
    "DoiSource",
    "ExtractedIds",
    "HydratedBioProject",
    "HydratedEnaProject",
    "HydratedGeo",
    "HydratedSummary",
    "IdStatus",
    "ResolvedTarget",
    "UnresolvedId",
    "ValidationSummary",
]
