"""Resolve a publication DOI into concrete, fetchable dataset targets.

The resolution runs as a fixed sequence of stages over a shared
:class:`ResolutionState`. Only the bibliographic lookup and the
"no identifiers at all" case are hard failures; every per-identifier
validation or hydration problem is recorded as an unresolved entry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from biodata_manager.errors import BiodataError, DoiResolutionError, RegistryError
from biodata_manager.models.ids import Doi
from biodata_manager.models.resolution import (
    DoiResolution,
    DoiSource,
    ExtractedIds,
    HydratedBioProject,
    HydratedEnaProject,
    HydratedGeo,
    IdStatus,
    ResolvedTarget,
    UnresolvedId,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

NO_IDENTIFIERS_MESSAGE = (
    "DOI resolved successfully, but no supported public dataset identifiers were found"
)

# Bucket name -> pattern, applied to the upper-cased corpus.
EXTRACTION_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("geo_series", re.compile(r"\bGSE\d+\b")),
    ("geo_samples", re.compile(r"\bGSM\d+\b")),
    ("sra_runs", re.compile(r"\bSRR\d+\b")),
    ("ena_runs", re.compile(r"\bERR\d+\b")),
    ("bioprojects", re.compile(r"\bPRJ[EN]A\d+\b")),
    ("ena_projects", re.compile(r"\bERP\d+\b")),
    ("assemblies", re.compile(r"\bGC[AF]_\d+\.\d+\b")),
    ("pdb", re.compile(r"\b[0-9][A-Z0-9]{3}\b")),
    ("uniprot", re.compile(r"\b[OPQ][0-9][A-Z0-9]{3}[0-9]\b")),
]

_GSM = re.compile(r"GSM\d+")
_RUN = re.compile(r"(?:SRR|ERR)\d+")
_SRX = re.compile(r"SRX\d+")

RESOLUTION_STAGES: List[str] = [
    "validate_pdb",
    "validate_uniprot",
    "validate_assembly",
    "validate_srr",
    "validate_err",
    "hydrate_geo_series",
    "hydrate_geo_samples",
    "hydrate_bioproject",
    "hydrate_ena_project",
]

STAGE_PROGRESS: Dict[str, str] = {
    "validate_pdb": "doi.validate.pdb",
    "validate_uniprot": "doi.validate.uniprot",
    "validate_assembly": "doi.validate.assembly",
    "validate_srr": "doi.validate.srr",
    "validate_err": "doi.validate.err",
    "hydrate_geo_series": "doi.hydrate.geo_series",
    "hydrate_geo_samples": "doi.hydrate.geo_samples",
    "hydrate_bioproject": "doi.hydrate.bioproject",
    "hydrate_ena_project": "doi.hydrate.ena_project",
}


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def collect_source(message: Dict[str, Any]) -> DoiSource:
    """Gather the searchable text fields of a Crossref ``message``."""
    titles = message.get("title") or []
    title = _text(titles[0]) if isinstance(titles, list) and titles else None

    references: List[str] = []
    for item in message.get("reference") or []:
        for key in ("DOI", "unstructured", "article-title", "series-title"):
            value = _text(item.get(key))
            if value:
                references.append(value)

    links: List[str] = []
    for item in message.get("link") or []:
        url = _text(item.get("URL"))
        if url:
            links.append(url)
    primary = ((message.get("resource") or {}).get("primary") or {}).get("URL")
    if _text(primary):
        links.append(primary)

    data_availability: List[str] = []
    for assertion in message.get("assertion") or []:
        label = _text(assertion.get("label")) or _text(assertion.get("name"))
        if label and "data" in label.lower():
            value = _text(assertion.get("value"))
            if value:
                data_availability.append(value)

    return DoiSource(
        title=title,
        abstract_text=_text(message.get("abstract")),
        references=references,
        links=links,
        data_availability=data_availability,
    )


def extract_ids(texts: Iterable[str]) -> ExtractedIds:
    """Run every bucket pattern over the corpus; buckets come back sorted."""
    buckets: Dict[str, Set[str]] = {name: set() for name, _ in EXTRACTION_PATTERNS}
    for text in texts:
        upper = text.upper()
        for name, pattern in EXTRACTION_PATTERNS:
            buckets[name].update(pattern.findall(upper))
    return ExtractedIds(**{name: sorted(values) for name, values in buckets.items()})


def _matches(pattern: re.Pattern, text: str) -> List[str]:
    return sorted(set(pattern.findall(text)))


@dataclass
class ResolutionState:
    resolution: DoiResolution
    resolved: Set[ResolvedTarget] = field(default_factory=set)

    def record(
        self,
        bucket: str,
        id_type: str,
        identifier: str,
        exists: bool,
        *,
        target_kind: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        getattr(self.resolution.validation, bucket).append(
            IdStatus(id_type=id_type, id=identifier, exists=exists, source=source)
        )
        if not exists:
            self.unresolved(id_type, identifier, "not found")
        elif target_kind is not None:
            self.resolved.add(ResolvedTarget(target_kind, identifier))

    def unresolved(self, id_type: str, identifier: str, reason: str) -> None:
        self.resolution.unresolved.append(UnresolvedId(id_type, identifier, reason))


class DoiResolver:
    """Chain Crossref, E-utilities, ENA and the dataset registries."""

    def __init__(self, *, crossref, eutils, ena, rcsb, uniprot, ncbi, geo) -> None:
        self.crossref = crossref
        self.eutils = eutils
        self.ena = ena
        self.rcsb = rcsb
        self.uniprot = uniprot
        self.ncbi = ncbi
        self.geo = geo

    def resolve(
        self, doi: Doi, progress: Optional[ProgressCallback] = None
    ) -> DoiResolution:
        emit = progress or (lambda _message: None)

        emit("doi.crossref.start")
        message = self.crossref.fetch_work(doi)
        emit("doi.crossref.done")

        source = collect_source(message)
        extracted = extract_ids(source.texts())
        counts = extracted.counts()
        emit(
            "doi.extract "
            + " ".join(f"{key}={value}" for key, value in counts.items())
        )
        if extracted.is_empty():
            raise DoiResolutionError(NO_IDENTIFIERS_MESSAGE)

        state = ResolutionState(
            DoiResolution(doi=str(doi), source=source, extracted=extracted)
        )
        stage_handlers = {
            "validate_pdb": self._validate_pdb,
            "validate_uniprot": self._validate_uniprot,
            "validate_assembly": self._validate_assemblies,
            "validate_srr": self._validate_srr,
            "validate_err": self._validate_err,
            "hydrate_geo_series": self._hydrate_geo_series,
            "hydrate_geo_samples": self._hydrate_geo_samples,
            "hydrate_bioproject": self._hydrate_bioprojects,
            "hydrate_ena_project": self._hydrate_ena_projects,
        }
        for stage in RESOLUTION_STAGES:
            emit(STAGE_PROGRESS[stage])
            stage_handlers[stage](state)

        state.resolution.resolved_targets = sorted(state.resolved)
        emit("doi.done")
        logger.info(
            "Resolved DOI",
            extra={
                "doi": str(doi),
                "resolved": len(state.resolution.resolved_targets),
                "unresolved": len(state.resolution.unresolved),
            },
        )
        return state.resolution

    # Existence probes -------------------------------------------------------

    def _probe(self, label: str, identifier: str, check: Callable[[], bool]) -> bool:
        try:
            return bool(check())
        except RegistryError as exc:
            logger.warning(
                "Existence check failed; treating as not found",
                extra={"id_type": label, "id": identifier, "error": str(exc)},
            )
            return False

    def _pdb_exists(self, identifier: str) -> bool:
        return self._probe(
            "pdb", identifier, lambda: self.rcsb.entry_exists(identifier)
        )

    def _uniprot_exists(self, identifier: str) -> bool:
        return self._probe(
            "uniprot", identifier, lambda: self.uniprot.entry_exists(identifier)
        )

    def _assembly_exists(self, identifier: str) -> bool:
        return self._probe(
            "assembly", identifier, lambda: self.ncbi.assembly_exists(identifier)
        )

    def _run_exists(self, identifier: str) -> bool:
        return self._probe(
            "srr",
            identifier,
            lambda: bool(self.eutils.esearch_ids("sra", f"{identifier}[Accession]")),
        )

    def _geo_exists(self, identifier: str) -> bool:
        return self._probe(
            "geo",
            identifier,
            lambda: bool(self.eutils.esearch_ids("gds", f"{identifier}[Accession]")),
        )

    # Direct validation ------------------------------------------------------

    def _validate_pdb(self, state: ResolutionState) -> None:
        for identifier in state.resolution.extracted.pdb:
            exists = self._pdb_exists(identifier)
            state.record("pdb", "pdb", identifier, exists, target_kind="protein")

    def _validate_uniprot(self, state: ResolutionState) -> None:
        for identifier in state.resolution.extracted.uniprot:
            exists = self._uniprot_exists(identifier)
            state.record(
                "uniprot", "uniprot", identifier, exists, target_kind="uniprot"
            )

    def _validate_assemblies(self, state: ResolutionState) -> None:
        for identifier in state.resolution.extracted.assemblies:
            exists = self._assembly_exists(identifier)
            state.record(
                "assemblies", "assembly", identifier, exists, target_kind="genome"
            )

    def _validate_srr(self, state: ResolutionState) -> None:
        for identifier in state.resolution.extracted.sra_runs:
            exists = self._run_exists(identifier)
            state.record("sra_runs", "srr", identifier, exists, target_kind="srr")

    def _validate_err(self, state: ResolutionState) -> None:
        for identifier in state.resolution.extracted.ena_runs:
            exists = self._run_exists(identifier)
            state.record("ena_runs", "err", identifier, exists, target_kind="srr")

    def _record_runs(
        self, state: ResolutionState, runs: Iterable[str], *, source: str
    ) -> None:
        for run in runs:
            state.record(
                "sra_runs",
                "srr",
                run,
                self._run_exists(run),
                target_kind="srr",
                source=source,
            )

    # Hydration --------------------------------------------------------------

    def _runs_from_srx(self, srx: str) -> List[str]:
        ids = self.eutils.esearch_ids("sra", f"{srx}[Accession]")
        return self.eutils.esummary_sra_runs(ids)

    def _runs_from_gds(self, gse: str) -> List[str]:
        ids = self.eutils.esearch_ids("gds", f"{gse}[Accession]")
        if not ids:
            return []
        return self.eutils.esummary_sra_runs(self.eutils.elink_ids("gds", "sra", ids))

    def hydrate_geo_sample(self, gsm: str) -> List[str]:
        """Runs named in a sample record, plus runs behind its SRA experiments."""
        text = self.geo.fetch_record_text(gsm)
        runs = set(_matches(_RUN, text))
        for srx in _matches(_SRX, text):
            runs.update(self._runs_from_srx(srx))
        return sorted(runs)

    def hydrate_geo_series(self, gse: str) -> HydratedGeo:
        text = self.geo.fetch_record_text(gse)
        samples = _matches(_GSM, text)
        runs: Set[str] = set()
        for gsm in samples:
            runs.update(self.hydrate_geo_sample(gsm))
        if not runs:
            try:
                runs.update(self._runs_from_gds(gse))
            except BiodataError as exc:
                logger.warning(
                    "GEO to SRA link lookup failed",
                    extra={"gse": gse, "error": str(exc)},
                )
        return HydratedGeo(gse=gse, gsm=samples, srr=sorted(runs))

    def _hydrate_geo_series(self, state: ResolutionState) -> None:
        for gse in state.resolution.extracted.geo_series:
            exists = self._geo_exists(gse)
            state.record("geo_series", "gse", gse, exists)
            if not exists:
                continue
            try:
                geo = self.hydrate_geo_series(gse)
            except BiodataError as exc:
                state.unresolved("gse", gse, f"hydration failed: {exc}")
                continue
            for gsm in geo.gsm:
                state.record("geo_samples", "gsm", gsm, True)
            self._record_runs(state, geo.srr, source="from gse")
            state.resolution.hydrated.geo.append(geo)

    def _hydrate_geo_samples(self, state: ResolutionState) -> None:
        for gsm in state.resolution.extracted.geo_samples:
            exists = self._geo_exists(gsm)
            state.record("geo_samples", "gsm", gsm, exists)
            if not exists:
                continue
            try:
                runs = self.hydrate_geo_sample(gsm)
            except BiodataError as exc:
                state.unresolved("gsm", gsm, f"hydration failed: {exc}")
                continue
            self._record_runs(state, runs, source="from gsm")

    def hydrate_bioproject(self, project: str, ids: List[str]) -> HydratedBioProject:
        sra_ids = self.eutils.elink_ids("bioproject", "sra", ids)
        assembly_ids = self.eutils.elink_ids("bioproject", "assembly", ids)
        return HydratedBioProject(
            bioproject=project,
            srr=self.eutils.esummary_sra_runs(sra_ids),
            assemblies=self.eutils.esummary_assembly_accessions(assembly_ids),
        )

    def _hydrate_bioprojects(self, state: ResolutionState) -> None:
        for project in state.resolution.extracted.bioprojects:
            try:
                ids = self.eutils.esearch_ids("bioproject", f"{project}[Accession]")
            except RegistryError as exc:
                logger.warning(
                    "BioProject lookup failed; treating as not found",
                    extra={"bioproject": project, "error": str(exc)},
                )
                ids = []
            state.record("bioprojects", "bioproject", project, bool(ids))
            if not ids:
                continue
            try:
                item = self.hydrate_bioproject(project, ids)
            except BiodataError as exc:
                state.unresolved("bioproject", project, f"hydration failed: {exc}")
                continue
            self._record_runs(state, item.srr, source="from bioproject")
            for accession in item.assemblies:
                state.record(
                    "assemblies",
                    "assembly",
                    accession,
                    self._assembly_exists(accession),
                    target_kind="genome",
                    source="from bioproject",
                )
            state.resolution.hydrated.bioprojects.append(item)

    def _hydrate_ena_projects(self, state: ResolutionState) -> None:
        for project in state.resolution.extracted.ena_projects:
            try:
                runs = self.ena.read_runs(project)
            except BiodataError as exc:
                state.unresolved("ena_project", project, f"hydration failed: {exc}")
                continue
            if not runs:
                state.resolution.validation.ena_projects.append(
                    IdStatus("ena_project", project, False)
                )
                state.unresolved("ena_project", project, "no runs found")
                continue
            state.record("ena_projects", "ena_project", project, True)
            for run in runs:
                state.record(
                    "ena_runs",
                    "err",
                    run,
                    self._run_exists(run),
                    target_kind="srr",
                    source="from ena_project",
                )
            state.resolution.hydrated.ena_projects.append(
                HydratedEnaProject(ena_project=project, runs=runs)
            )


__all__ = [
    "DoiResolver",
    "EXTRACTION_PATTERNS",
    "NO_IDENTIFIERS_MESSAGE",
    "ProgressCallback",
    "ResolutionState",
    "collect_source",
    "extract_ids",
]
