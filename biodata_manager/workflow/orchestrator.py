"""Fetch orchestrator: single datasets, declarative batches and DOI fan-out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from biodata_manager.config import Settings, load_settings
from biodata_manager.errors import (
    DatasetNotFound,
    FilesystemError,
    MissingToolError,
    UnsupportedFormatError,
)
from biodata_manager.models.batch import (
    BatchConfig,
    DoiRequest,
    GenomeRequest,
    ProteinRequest,
    SrrRequest,
    UniprotRequest,
    load_batch_config,
)
from biodata_manager.models.ids import (
    DatasetKind,
    DatasetSpecifier,
    Doi,
    GenomeAccession,
    ProteinFormat,
    ProteinId,
    SrrFormat,
    SrrId,
    UniprotId,
)
from biodata_manager.models.records import (
    DatasetEntry,
    DoiFetchSummary,
    FetchItemResult,
    FetchResult,
)
from biodata_manager.models.resolution import DoiResolution
from biodata_manager.services.cache import Store, StoreTier
from biodata_manager.services.doi_resolution import DoiResolver
from biodata_manager.services.metadata import build_metadata, merge_entries
from biodata_manager.services.tools import SRA_TOOLKIT_URL, SraToolchain, ToolLocator
from biodata_manager.workflow.fetch import FetchOptions, ProgressCallback, fetch_dataset
from biodata_manager.workflow.handlers import (
    FetchTarget,
    RegistryClients,
    build_handler,
)

logger = logging.getLogger(__name__)

PROTEIN_FORMATS = {item.value: item for item in ProteinFormat}
SRR_FORMATS = {item.value: item for item in SrrFormat}


def log_progress(message: str) -> None:
    """Default progress sink: forward phase messages to the logger."""
    logger.info(message)


@dataclass
class FetchOverrides:
    protein_format: Optional[ProteinFormat] = None
    srr_format: Optional[SrrFormat] = None
    srr_paired: Optional[bool] = None


def build_overrides(
    specifier: Optional[DatasetSpecifier],
    fmt: Optional[str] = None,
    paired: bool = False,
) -> FetchOverrides:
    """Check ``--format``/``--paired`` against the requested kind."""
    overrides = FetchOverrides()
    kind = specifier.kind if specifier is not None else None

    if paired:
        if kind not in (None, DatasetKind.SRR):
            raise UnsupportedFormatError("--paired is only valid for srr datasets")
        overrides.srr_paired = True

    if fmt is None:
        return overrides
    value = fmt.strip().lower()
    if value not in PROTEIN_FORMATS and value not in SRR_FORMATS:
        raise UnsupportedFormatError(f"unknown format {fmt!r}")

    if kind is DatasetKind.PROTEIN:
        if value not in PROTEIN_FORMATS:
            raise UnsupportedFormatError(
                "format must be cif|pdb|bcif for protein datasets"
            )
        overrides.protein_format = PROTEIN_FORMATS[value]
    elif kind is DatasetKind.SRR:
        if value not in SRR_FORMATS:
            raise UnsupportedFormatError("format must be fastq|fasta for srr datasets")
        overrides.srr_format = SRR_FORMATS[value]
    elif kind is not None:
        raise UnsupportedFormatError(
            f"format override is not supported for {kind.value} datasets"
        )
    elif value in PROTEIN_FORMATS:
        overrides.protein_format = PROTEIN_FORMATS[value]
    else:
        overrides.srr_format = SRR_FORMATS[value]
    return overrides


class Orchestrator:
    """Owns the store, the registry clients and the DOI resolver."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: Optional[Store] = None,
        clients: Optional[RegistryClients] = None,
        toolchain: Optional[SraToolchain] = None,
        resolver: Optional[DoiResolver] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.store = store or Store.from_settings(self.settings)
        self.toolchain = toolchain or SraToolchain(ToolLocator(self.settings.tool_path))
        self.clients = clients or RegistryClients.from_settings(
            self.settings, self.toolchain
        )
        self.resolver = resolver or DoiResolver(
            crossref=self.clients.crossref,
            eutils=self.clients.eutils,
            ena=self.clients.ena,
            rcsb=self.clients.rcsb,
            uniprot=self.clients.uniprot,
            ncbi=self.clients.ncbi,
            geo=self.clients.geo,
        )

    # Fetch ------------------------------------------------------------------

    def fetch(
        self,
        specifier: Optional[DatasetSpecifier] = None,
        config: Optional[BatchConfig] = None,
        overrides: Optional[FetchOverrides] = None,
        options: Optional[FetchOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> FetchResult:
        """
        Fetch one dataset, or every dataset of a batch when no specifier is given.

        The batch defaults to the configured batch file. A hard error on any
        item aborts the whole call.
        """
        overrides = overrides or FetchOverrides()
        options = options or FetchOptions()
        progress = progress or log_progress

        if specifier is None and config is None:
            config = load_batch_config(self.settings.config_path)
        self._check_sra_tools(specifier, config)

        if specifier is not None:
            target = self._target(specifier, overrides)
            return self._fetch_target(target, overrides, options, progress)

        result = FetchResult()
        for target in self._batch_targets(config, overrides):
            result.extend(self._fetch_target(target, overrides, options, progress))
        return result

    def _check_sra_tools(
        self, specifier: Optional[DatasetSpecifier], config: Optional[BatchConfig]
    ) -> None:
        status = self.toolchain.status()
        if status.ready:
            return
        needs_sra = (specifier is not None and specifier.kind is DatasetKind.SRR) or (
            specifier is None and config is not None and bool(config.srr)
        )
        if needs_sra:
            raise MissingToolError(
                status.message or "SRA Toolkit", f"install from {SRA_TOOLKIT_URL}"
            )
        logger.warning(
            "SRR identifiers require the external NCBI SRA Toolkit; %s",
            status.message,
        )

    @staticmethod
    def _target(
        specifier: DatasetSpecifier,
        overrides: FetchOverrides,
        *,
        protein_format: Optional[ProteinFormat] = None,
        srr_format: Optional[SrrFormat] = None,
        paired: Optional[bool] = None,
        include: Optional[List[str]] = None,
    ) -> FetchTarget:
        target = FetchTarget(specifier)
        target.protein_format = (
            overrides.protein_format or protein_format or ProteinFormat.CIF
        )
        target.srr_format = overrides.srr_format or srr_format or SrrFormat.FASTQ
        if overrides.srr_paired is not None:
            target.paired = overrides.srr_paired
        elif paired is not None:
            target.paired = paired
        if include:
            target.include = list(include)
        return target

    def _batch_targets(
        self, config: BatchConfig, overrides: FetchOverrides
    ) -> List[FetchTarget]:
        targets: List[FetchTarget] = []
        for protein in config.proteins:
            targets.append(
                self._target(
                    DatasetSpecifier(DatasetKind.PROTEIN, protein.id),
                    overrides,
                    protein_format=protein.format,
                )
            )
        for genome in config.genomes:
            targets.append(
                self._target(
                    DatasetSpecifier(DatasetKind.GENOME, genome.accession),
                    overrides,
                    include=genome.include,
                )
            )
        for run in config.srr:
            targets.append(
                self._target(
                    DatasetSpecifier(DatasetKind.SRR, run.id),
                    overrides,
                    srr_format=run.format,
                    paired=run.paired,
                )
            )
        for entry in config.uniprot:
            targets.append(
                self._target(DatasetSpecifier(DatasetKind.UNIPROT, entry.id), overrides)
            )
        for entry in config.doi:
            targets.append(
                self._target(DatasetSpecifier(DatasetKind.DOI, entry.id), overrides)
            )
        return targets

    def _fetch_target(
        self,
        target: FetchTarget,
        overrides: FetchOverrides,
        options: FetchOptions,
        progress: ProgressCallback,
    ) -> FetchResult:
        if target.kind is DatasetKind.DOI:
            return self._fetch_doi(
                target.specifier.accession, overrides, options, progress
            )
        handler = build_handler(self.store, self.clients, target)
        item = fetch_dataset(
            self.store, handler, options, progress, self.settings.tool_identity
        )
        return FetchResult(items=[item])

    # DOI --------------------------------------------------------------------

    def resolve_doi(
        self, doi: Doi, options: FetchOptions, progress: ProgressCallback
    ) -> Tuple[DoiResolution, str]:
        """Load the persisted resolution for ``doi`` or compute and persist it."""
        path = self.store.doi_resolution_path(doi)
        if not options.force and self.store.exists(path):
            progress("phase=Store; using persisted DOI resolution")
            payload = self.store.read_json(path)
            try:
                return DoiResolution.from_dict(payload), "reused"
            except (KeyError, TypeError) as exc:
                raise FilesystemError(f"invalid DOI resolution record {path}") from exc

        resolution = self.resolver.resolve(doi, progress)
        if not options.dry_run:
            self.store.ensure_project_root()
            self.store.write_json_atomic(path, resolution.to_dict())
            specifier = DatasetSpecifier(DatasetKind.DOI, doi)
            self.store.write_metadata(
                self.store.metadata_path(
                    StoreTier.PROJECT, DatasetKind.DOI.value, str(doi)
                ),
                build_metadata(
                    source=specifier.resolve_registry().value,
                    dataset_type=DatasetKind.DOI.value,
                    dataset_id=str(doi),
                    fmt=None,
                    path=path,
                    tool=self.settings.tool_identity,
                ),
            )
        return resolution, "resolved"

    def _fetch_doi(
        self,
        doi: Doi,
        overrides: FetchOverrides,
        options: FetchOptions,
        progress: ProgressCallback,
    ) -> FetchResult:
        resolution, action = self.resolve_doi(doi, options, progress)
        path = self.store.doi_resolution_path(doi)
        result = FetchResult()
        result.items.append(
            FetchItemResult(
                dataset_type=DatasetKind.DOI.value,
                id=str(doi),
                format=None,
                source=DatasetSpecifier(DatasetKind.DOI, doi).resolve_registry().value,
                action="project" if action == "reused" else "download",
                project_path=str(path),
                dry_run=options.dry_run,
            )
        )
        for specifier in resolution.resolved_specifiers():
            result.extend(
                self._fetch_target(
                    self._target(specifier, overrides), overrides, options, progress
                )
            )
        result.doi.append(
            DoiFetchSummary(
                doi=str(doi),
                action=action,
                counts=resolution.counts(),
                resolved=len(resolution.resolved_targets),
                unresolved=len(resolution.unresolved),
            )
        )
        return result

    # Inspection -------------------------------------------------------------

    def list(self, progress: Optional[ProgressCallback] = None) -> List[DatasetEntry]:
        (progress or log_progress)("phase=Resolve; scanning stores")
        return merge_entries(
            self.store.list_metadata(StoreTier.PROJECT),
            self.store.list_metadata(StoreTier.CACHE),
        )

    def info(
        self,
        specifier: DatasetSpecifier,
        progress: Optional[ProgressCallback] = None,
    ) -> DatasetEntry:
        key = (specifier.kind.value, specifier.dataset_id)
        (progress or log_progress)(f"phase=Resolve; looking up {key[1]}")
        project = [
            record
            for record in self.store.list_metadata(StoreTier.PROJECT)
            if (record.dataset_type, record.id) == key
        ]
        cache = [
            record
            for record in self.store.list_metadata(StoreTier.CACHE)
            if (record.dataset_type, record.id) == key
        ]
        entries = merge_entries(project, cache)
        if not entries:
            raise DatasetNotFound(f"{key[0]}:{key[1]}")
        return entries[0]

    def clear(self, progress: Optional[ProgressCallback] = None) -> Dict[str, bool]:
        (progress or log_progress)("phase=Store; clearing project store")
        self.store.clear_project()
        return {"cleared": True}

    def init_config(
        self, path: Optional[Path] = None, *, overwrite: bool = False
    ) -> Dict[str, Any]:
        """Write a batch file listing what the project tier currently holds."""
        target = Path(path or self.settings.config_path)
        if target.exists() and not overwrite:
            raise FilesystemError(f"config file {target} already exists")

        config = BatchConfig()
        for record in self.store.list_metadata(StoreTier.PROJECT):
            kind = record.dataset_type
            if kind == DatasetKind.PROTEIN.value:
                config.proteins.append(
                    ProteinRequest(
                        ProteinId.parse(record.id),
                        PROTEIN_FORMATS.get(record.format or "", ProteinFormat.CIF),
                    )
                )
            elif kind == DatasetKind.GENOME.value:
                config.genomes.append(GenomeRequest(GenomeAccession.parse(record.id)))
            elif kind == DatasetKind.SRR.value:
                config.srr.append(
                    SrrRequest(
                        SrrId.parse(record.id),
                        SRR_FORMATS.get(record.format or "", SrrFormat.FASTQ),
                    )
                )
            elif kind == DatasetKind.UNIPROT.value:
                config.uniprot.append(UniprotRequest(UniprotId.parse(record.id)))
            elif kind == DatasetKind.DOI.value:
                config.doi.append(DoiRequest(Doi.parse(record.id)))

        self.store.write_json_atomic(target, config.to_file_dict())
        logger.info("Wrote batch config", extra={"config_path": str(target)})
        return {
            "config_path": str(target),
            "proteins": len(config.proteins),
            "genomes": len(config.genomes),
            "srr": len(config.srr),
            "uniprot": len(config.uniprot),
            "doi": len(config.doi),
        }

    def tools(self) -> Dict[str, Any]:
        status = self.toolchain.status()
        return {
            "ready": status.ready,
            "message": status.message,
            "install_url": SRA_TOOLKIT_URL,
            **self.clients.sra.tool_info().to_dict(),
        }


__all__ = [
    "FetchOptions",
    "FetchOverrides",
    "Orchestrator",
    "build_overrides",
    "log_progress",
]
