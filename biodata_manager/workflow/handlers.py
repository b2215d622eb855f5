"""Per-kind handler factories plugged into :func:`fetch_dataset`."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote, urlparse

from biodata_manager.clients import (
    CrossrefClient,
    EnaClient,
    EutilsClient,
    GeoClient,
    KnowledgeClient,
    NcbiDatasetsClient,
    RcsbClient,
    SraToolkitClient,
    UniprotClient,
)
from biodata_manager.clients.geo import extract_organism, extract_supplementary_urls
from biodata_manager.config import Settings
from biodata_manager.errors import FilesystemError, GeoResolutionError
from biodata_manager.models.batch import default_genome_include
from biodata_manager.models.ids import (
    DatasetKind,
    DatasetSpecifier,
    ProteinFormat,
    SrrFormat,
)
from biodata_manager.services.archive import extract_zip, validate_zip
from biodata_manager.services.cache import Store, StoreTier
from biodata_manager.services.tools import SraToolchain
from biodata_manager.workflow.fetch import DatasetHandler, StagedDataset

logger = logging.getLogger(__name__)

PROTEIN_SIDECARS = ("metadata.json", "metadata.raw.json")

# Supplementary files that make up a 10x Genomics matrix.
TEN_X_PATTERN = re.compile(
    r"(matrix\.mtx|barcodes\.tsv|features\.tsv|genes\.tsv|\.h5$|\.h5\.gz$"
    r"|filtered_feature_bc_matrix|\.tar$|\.tar\.gz$)",
    re.IGNORECASE,
)


@dataclass
class RegistryClients:
    rcsb: RcsbClient
    ncbi: NcbiDatasetsClient
    uniprot: UniprotClient
    geo: GeoClient
    knowledge: KnowledgeClient
    sra: SraToolkitClient
    crossref: CrossrefClient
    eutils: EutilsClient
    ena: EnaClient

    @classmethod
    def from_settings(
        cls, settings: Settings, toolchain: SraToolchain
    ) -> "RegistryClients":
        return cls(
            rcsb=RcsbClient(settings),
            ncbi=NcbiDatasetsClient(settings),
            uniprot=UniprotClient(settings),
            geo=GeoClient(settings),
            knowledge=KnowledgeClient(settings),
            sra=SraToolkitClient(toolchain),
            crossref=CrossrefClient(settings),
            eutils=EutilsClient(settings),
            ena=EnaClient(settings),
        )


@dataclass
class FetchTarget:
    """A specifier plus the per-kind options that shape its payload."""

    specifier: DatasetSpecifier
    protein_format: ProteinFormat = ProteinFormat.CIF
    srr_format: SrrFormat = SrrFormat.FASTQ
    paired: bool = False
    include: List[str] = field(default_factory=default_genome_include)

    @property
    def kind(self) -> DatasetKind:
        return self.specifier.kind


HandlerFactory = Callable[[Store, RegistryClients, FetchTarget], DatasetHandler]


def _payload_dir(staging: Path) -> Path:
    payload = staging / "payload"
    try:
        payload.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"create {payload}: {exc}") from exc
    return payload


def _write_text(path: Path, text: str) -> None:
    Store.write_bytes_atomic(path, text.encode("utf-8"))


def _protein_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    protein_id = target.specifier.accession
    fmt = target.protein_format

    def download(staging: Path) -> StagedDataset:
        structure = staging / f"{protein_id}.{fmt.extension}"
        clients.rcsb.download_structure(protein_id, fmt, structure)
        metadata = clients.rcsb.fetch_metadata(protein_id)
        metadata.structure_url = clients.rcsb.structure_url(protein_id, fmt)
        sidecar = staging / "metadata.json"
        raw = staging / "metadata.raw.json"
        Store.write_json_atomic(sidecar, metadata.to_sidecar())
        Store.write_json_atomic(raw, metadata.raw_json)
        return StagedDataset(payload=structure, sidecars=[sidecar, raw])

    return DatasetHandler(
        dataset_type=target.kind.value,
        dataset_id=str(protein_id),
        format=fmt.value,
        source=target.specifier.resolve_registry(fmt).value,
        project_path=store.protein_path(StoreTier.PROJECT, protein_id, fmt),
        cache_path=store.protein_path(StoreTier.CACHE, protein_id, fmt),
        download=download,
        sidecars=PROTEIN_SIDECARS,
    )


def _genome_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    accession = target.specifier.accession

    def download(staging: Path) -> StagedDataset:
        archive = staging / "dataset.zip"
        info = clients.ncbi.download_genome(accession, target.include, archive)
        if not archive.exists():
            raise FilesystemError(f"genome download missing file: {archive}")
        if not info.is_zip:
            raise FilesystemError("expected genome download to be a zip archive")
        return StagedDataset(payload=archive)

    def verify(staged: StagedDataset, staging: Path) -> StagedDataset:
        validate_zip(staged.payload)
        extract_dir = staging / "extract"
        extract_zip(staged.payload, extract_dir)
        return StagedDataset(payload=extract_dir)

    return DatasetHandler(
        dataset_type=target.kind.value,
        dataset_id=str(accession),
        format=None,
        source=target.specifier.resolve_registry().value,
        project_path=store.genome_dir(StoreTier.PROJECT, accession),
        cache_path=store.genome_dir(StoreTier.CACHE, accession),
        download=download,
        verify=verify,
    )


def _srr_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    run_id = target.specifier.accession

    def download(staging: Path) -> StagedDataset:
        payload = _payload_dir(staging)
        files = clients.sra.download(run_id, target.srr_format, target.paired, payload)
        logger.debug(
            "SRA run produced %d files", len(files), extra={"run": str(run_id)}
        )
        return StagedDataset(payload=payload)

    return DatasetHandler(
        dataset_type=target.kind.value,
        dataset_id=str(run_id),
        format=target.srr_format.value,
        source=target.specifier.resolve_registry().value,
        project_path=store.srr_dir(StoreTier.PROJECT, run_id),
        cache_path=store.srr_dir(StoreTier.CACHE, run_id),
        download=download,
    )


def _uniprot_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    uniprot_id = target.specifier.accession

    def download(staging: Path) -> StagedDataset:
        payload = _payload_dir(staging)
        record = clients.uniprot.fetch(uniprot_id)
        Store.write_json_atomic(payload / f"{uniprot_id}.json", record.raw_json)
        _write_text(payload / f"{uniprot_id}.fasta", record.fasta)
        Store.write_json_atomic(payload / "metadata.json", record.metadata.to_dict())
        return StagedDataset(payload=payload)

    return DatasetHandler(
        dataset_type=target.kind.value,
        dataset_id=str(uniprot_id),
        format=None,
        source=target.specifier.resolve_registry().value,
        project_path=store.uniprot_dir(StoreTier.PROJECT, uniprot_id),
        cache_path=store.uniprot_dir(StoreTier.CACHE, uniprot_id),
        download=download,
    )


def _url_filename(url: str) -> str:
    """Decoded last path segment of ``url``, refused if it could leave its directory."""
    raw = unquote(urlparse(url).path.rstrip("/").rsplit("/", 1)[-1])
    name = PurePosixPath(raw).name
    if name != raw or "\\" in raw or name in ("", ".", ".."):
        raise GeoResolutionError(f"unsafe supplementary file name in {url!r}")
    return name


def supplementary_filenames(urls: List[str]) -> List[str]:
    """Local names for ``urls``; repeated basenames get an index prefix."""
    names: List[str] = []
    taken = set()
    for index, url in enumerate(urls, start=1):
        name = _url_filename(url)
        candidate = name
        while candidate in taken:
            candidate = f"{index}_{candidate}"
        taken.add(candidate)
        names.append(candidate)
    return names


def select_supplementary(urls: List[str], *, ten_x: bool) -> List[str]:
    if not ten_x:
        return list(urls)
    return [url for url in urls if TEN_X_PATTERN.search(_url_filename(url))]


def _expression_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    accession = target.specifier.accession
    ten_x = target.kind is DatasetKind.EXPRESSION_10X

    def download(staging: Path) -> StagedDataset:
        payload = _payload_dir(staging)
        soft_text = clients.geo.fetch_soft_text(accession)
        _write_text(payload / f"{accession}_family.soft", soft_text)

        urls = select_supplementary(extract_supplementary_urls(soft_text), ten_x=ten_x)
        if ten_x and not urls:
            raise GeoResolutionError(
                f"no 10x Genomics supplementary files listed for {accession}"
            )
        files = supplementary_filenames(urls)
        for url, name in zip(urls, files):
            clients.geo.download_url(url, payload / "supplementary" / name)

        Store.write_json_atomic(
            payload / "metadata.json",
            {
                "registry": "geo",
                "accession": str(accession),
                "organism": extract_organism(soft_text),
                "ten_x": ten_x,
                "supplementary_files": files,
            },
        )
        return StagedDataset(payload=payload)

    return DatasetHandler(
        dataset_type=target.kind.value,
        dataset_id=str(accession),
        format=None,
        source=target.specifier.resolve_registry().value,
        project_path=store.expression_dir(StoreTier.PROJECT, accession, ten_x=ten_x),
        cache_path=store.expression_dir(StoreTier.CACHE, accession, ten_x=ten_x),
        download=download,
    )


def _knowledge_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    name = target.kind.value

    def download(staging: Path) -> StagedDataset:
        payload = _payload_dir(staging)
        files = clients.knowledge.download(name, payload)
        release: Dict[str, Optional[str]] = {}
        if target.kind is DatasetKind.GO:
            version, date = clients.knowledge.go_release(files[0])
            release = {"data_version": version, "date": date}
        Store.write_json_atomic(
            payload / "metadata.json",
            {
                "registry": name,
                "files": [path.name for path in files],
                **release,
            },
        )
        return StagedDataset(payload=payload)

    return DatasetHandler(
        dataset_type=name,
        dataset_id=name,
        format=None,
        source=target.specifier.resolve_registry().value,
        project_path=store.knowledge_dir(StoreTier.PROJECT, name),
        cache_path=store.knowledge_dir(StoreTier.CACHE, name),
        download=download,
    )


HANDLER_FACTORIES: Dict[DatasetKind, HandlerFactory] = {
    DatasetKind.PROTEIN: _protein_handler,
    DatasetKind.GENOME: _genome_handler,
    DatasetKind.SRR: _srr_handler,
    DatasetKind.UNIPROT: _uniprot_handler,
    DatasetKind.EXPRESSION: _expression_handler,
    DatasetKind.EXPRESSION_10X: _expression_handler,
    DatasetKind.GO: _knowledge_handler,
    DatasetKind.KEGG: _knowledge_handler,
    DatasetKind.REACTOME: _knowledge_handler,
}


def build_handler(
    store: Store, clients: RegistryClients, target: FetchTarget
) -> DatasetHandler:
    try:
        factory = HANDLER_FACTORIES[target.kind]
    except KeyError as exc:
        message = f"No handler registered for kind: {target.kind.value}"
        raise ValueError(message) from exc
    return factory(store, clients, target)


__all__ = [
    "FetchTarget",
    "HANDLER_FACTORIES",
    "HandlerFactory",
    "RegistryClients",
    "TEN_X_PATTERN",
    "build_handler",
    "select_supplementary",
    "supplementary_filenames",
]
