from __future__ import annotations

from typing import Any, Dict

import pytest

from biodata_manager.errors import (
    DatasetNotFound,
    FilesystemError,
    MissingToolError,
    UnsupportedFormatError,
)
from biodata_manager.models.batch import load_batch_config, parse_config_text
from biodata_manager.models.ids import (
    DatasetKind,
    DatasetSpecifier,
    Doi,
    ProteinFormat,
    SrrFormat,
)
from biodata_manager.services.cache import StoreTier
from biodata_manager.services.doi_resolution import DoiResolver
from biodata_manager.services.metadata import build_metadata
from biodata_manager.services.tools import ToolStatus
from biodata_manager.workflow.fetch import FetchOptions
from biodata_manager.workflow.handlers import RegistryClients
from biodata_manager.workflow.orchestrator import Orchestrator, build_overrides

TOOL = "biodata-manager/0.1.0"
DOI = Doi.parse("10.1000/xyz")


class StubToolchain:
    def __init__(self, ready: bool = True) -> None:
        self.ready = ready

    def status(self) -> ToolStatus:
        if self.ready:
            return ToolStatus(ready=True)
        return ToolStatus.missing("missing fasterq-dump (SRA Toolkit)")


class StubSra:
    def tool_info(self):
        return _ToolInfo()


class _ToolInfo:
    def to_dict(self) -> Dict[str, Any]:
        return {"datasets": None, "sra_toolkit": "fasterq-dump 3.0.0"}


def _orchestrator(settings, store, resolver_clients, *, ready: bool = True):
    parts = resolver_clients()
    clients = RegistryClients(
        rcsb=parts["rcsb"],
        ncbi=parts["ncbi"],
        uniprot=parts["uniprot"],
        geo=parts["geo"],
        knowledge=None,
        sra=StubSra(),
        crossref=parts["crossref"],
        eutils=parts["eutils"],
        ena=parts["ena"],
    )
    return Orchestrator(
        settings,
        store=store,
        clients=clients,
        toolchain=StubToolchain(ready),
        resolver=DoiResolver(**parts),
    )


def _record(store, tier: StoreTier, kind: str, identifier: str, fmt=None) -> None:
    store.write_metadata(
        store.metadata_path(tier, kind, identifier),
        build_metadata(
            source="rcsb" if kind == "protein" else "ncbi",
            dataset_type=kind,
            dataset_id=identifier,
            fmt=fmt,
            path=store.root(tier) / kind / identifier,
            tool=TOOL,
        ),
    )


def _quiet(_message: str) -> None:
    return None


def test_doi_dry_run_fans_out_without_writing(
    settings, store, resolver_clients
) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)

    result = orchestrator.fetch(
        DatasetSpecifier(DatasetKind.DOI, DOI),
        options=FetchOptions(dry_run=True),
        progress=_quiet,
    )

    assert result.items[0].dataset_type == "doi"
    assert [(item.dataset_type, item.id) for item in result.items[1:]] == [
        ("genome", "GCF_000005845.2"),
        ("protein", "1LYZ"),
        ("srr", "ERR123456"),
        ("srr", "ERR900"),
        ("srr", "SRR014966"),
        ("srr", "SRR100"),
        ("srr", "SRR200"),
        ("srr", "SRR300"),
        ("uniprot", "P69905"),
    ]
    assert all(item.dry_run for item in result.items)
    summary = result.doi[0]
    assert summary.action == "resolved"
    assert summary.resolved == 9
    assert not store.doi_resolution_path(DOI).exists()


def test_persisted_resolution_is_reused(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    crossref = orchestrator.clients.crossref

    first, first_action = orchestrator.resolve_doi(DOI, FetchOptions(), _quiet)
    second, second_action = orchestrator.resolve_doi(DOI, FetchOptions(), _quiet)

    assert (first_action, second_action) == ("resolved", "reused")
    assert crossref.calls == ["10.1000/xyz"]
    assert second.resolved_targets == first.resolved_targets
    assert store.metadata_path(StoreTier.PROJECT, "doi", "10.1000/xyz").exists()

    result = orchestrator.fetch(
        DatasetSpecifier.parse("doi:10.1000/xyz"),
        options=FetchOptions(dry_run=True),
        progress=_quiet,
    )
    assert result.items[0].action == "project"
    assert result.doi[0].action == "reused"
    assert crossref.calls == ["10.1000/xyz"]


def test_force_resolves_again(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    orchestrator.resolve_doi(DOI, FetchOptions(), _quiet)

    _resolution, action = orchestrator.resolve_doi(
        DOI, FetchOptions(force=True), _quiet
    )

    assert action == "resolved"
    assert len(orchestrator.clients.crossref.calls) == 2


def test_batch_runs_in_declaration_order(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    config = parse_config_text(
        """{
          "proteins": [{"id": "4hhb", "format": "pdb"}, "1lyz"],
          "genomes": ["GCF_000005845.2"],
          "srr": [{"id": "SRR1", "format": "fasta", "paired": true}],
          "uniprot": ["P69905"]
        }"""
    )

    result = orchestrator.fetch(
        config=config, options=FetchOptions(dry_run=True), progress=_quiet
    )

    assert [(item.dataset_type, item.id, item.format) for item in result.items] == [
        ("protein", "4HHB", "pdb"),
        ("protein", "1LYZ", "cif"),
        ("genome", "GCF_000005845.2", None),
        ("srr", "SRR1", "fasta"),
        ("uniprot", "P69905", None),
    ]
    assert result.doi == []


def test_overrides_apply_to_whole_batch(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    config = parse_config_text('{"proteins": [{"id": "4hhb", "format": "pdb"}]}')

    result = orchestrator.fetch(
        config=config,
        overrides=build_overrides(None, "bcif"),
        options=FetchOptions(dry_run=True),
        progress=_quiet,
    )

    assert result.items[0].format == "bcif"


def test_batch_defaults_to_configured_file(
    settings, store, resolver_clients
) -> None:
    settings.config_path.write_text('{"uniprot": ["P69905"]}', encoding="utf-8")
    orchestrator = _orchestrator(settings, store, resolver_clients)

    result = orchestrator.fetch(options=FetchOptions(dry_run=True), progress=_quiet)

    assert [item.id for item in result.items] == ["P69905"]


def test_srr_requires_tools(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients, ready=False)

    with pytest.raises(MissingToolError):
        orchestrator.fetch(
            DatasetSpecifier.parse("srr:SRR1"),
            options=FetchOptions(dry_run=True),
            progress=_quiet,
        )
    with pytest.raises(MissingToolError):
        orchestrator.fetch(
            config=parse_config_text('{"srr": ["SRR1"]}'),
            options=FetchOptions(dry_run=True),
            progress=_quiet,
        )


def test_missing_tools_only_warn_for_other_kinds(
    settings, store, resolver_clients, caplog
) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients, ready=False)

    with caplog.at_level("WARNING"):
        result = orchestrator.fetch(
            DatasetSpecifier.parse("uniprot:P69905"),
            options=FetchOptions(dry_run=True),
            progress=_quiet,
        )

    assert result.items[0].action == "download"
    assert "SRA Toolkit" in caplog.text


def test_list_merges_tiers(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    _record(store, StoreTier.PROJECT, "protein", "1LYZ", "cif")
    _record(store, StoreTier.CACHE, "protein", "1LYZ", "cif")
    _record(store, StoreTier.CACHE, "genome", "GCF_000005845.2")

    entries = orchestrator.list(_quiet)

    assert [(entry.dataset_type, entry.id) for entry in entries] == [
        ("genome", "GCF_000005845.2"),
        ("protein", "1LYZ"),
    ]
    assert entries[0].project_path is None
    assert entries[1].project_path is not None
    assert entries[1].cache_path is not None


def test_info_finds_one_dataset(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    _record(store, StoreTier.CACHE, "protein", "1LYZ", "cif")

    entry = orchestrator.info(DatasetSpecifier.parse("protein:1lyz"), _quiet)

    assert entry.format == "cif"
    assert entry.project_path is None

    with pytest.raises(DatasetNotFound):
        orchestrator.info(DatasetSpecifier.parse("protein:4hhb"), _quiet)


def test_clear_keeps_cache(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    _record(store, StoreTier.PROJECT, "protein", "1LYZ", "cif")
    _record(store, StoreTier.CACHE, "protein", "1LYZ", "cif")

    assert orchestrator.clear(_quiet) == {"cleared": True}

    assert not store.project_root.exists()
    assert [entry.project_path for entry in orchestrator.list(_quiet)] == [None]
    assert orchestrator.clear(_quiet) == {"cleared": True}


def test_init_config_lists_project_datasets(
    settings, store, resolver_clients
) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients)
    _record(store, StoreTier.PROJECT, "protein", "1LYZ", "pdb")
    _record(store, StoreTier.PROJECT, "srr", "SRR1", "fasta")
    _record(store, StoreTier.CACHE, "uniprot", "P69905")

    summary = orchestrator.init_config()

    assert summary["proteins"] == 1
    assert summary["srr"] == 1
    assert summary["uniprot"] == 0
    config = load_batch_config(settings.config_path)
    assert config.proteins[0].format is ProteinFormat.PDB
    assert config.srr[0].format is SrrFormat.FASTA

    with pytest.raises(FilesystemError):
        orchestrator.init_config()
    assert orchestrator.init_config(overwrite=True)["proteins"] == 1


def test_tools_reports_status(settings, store, resolver_clients) -> None:
    orchestrator = _orchestrator(settings, store, resolver_clients, ready=False)

    report = orchestrator.tools()

    assert report["ready"] is False
    assert report["sra_toolkit"] == "fasterq-dump 3.0.0"
    assert report["install_url"].startswith("https://")


@pytest.mark.parametrize(
    "text, fmt, paired",
    [
        ("protein:1lyz", "fastq", False),
        ("srr:SRR1", "pdb", False),
        ("genome:GCF_000005845.2", "fasta", False),
        ("protein:1lyz", None, True),
        (None, "xml", False),
    ],
)
def test_build_overrides_rejects(text, fmt, paired) -> None:
    specifier = DatasetSpecifier.parse(text) if text else None

    with pytest.raises(UnsupportedFormatError):
        build_overrides(specifier, fmt, paired)


def test_build_overrides_routes_by_value() -> None:
    assert build_overrides(None, "PDB").protein_format is ProteinFormat.PDB
    assert build_overrides(None, "fasta").srr_format is SrrFormat.FASTA
    overrides = build_overrides(DatasetSpecifier.parse("srr:SRR1"), "fasta", True)
    assert overrides.srr_format is SrrFormat.FASTA
    assert overrides.srr_paired is True
