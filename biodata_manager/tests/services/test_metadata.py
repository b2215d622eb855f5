from __future__ import annotations

from pathlib import Path

from biodata_manager.services.metadata import build_metadata, merge_entries


def _record(kind: str, dataset_id: str, path: str, fmt: str | None = None):
    return build_metadata(
        source="rcsb" if kind == "protein" else "ncbi",
        dataset_type=kind,
        dataset_id=dataset_id,
        fmt=fmt,
        path=Path(path),
        tool="biodata-manager/test",
    )


def test_build_metadata_shape() -> None:
    record = _record("protein", "1LYZ", "/p/proteins/1LYZ/1LYZ.cif", "cif")
    payload = record.to_dict()

    assert set(payload) == {
        "source",
        "dataset_type",
        "id",
        "format",
        "downloaded_at",
        "tool",
        "resolved_path",
    }
    assert payload["downloaded_at"].endswith("+00:00")


def test_merge_entries_joins_tiers_sorted() -> None:
    project = [_record("srr", "SRR2", "/p/srr/SRR2", "fastq")]
    cache = [
        _record("srr", "SRR2", "/c/srr/SRR2", "fastq"),
        _record("protein", "1LYZ", "/c/proteins/1LYZ/1LYZ.cif", "cif"),
        _record("genome", "GCF_000005845.2", "/c/genomes/GCF_000005845.2"),
    ]

    entries = merge_entries(project, cache)

    assert [(entry.dataset_type, entry.id) for entry in entries] == [
        ("genome", "GCF_000005845.2"),
        ("protein", "1LYZ"),
        ("srr", "SRR2"),
    ]
    srr = entries[2]
    assert srr.project_path == "/p/srr/SRR2"
    assert srr.cache_path == "/c/srr/SRR2"
    assert entries[1].project_path is None
    assert entries[1].format == "cif"
