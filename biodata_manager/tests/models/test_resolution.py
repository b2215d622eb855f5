from __future__ import annotations

from biodata_manager.models.ids import DatasetKind
from biodata_manager.models.resolution import (
    DoiResolution,
    DoiSource,
    ExtractedIds,
    HydratedGeo,
    IdStatus,
    ResolvedTarget,
    UnresolvedId,
)


def test_resolved_targets_sort_deterministically() -> None:
    targets = {
        ResolvedTarget("srr", "SRR2"),
        ResolvedTarget("protein", "1LYZ"),
        ResolvedTarget("srr", "SRR1"),
        ResolvedTarget("srr", "SRR1"),
    }
    assert sorted(targets) == [
        ResolvedTarget("protein", "1LYZ"),
        ResolvedTarget("srr", "SRR1"),
        ResolvedTarget("srr", "SRR2"),
    ]


def test_counts_use_short_bucket_names() -> None:
    extracted = ExtractedIds(geo_series=["GSE1"], sra_runs=["SRR1", "SRR2"])
    counts = extracted.counts()
    assert counts["gse"] == 1
    assert counts["srr"] == 2
    assert counts["ena_project"] == 0
    assert list(counts) == [
        "gse",
        "gsm",
        "srr",
        "err",
        "bioproject",
        "ena_project",
        "assembly",
        "pdb",
        "uniprot",
    ]
    assert not extracted.is_empty()
    assert ExtractedIds().is_empty()


def test_persisted_resolution_reloads() -> None:
    resolution = DoiResolution(
        doi="10.1000/xyz",
        source=DoiSource(title="A study", references=["GSE1"]),
        extracted=ExtractedIds(geo_series=["GSE1"], pdb=["1LYZ"]),
        resolved_targets=[
            ResolvedTarget("protein", "1LYZ"),
            ResolvedTarget("srr", "SRR1"),
        ],
        unresolved=[UnresolvedId("gse", "GSE2", "not found")],
    )
    resolution.validation.pdb.append(IdStatus("pdb", "1LYZ", True))
    resolution.validation.sra_runs.append(
        IdStatus("srr", "SRR1", True, source="from gse")
    )
    resolution.hydrated.geo.append(HydratedGeo("GSE1", ["GSM1"], ["SRR1"]))

    reloaded = DoiResolution.from_dict(resolution.to_dict())

    assert reloaded == resolution
    specs = reloaded.resolved_specifiers()
    assert [spec.kind for spec in specs] == [DatasetKind.PROTEIN, DatasetKind.SRR]
    assert [spec.dataset_id for spec in specs] == ["1LYZ", "SRR1"]
