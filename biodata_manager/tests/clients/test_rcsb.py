from __future__ import annotations

from biodata_manager.clients.rcsb import RcsbClient, parse_entry
from biodata_manager.models.ids import ProteinFormat, ProteinId

ENTRY = {
    "struct": {"title": "LYSOZYME"},
    "exptl": [{"method": "X-RAY DIFFRACTION"}],
    "rcsb_entry_info": {"resolution_combined": [1.5]},
    "rcsb_accession_info": {
        "deposit_date": "1975-01-01T00:00:00+0000",
        "initial_release_date": "1976-01-01T00:00:00+0000",
    },
}


def test_parse_entry_summarizes_record() -> None:
    metadata = parse_entry("1LYZ", ENTRY)

    assert metadata.title == "LYSOZYME"
    assert metadata.experimental_method == "X-RAY DIFFRACTION"
    assert metadata.resolution == 1.5
    assert metadata.deposition_date.startswith("1975")
    assert metadata.raw_json is ENTRY


def test_parse_entry_tolerates_missing_fields() -> None:
    metadata = parse_entry("9XYZ", {"rcsb_entry_info": {"resolution_combined": []}})

    assert metadata.title is None
    assert metadata.resolution is None
    assert metadata.experimental_method is None


def test_fetch_metadata_builds_sidecar(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(200, ENTRY)])
    client = RcsbClient(settings, session=session)
    protein = ProteinId.parse("1lyz")

    metadata = client.fetch_metadata(protein)
    metadata.structure_url = client.structure_url(protein, ProteinFormat.BCIF)
    sidecar = metadata.to_sidecar()

    assert session.calls[0][1] == "https://data.rcsb.org/rest/v1/core/entry/1LYZ"
    assert sidecar["registry"] == "rcsb"
    assert sidecar["pdb_id"] == "1LYZ"
    assert sidecar["source_urls"] == {
        "structure": "https://files.rcsb.org/download/1LYZ.bcif",
        "metadata": "https://data.rcsb.org/rest/v1/core/entry/1LYZ",
    }


def test_entry_exists_uses_status(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(200, ENTRY), make_response(404)])
    client = RcsbClient(settings, session=session)

    assert client.entry_exists("1LYZ") is True
    assert client.entry_exists("0000") is False
