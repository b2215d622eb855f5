from __future__ import annotations

import pytest

from biodata_manager.clients.crossref import CrossrefClient
from biodata_manager.clients.ena import EnaClient, parse_filereport
from biodata_manager.errors import RegistryStatusError, RegistryTransportError
from biodata_manager.models.ids import Doi


def test_parse_filereport_collects_runs() -> None:
    text = "run_accession\nERR900\nERR100\nERR900\n"
    assert parse_filereport(text) == ["ERR100", "ERR900"]


def test_parse_filereport_keeps_only_srr_and_err_runs() -> None:
    text = "run_accession\nDRR000001\nERR5\nsrr7\n\n"
    assert parse_filereport(text) == ["ERR5", "SRR7"]


def test_parse_filereport_without_run_column() -> None:
    assert parse_filereport("study_accession\nERP1\n") == []
    assert parse_filereport("") == []


def test_read_runs_queries_portal(settings, fake_session, make_response) -> None:
    session = fake_session(
        [make_response(200, "run_accession\tfastq_ftp\nERR1\tftp://x\n")]
    )
    client = EnaClient(settings, session=session)

    assert client.read_runs("ERP012345") == ["ERR1"]
    params = session.calls[0][2]["params"]
    assert params["accession"] == "ERP012345"
    assert params["result"] == "read_run"


def test_read_runs_status_error(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(400, "invalid accession")])
    client = EnaClient(settings, session=session)

    with pytest.raises(RegistryStatusError):
        client.read_runs("ERP0")


def test_crossref_returns_message(settings, fake_session, make_response) -> None:
    session = fake_session(
        [make_response(200, {"status": "ok", "message": {"title": ["T"]}})]
    )
    client = CrossrefClient(settings, session=session)

    assert client.fetch_work(Doi.parse("10.1000/a b")) == {"title": ["T"]}
    assert session.calls[0][1] == "https://api.crossref.org/works/10.1000%2Fa%20b"


def test_crossref_unexpected_shape(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(200, {"status": "ok"})])
    client = CrossrefClient(settings, session=session)

    with pytest.raises(RegistryTransportError):
        client.fetch_work(Doi.parse("10.1000/xyz"))
