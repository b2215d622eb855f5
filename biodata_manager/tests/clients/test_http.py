from __future__ import annotations

import pytest
import requests

from biodata_manager.clients.http import MAX_RETRIES, RegistryHttpClient
from biodata_manager.errors import RegistryStatusError, RegistryTransportError


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(RegistryHttpClient._send.retry, "sleep", lambda _s: None)


def test_transient_status_is_retried(settings, fake_session, make_response) -> None:
    session = fake_session(
        [make_response(503), make_response(200, {"message": "ok"})]
    )
    client = RegistryHttpClient(settings, session=session)

    assert client.get_json("https://example.test/item") == {"message": "ok"}
    assert len(session.calls) == 2
    assert session.headers["User-Agent"] == settings.user_agent


def test_last_transient_status_is_classified(
    settings, fake_session, make_response
) -> None:
    session = fake_session([make_response(503, "busy")] * (MAX_RETRIES + 1))
    client = RegistryHttpClient(settings, session=session)

    with pytest.raises(RegistryStatusError) as excinfo:
        client.get("https://example.test/item")
    assert excinfo.value.status == 503
    assert excinfo.value.body == "busy"
    assert len(session.calls) == MAX_RETRIES + 1


def test_not_found_is_not_retried(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(404, "missing")])
    client = RegistryHttpClient(settings, session=session)

    with pytest.raises(RegistryStatusError) as excinfo:
        client.get("https://example.test/item")
    assert excinfo.value.status == 404
    assert excinfo.value.exit_code == 3
    assert len(session.calls) == 1


def test_connection_errors_become_transport_errors(settings, fake_session) -> None:
    session = fake_session(
        [requests.ConnectionError("reset")] * (MAX_RETRIES + 1)
    )
    client = RegistryHttpClient(settings, session=session)

    with pytest.raises(RegistryTransportError):
        client.get("https://example.test/item")
    assert len(session.calls) == MAX_RETRIES + 1


def test_timeout_then_success(settings, fake_session, make_response) -> None:
    session = fake_session([requests.Timeout("slow"), make_response(200, "ok")])
    client = RegistryHttpClient(settings, session=session)

    assert client.get("https://example.test/item").text == "ok"
    assert session.calls[0][2]["timeout"] == settings.http_timeout


def test_probe_is_a_single_attempt(settings, fake_session, make_response) -> None:
    session = fake_session([make_response(503)])
    client = RegistryHttpClient(settings, session=session)

    assert client.probe("https://example.test/item").status_code == 503
    assert len(session.calls) == 1


def test_invalid_json_is_transport_error(settings, fake_session, make_response):
    session = fake_session([make_response(200, "<html>")])
    client = RegistryHttpClient(settings, session=session)

    with pytest.raises(RegistryTransportError):
        client.get_json("https://example.test/item")


def test_download_to_streams_payload(
    tmp_path, settings, fake_session, make_response
) -> None:
    session = fake_session([make_response(200, b"PK\x03\x04payload")])
    client = RegistryHttpClient(settings, session=session)
    destination = tmp_path / "out" / "dataset.zip"

    client.download_to("https://example.test/dataset.zip", destination)

    assert destination.read_bytes() == b"PK\x03\x04payload"
    method, _url, kwargs = session.calls[0]
    assert method == "GET"
    assert kwargs["stream"] is True
    assert kwargs["timeout"] == settings.download_timeout
