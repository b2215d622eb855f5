from __future__ import annotations

import pytest

from biodata_manager.clients.knowledge import (
    KNOWLEDGE_FILES,
    KnowledgeClient,
    parse_go_header,
)

OBO_HEADER = b"""format-version: 1.2
data-version: releases/2024-01-17
date: 17:01:2024 10:00
saved-by: go
"""


def test_parse_go_header() -> None:
    assert parse_go_header(OBO_HEADER) == (
        "releases/2024-01-17",
        "17:01:2024 10:00",
    )
    assert parse_go_header(b"format-version: 1.2\n") == (None, None)


def test_header_must_be_near_the_top() -> None:
    late = b"\n" * 60 + b"data-version: releases/late\n"
    assert parse_go_header(late) == (None, None)


def test_download_writes_every_file(
    tmp_path, settings, fake_session, make_response
) -> None:
    session = fake_session([make_response(200, "path:map00010\tGlycolysis\n")] * 2)
    client = KnowledgeClient(settings, session=session)

    files = client.download("kegg", tmp_path)

    assert [path.name for path in files] == ["pathway.list", "pathway_ko.link"]
    assert [call[1] for call in session.calls] == [
        item.url for item in KNOWLEDGE_FILES["kegg"]
    ]


def test_go_release_reads_downloaded_file(tmp_path, settings) -> None:
    obo = tmp_path / "go-basic.obo"
    obo.write_bytes(OBO_HEADER + b"[Term]\nid: GO:0000001\n")

    release = KnowledgeClient(settings).go_release(obo)

    assert release == ("releases/2024-01-17", "17:01:2024 10:00")


def test_unknown_knowledge_base(tmp_path, settings) -> None:
    with pytest.raises(ValueError):
        KnowledgeClient(settings).download("biocyc", tmp_path)
