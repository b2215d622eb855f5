from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import requests

from biodata_manager.config import Settings
from biodata_manager.errors import RegistryStatusError, RegistryTransportError
from biodata_manager.services.cache import Store

FIXTURES = Path(__file__).parent / "fixtures"


def _make_response(
    status: int = 200,
    content: bytes | str | Dict[str, Any] | List[Any] = b"",
    headers: Optional[Dict[str, str]] = None,
    url: str = "https://example.test/",
) -> requests.Response:
    if isinstance(content, (dict, list)):
        content = json.dumps(content)
    if isinstance(content, str):
        content = content.encode("utf-8")
    response = requests.Response()
    response.status_code = status
    response._content = content
    response._content_consumed = True
    response.encoding = "utf-8"
    response.url = url
    response.headers.update(headers or {})
    return response


class FakeSession:
    """Stands in for ``requests.Session``; replays queued responses."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.headers: Dict[str, str] = {}
        self.responses = list(responses or [])
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def _next(self, method: str, url: str, kwargs: Dict[str, Any]):
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def request(self, method: str, url: str, **kwargs: Any):
        return self._next(method, url, kwargs)

    def get(self, url: str, **kwargs: Any):
        return self._next("GET", url, kwargs)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        project_root=tmp_path / "project",
        cache_root=tmp_path / "cache",
        config_path=tmp_path / "biodata.json",
        tool_path=str(tmp_path / "bin"),
        ncbi_api_key=None,
    )


@pytest.fixture
def store(settings: Settings) -> Store:
    return Store.from_settings(settings)


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    return _make_response


@pytest.fixture
def fake_session() -> Callable[..., FakeSession]:
    return FakeSession


@pytest.fixture
def uniprot_entry() -> Dict[str, Any]:
    return json.loads((FIXTURES / "uniprot_P69905.json").read_text(encoding="utf-8"))


class DummyCrossref:
    def __init__(self, message: Dict[str, Any]) -> None:
        self.message = message
        self.calls: List[str] = []

    def fetch_work(self, doi) -> Dict[str, Any]:
        self.calls.append(str(doi))
        return self.message


class DummyExistence:
    """Answers every registry existence probe from a fixed set of ids."""

    def __init__(self, known=(), failing=()) -> None:
        self.known = set(known)
        self.failing = set(failing)

    def _exists(self, identifier: str) -> bool:
        if identifier in self.failing:
            raise RegistryTransportError("probe", f"timeout for {identifier}")
        return identifier in self.known

    def entry_exists(self, identifier: str) -> bool:
        return self._exists(identifier)

    def assembly_exists(self, identifier: str) -> bool:
        return self._exists(identifier)


class DummyEutils:
    def __init__(
        self,
        search: Dict[Tuple[str, str], List[str]],
        links: Optional[Dict[Tuple[str, str, Tuple[str, ...]], List[str]]] = None,
        runs: Optional[Dict[Tuple[str, ...], List[str]]] = None,
        assemblies: Optional[Dict[Tuple[str, ...], List[str]]] = None,
    ) -> None:
        self.search = search
        self.links = links or {}
        self.runs = runs or {}
        self.assemblies = assemblies or {}

    def esearch_ids(self, db: str, term: str) -> List[str]:
        return list(self.search.get((db, term), []))

    def elink_ids(self, dbfrom: str, db: str, ids) -> List[str]:
        return list(self.links.get((dbfrom, db, tuple(ids)), []))

    def esummary_sra_runs(self, ids) -> List[str]:
        return list(self.runs.get(tuple(ids), []))

    def esummary_assembly_accessions(self, ids) -> List[str]:
        return list(self.assemblies.get(tuple(ids), []))


class DummyGeo:
    def __init__(self, records: Dict[str, Any]) -> None:
        self.records = records

    def fetch_record_text(self, accession: str) -> str:
        record = self.records.get(accession, "")
        if isinstance(record, Exception):
            raise record
        return record


class DummyEna:
    def __init__(self, projects: Dict[str, Any]) -> None:
        self.projects = projects

    def read_runs(self, project: str) -> List[str]:
        runs = self.projects.get(project, [])
        if isinstance(runs, Exception):
            raise runs
        return list(runs)


PUBLICATION = {
    "title": ["Lysozyme dynamics across GSE12345"],
    "abstract": (
        "We solved 1lyz and profiled p69905 on assembly GCF_000005845.2 "
        "with run SRR014966 under PRJNA123456 and ERP012345."
    ),
    "reference": [
        {"unstructured": "Samples GSM67890 and ERR123456 were reused."},
        {"DOI": "10.12345/other"},
    ],
    "link": [{"URL": "https://example.org/gse12345"}],
    "resource": {"primary": {"URL": "https://example.org/article"}},
    "assertion": [
        {"label": "Data Availability", "value": "GCA_000005845.1"},
        {"label": "Funding", "value": "GSE99999"},
    ],
}


def _run_search(*runs: str) -> Dict[Tuple[str, str], List[str]]:
    return {("sra", f"{run}[Accession]"): [f"uid-{run}"] for run in runs}


def build_resolver_clients(
    *,
    sample_order: Tuple[str, ...] = ("GSM111", "GSM222"),
    ena_runs: Optional[List[str]] = None,
    message: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    search = {
        ("gds", "GSE12345[Accession]"): ["200012345"],
        ("gds", "GSM67890[Accession]"): ["300067890"],
        ("bioproject", "PRJNA123456[Accession]"): ["123456"],
        ("sra", "SRX100[Accession]"): ["9"],
    }
    search.update(
        _run_search("SRR014966", "ERR123456", "SRR100", "SRR200", "SRR300", "ERR900")
    )
    series_text = "\n".join(
        f"!Series_sample_id = {sample}" for sample in sample_order
    )
    return {
        "crossref": DummyCrossref(message or PUBLICATION),
        "eutils": DummyEutils(
            search,
            links={
                ("bioproject", "sra", ("123456",)): ["20"],
                ("bioproject", "assembly", ("123456",)): ["30"],
            },
            runs={("9",): ["SRR100"], ("20",): ["SRR300"]},
            assemblies={("30",): ["GCF_000005845.2"]},
        ),
        "ena": DummyEna(
            {"ERP012345": ena_runs if ena_runs is not None else ["ERR900"]}
        ),
        "rcsb": DummyExistence({"1LYZ"}),
        "uniprot": DummyExistence({"P69905"}),
        "ncbi": DummyExistence({"GCF_000005845.2"}),
        "geo": DummyGeo(
            {
                "GSE12345": series_text,
                "GSM111": "!Sample_relation = SRA: https://example.org/SRX100",
                "GSM222": "Runs: SRR200",
                "GSM67890": RegistryStatusError("geo", 500, "upstream error"),
            }
        ),
    }


@pytest.fixture
def resolver_clients() -> Callable[..., Dict[str, Any]]:
    return build_resolver_clients
