"""Pathway and ontology knowledge-base downloads (GO, KEGG, Reactome)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import FilesystemError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeFile:
    filename: str
    url: str


KNOWLEDGE_FILES: Dict[str, List[KnowledgeFile]] = {
    "go": [
        KnowledgeFile("go-basic.obo", "http://purl.obolibrary.org/obo/go/go-basic.obo"),
    ],
    "kegg": [
        KnowledgeFile("pathway.list", "https://rest.kegg.jp/list/pathway"),
        KnowledgeFile("pathway_ko.link", "https://rest.kegg.jp/link/pathway/ko"),
    ],
    "reactome": [
        KnowledgeFile(
            "ReactomePathways.txt",
            "https://reactome.org/download/current/ReactomePathways.txt",
        ),
        KnowledgeFile(
            "UniProt2Reactome.txt",
            "https://reactome.org/download/current/UniProt2Reactome.txt",
        ),
    ],
}


def parse_go_header(content: bytes) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(data-version, date)`` from the first lines of an OBO file."""
    version = None
    date = None
    text = content.decode("utf-8", errors="replace")
    for line in text.splitlines()[:50]:
        if line.startswith("data-version:"):
            version = line[len("data-version:"):].strip()
        if line.startswith("date:"):
            date = line[len("date:"):].strip()
    return version, date


class KnowledgeClient(RegistryHttpClient):
    registry = "knowledge"

    def download(self, name: str, destination_dir: Path) -> List[Path]:
        """Download every file of knowledge base ``name`` into ``destination_dir``."""
        try:
            files = KNOWLEDGE_FILES[name]
        except KeyError as exc:
            raise ValueError(f"unknown knowledge base {name!r}") from exc

        written: List[Path] = []
        for item in files:
            target = destination_dir / item.filename
            logger.debug("Downloading %s", item.url, extra={"knowledge_base": name})
            self.download_to(item.url, target)
            written.append(target)
        return written

    def go_release(self, obo_path: Path) -> Tuple[Optional[str], Optional[str]]:
        try:
            with obo_path.open("rb") as handle:
                head = b"".join(handle.readline() for _ in range(50))
        except OSError as exc:
            raise FilesystemError(f"read {obo_path}: {exc}") from exc
        return parse_go_header(head)


__all__ = [
    "KNOWLEDGE_FILES",
    "KnowledgeClient",
    "KnowledgeFile",
    "parse_go_header",
]
