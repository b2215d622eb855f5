"""Client for RCSB PDB structure files and entry metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.models.ids import ProteinFormat, ProteinId


@dataclass
class RcsbMetadata:
    pdb_id: str
    title: Optional[str] = None
    experimental_method: Optional[str] = None
    resolution: Optional[float] = None
    deposition_date: Optional[str] = None
    release_date: Optional[str] = None
    structure_url: str = ""
    metadata_url: str = ""
    raw_json: Dict[str, Any] = field(default_factory=dict)

    def to_sidecar(self) -> Dict[str, Any]:
        """Shape written to ``metadata.json`` beside the structure file."""
        return {
            "registry": "rcsb",
            "pdb_id": self.pdb_id,
            "title": self.title,
            "experimental_method": self.experimental_method,
            "resolution": self.resolution,
            "deposition_date": self.deposition_date,
            "release_date": self.release_date,
            "source_urls": {
                "structure": self.structure_url,
                "metadata": self.metadata_url,
            },
        }


def parse_entry(pdb_id: str, raw: Dict[str, Any]) -> RcsbMetadata:
    struct = raw.get("struct") or {}
    exptl = raw.get("exptl") or []
    entry_info = raw.get("rcsb_entry_info") or {}
    accession = raw.get("rcsb_accession_info") or {}

    resolutions = entry_info.get("resolution_combined") or []
    resolution = None
    if resolutions and isinstance(resolutions[0], (int, float)):
        resolution = float(resolutions[0])

    method = None
    if exptl and isinstance(exptl[0], dict):
        method = exptl[0].get("method")

    return RcsbMetadata(
        pdb_id=pdb_id,
        title=struct.get("title"),
        experimental_method=method,
        resolution=resolution,
        deposition_date=accession.get("deposit_date"),
        release_date=accession.get("initial_release_date"),
        raw_json=raw,
    )


class RcsbClient(RegistryHttpClient):
    """Download structures and entry records from RCSB."""

    registry = "rcsb"
    FILES_URL = "https://files.rcsb.org/download"
    ENTRY_URL = "https://data.rcsb.org/rest/v1/core/entry"

    @classmethod
    def structure_url(cls, protein_id: ProteinId, fmt: ProteinFormat) -> str:
        return f"{cls.FILES_URL}/{protein_id}.{fmt.extension}"

    @classmethod
    def entry_url(cls, pdb_id: str) -> str:
        return f"{cls.ENTRY_URL}/{pdb_id}"

    def download_structure(
        self, protein_id: ProteinId, fmt: ProteinFormat, destination: Path
    ) -> None:
        self.download_to(self.structure_url(protein_id, fmt), destination)

    def fetch_metadata(self, protein_id: ProteinId) -> RcsbMetadata:
        url = self.entry_url(str(protein_id))
        metadata = parse_entry(str(protein_id), self.get_json(url))
        metadata.metadata_url = url
        return metadata

    def entry_exists(self, pdb_id: str) -> bool:
        return self.probe(self.entry_url(pdb_id)).ok


__all__ = ["RcsbClient", "RcsbMetadata", "parse_entry"]
