"""Client for the NCBI Datasets v2 genome API."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import InvalidIncludeError
from biodata_manager.models.ids import GenomeAccession

INCLUDE_ANNOTATION_TYPES: Dict[str, str] = {
    "genome": "GENOME_FASTA",
    "gff3": "GENOME_GFF",
    "gbff": "GENOME_GBFF",
    "gtf": "GENOME_GTF",
    "rna": "RNA_FASTA",
    "protein": "PROT_FASTA",
    "cds": "CDS_FASTA",
    "seq-report": "SEQUENCE_REPORT",
    "default": "DEFAULT",
}


@dataclass
class DownloadInfo:
    # False when the registry answered with something other than an archive
    is_zip: bool
    content_type: str = ""


def include_params(include: Sequence[str]) -> List[Tuple[str, str]]:
    """Map include names onto repeated ``include_annotation_type`` params."""
    params: List[Tuple[str, str]] = []
    for item in include:
        key = item.strip().lower()
        try:
            params.append(("include_annotation_type", INCLUDE_ANNOTATION_TYPES[key]))
        except KeyError as exc:
            raise InvalidIncludeError(item) from exc
    return params


class NcbiDatasetsClient(RegistryHttpClient):
    registry = "ncbi"
    BASE_URL = "https://api.ncbi.nlm.nih.gov/datasets/v2"

    def _headers(self) -> Dict[str, str]:
        headers = {"X-Datasets-Client": self.settings.tool_identity}
        if self.settings.ncbi_api_key:
            headers["api-key"] = self.settings.ncbi_api_key
        return headers

    def genome_download_url(self, accession: GenomeAccession) -> str:
        return f"{self.BASE_URL}/genome/accession/{accession}/download"

    def download_genome(
        self,
        accession: GenomeAccession,
        include: Sequence[str],
        destination: Path,
    ) -> DownloadInfo:
        response = self.download_to(
            self.genome_download_url(accession),
            destination,
            params=include_params(include),
            headers=self._headers(),
        )
        content_type = response.headers.get("Content-Type", "")
        return DownloadInfo(
            is_zip="zip" in content_type.lower(), content_type=content_type
        )

    def assembly_exists(self, accession: str) -> bool:
        url = f"{self.BASE_URL}/genome/accession/{accession}/dataset_report"
        return self.probe(url, headers=self._headers()).ok


__all__ = [
    "DownloadInfo",
    "INCLUDE_ANNOTATION_TYPES",
    "NcbiDatasetsClient",
    "include_params",
]
