"""NCBI GEO series files and quick-text records."""

from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import List, Optional

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import RegistryTransportError
from biodata_manager.models.ids import GeoSeriesAccession

logger = logging.getLogger(__name__)

_FTP_PREFIX = "ftp://ftp.ncbi.nlm.nih.gov/"
_HTTPS_PREFIX = "https://ftp.ncbi.nlm.nih.gov/"
_ORGANISM_KEYS = ("!Series_organism_ch1", "!Series_organism", "!Sample_organism_ch1")


def geo_series_prefix(accession: GeoSeriesAccession) -> str:
    """Return the ``GSEnnn`` style directory bucket for a series."""
    digits = accession.digits
    if len(digits) <= 3:
        return "GSEnnn"
    return f"GSE{digits[:-3]}nnn"


def normalize_url(url: str) -> str:
    if url.startswith(_FTP_PREFIX):
        return _HTTPS_PREFIX + url[len(_FTP_PREFIX):]
    return url


def extract_supplementary_urls(soft_text: str) -> List[str]:
    urls: List[str] = []
    for line in soft_text.splitlines():
        if "supplementary_file" not in line or "=" not in line:
            continue
        value = line.split("=", 1)[1].strip()
        if value:
            urls.append(value)
    return urls


def extract_organism(soft_text: str) -> Optional[str]:
    for line in soft_text.splitlines():
        if not line.startswith(_ORGANISM_KEYS) or "=" not in line:
            continue
        value = line.split("=", 1)[1].strip()
        if value:
            return value
    return None


class GeoClient(RegistryHttpClient):
    registry = "geo"
    SERIES_URL = "https://ftp.ncbi.nlm.nih.gov/geo/series"
    QUERY_URL = "https://www.ncbi.nlm.nih.gov/geo/query/acc.cgi"

    def soft_url(self, accession: GeoSeriesAccession) -> str:
        prefix = geo_series_prefix(accession)
        return f"{self.SERIES_URL}/{prefix}/{accession}/soft/{accession}_family.soft.gz"

    def fetch_soft_text(self, accession: GeoSeriesAccession) -> str:
        response = self.get(self.soft_url(accession))
        try:
            return gzip.decompress(response.content).decode("utf-8", errors="replace")
        except (OSError, EOFError) as exc:
            raise RegistryTransportError(
                self.registry, f"invalid SOFT archive for {accession}: {exc}"
            ) from exc

    def download_url(self, url: str, destination: Path) -> None:
        self.download_to(normalize_url(url), destination)

    def fetch_record_text(self, accession: str) -> str:
        """Quick text view of a GSE/GSM record, fetched in a single attempt."""
        response = self._check(
            self.probe(
                self.QUERY_URL,
                params={
                    "acc": accession,
                    "targ": "self",
                    "form": "text",
                    "view": "quick",
                },
            )
        )
        return response.text


__all__ = [
    "GeoClient",
    "extract_organism",
    "extract_supplementary_urls",
    "geo_series_prefix",
    "normalize_url",
]
