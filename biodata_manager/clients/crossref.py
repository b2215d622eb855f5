"""Crossref works API."""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import quote

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import RegistryTransportError
from biodata_manager.models.ids import Doi

logger = logging.getLogger(__name__)


class CrossrefClient(RegistryHttpClient):
    registry = "crossref"
    BASE_URL = "https://api.crossref.org"

    def work_url(self, doi: Doi) -> str:
        return f"{self.BASE_URL}/works/{quote(str(doi), safe='')}"

    def fetch_work(self, doi: Doi) -> Dict[str, Any]:
        """Return the ``message`` object of a works lookup."""
        payload = self.get_json(self.work_url(doi))
        message = payload.get("message") if isinstance(payload, dict) else None
        if not isinstance(message, dict):
            raise RegistryTransportError(
                self.registry, f"unexpected response shape for {doi}"
            )
        return message


__all__ = ["CrossrefClient"]
