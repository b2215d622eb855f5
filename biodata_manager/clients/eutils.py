"""NCBI E-utilities lookups used while hydrating DOI identifiers.

Every call here is a single attempt. A non-success status yields an empty
result rather than an error; transport failures raise
:class:`~biodata_manager.errors.RegistryTransportError`.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Sequence

from lxml import etree

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import RegistryTransportError

logger = logging.getLogger(__name__)

_RUN_ACCESSION = re.compile(r"^(SRR|ERR)\d+$")


def parse_runs_fragment(fragment: str) -> List[str]:
    """Pull run accessions out of an esummary ``runs`` XML fragment."""
    if not fragment.strip():
        return []
    parser = etree.XMLParser(recover=True)
    root = etree.fromstring(f"<Runs>{fragment}</Runs>".encode("utf-8"), parser=parser)
    if root is None:
        return []
    runs = []
    for element in root.iter("Run"):
        accession = element.get("acc") or ""
        if _RUN_ACCESSION.match(accession):
            runs.append(accession)
    return runs


class EutilsClient(RegistryHttpClient):
    registry = "eutils"
    BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"

    def _query(self, endpoint: str, params: Dict[str, str]) -> Any:
        params = dict(params, retmode="json")
        if self.settings.ncbi_api_key:
            params["api_key"] = self.settings.ncbi_api_key
        response = self.probe(f"{self.BASE_URL}/{endpoint}", params=params)
        if not response.ok:
            logger.debug(
                "E-utilities returned non-success status",
                extra={"endpoint": endpoint, "status": response.status_code},
            )
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RegistryTransportError(
                self.registry, f"invalid JSON from {endpoint}: {exc}"
            ) from exc

    def esearch_ids(self, db: str, term: str) -> List[str]:
        payload = self._query("esearch.fcgi", {"db": db, "term": term})
        if not payload:
            return []
        ids = (payload.get("esearchresult") or {}).get("idlist") or []
        return [str(value) for value in ids if isinstance(value, str)]

    def elink_ids(self, dbfrom: str, db: str, ids: Sequence[str]) -> List[str]:
        if not ids:
            return []
        payload = self._query(
            "elink.fcgi", {"dbfrom": dbfrom, "db": db, "id": ",".join(ids)}
        )
        if not payload:
            return []
        output = set()
        for linkset in payload.get("linksets") or []:
            for linkdb in linkset.get("linksetdbs") or []:
                for link in linkdb.get("links") or []:
                    if isinstance(link, (str, int)) and not isinstance(link, bool):
                        output.add(str(link))
        return sorted(output)

    def _summaries(self, db: str, ids: Sequence[str]) -> List[Dict[str, Any]]:
        if not ids:
            return []
        payload = self._query("esummary.fcgi", {"db": db, "id": ",".join(ids)})
        if not payload:
            return []
        result = payload.get("result") or {}
        return [
            result[uid]
            for uid in result.get("uids") or []
            if isinstance(uid, str) and isinstance(result.get(uid), dict)
        ]

    def esummary_sra_runs(self, ids: Sequence[str]) -> List[str]:
        runs = set()
        for summary in self._summaries("sra", ids):
            fragment = summary.get("runs")
            if isinstance(fragment, str):
                runs.update(parse_runs_fragment(fragment))
        return sorted(runs)

    def esummary_assembly_accessions(self, ids: Sequence[str]) -> List[str]:
        accessions = {
            summary["assemblyaccession"]
            for summary in self._summaries("assembly", ids)
            if isinstance(summary.get("assemblyaccession"), str)
        }
        return sorted(accessions)


__all__ = ["EutilsClient", "parse_runs_fragment"]
