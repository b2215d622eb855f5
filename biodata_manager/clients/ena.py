"""ENA portal API: run accessions of a study."""

from __future__ import annotations

import io
import logging
import re
from typing import List

import pandas as pd

from biodata_manager.clients.http import RegistryHttpClient
from biodata_manager.errors import RegistryTransportError

logger = logging.getLogger(__name__)

# Same run shape the srr: specifier accepts.
_RUN_ACCESSION = re.compile(r"^(SRR|ERR)\d+$")


def parse_filereport(text: str) -> List[str]:
    """Sorted unique SRR/ERR ``run_accession`` values from a filereport TSV."""
    if not text.strip():
        return []
    try:
        frame = pd.read_csv(io.StringIO(text), sep="\t", dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValueError(f"unreadable ENA filereport: {exc}") from exc
    if "run_accession" not in frame.columns:
        return []
    runs = frame["run_accession"].dropna().str.strip().str.upper()
    return sorted({run for run in runs if _RUN_ACCESSION.match(run)})


class EnaClient(RegistryHttpClient):
    registry = "ena"
    BASE_URL = "https://www.ebi.ac.uk/ena/portal/api"

    def read_runs(self, project: str) -> List[str]:
        response = self._check(
            self.probe(
                f"{self.BASE_URL}/filereport",
                params={
                    "accession": project,
                    "result": "read_run",
                    "fields": "run_accession",
                    "format": "tsv",
                },
            )
        )
        try:
            return parse_filereport(response.text)
        except ValueError as exc:
            raise RegistryTransportError(self.registry, str(exc)) from exc


__all__ = ["EnaClient", "parse_filereport"]
