"""HTTP and subprocess clients for external dataset registries."""

from .crossref import CrossrefClient
from .ena import EnaClient
from .eutils import EutilsClient
from .geo import GeoClient
from .http import RegistryHttpClient
from .knowledge import KnowledgeClient
from .ncbi import NcbiDatasetsClient
from .rcsb import RcsbClient
from .sra import SraToolkitClient
from .uniprot import UniprotClient

__all__ = [
    "CrossrefClient",
    "EnaClient",
    "EutilsClient",
    "GeoClient",
    "KnowledgeClient",
    "NcbiDatasetsClient",
    "RcsbClient",
    "RegistryHttpClient",
    "SraToolkitClient",
    "UniprotClient",
]
