"""Storage, metadata and DOI resolution services."""

from .archive import extract_zip, validate_zip
from .cache import Store, StoreTier
from .doi_resolution import DoiResolver, extract_ids
from .metadata import build_metadata, merge_entries
from .tools import SraToolchain, ToolLocator, ToolStatus

__all__ = [
    "DoiResolver",
    "SraToolchain",
    "Store",
    "StoreTier",
    "ToolLocator",
    "ToolStatus",
    "build_metadata",
    "extract_ids",
    "extract_zip",
    "merge_entries",
    "validate_zip",
]
