"""Two-tier dataset store with atomic publish semantics.

The project tier lives beside the working directory and the cache tier is
user-global. Both tiers share one layout::

    proteins/<ID>/<ID>.<ext>      (+ metadata.json, metadata.raw.json)
    genomes/<ACC>/
    srr/<ID>/
    uniprot/<ID>/
    expression/<GSE>/
    expression10x/<GSE>/
    knowledge/<name>/
    metadata/<kind>/<slug>.json

DOI resolutions are kept in the project tier only, under ``doi/<slug>/``.

Every write goes to a temporary sibling first and is then renamed over the
destination, so readers never observe a partially written dataset.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Sequence

from biodata_manager.config import Settings
from biodata_manager.errors import FilesystemError
from biodata_manager.models.ids import (
    Doi,
    GenomeAccession,
    GeoSeriesAccession,
    ProteinFormat,
    ProteinId,
    SrrId,
    UniprotId,
)
from biodata_manager.models.records import DatasetMetadata

logger = logging.getLogger(__name__)

_TEMP_PREFIX = "biodata-"


class StoreTier(str, Enum):
    PROJECT = "project"
    CACHE = "cache"


@contextmanager
def _filesystem_errors(action: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise FilesystemError(f"{action}: {exc}") from exc


def slug_identifier(identifier: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9_.-]+", "_", identifier)
    return slug.strip("_") or "dataset"


class Store:
    """Filesystem engine for the project and cache tiers."""

    def __init__(self, project_root: Path, cache_root: Path) -> None:
        self.project_root = Path(project_root)
        self.cache_root = Path(cache_root)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Store":
        return cls(settings.project_root, settings.cache_root)

    def root(self, tier: StoreTier) -> Path:
        if tier is StoreTier.PROJECT:
            return self.project_root
        return self.cache_root

    # Layout -----------------------------------------------------------------

    def protein_dir(self, tier: StoreTier, protein_id: ProteinId) -> Path:
        return self.root(tier) / "proteins" / str(protein_id)

    def protein_path(
        self, tier: StoreTier, protein_id: ProteinId, fmt: ProteinFormat
    ) -> Path:
        return self.protein_dir(tier, protein_id) / f"{protein_id}.{fmt.extension}"

    def genome_dir(self, tier: StoreTier, accession: GenomeAccession) -> Path:
        return self.root(tier) / "genomes" / str(accession)

    def srr_dir(self, tier: StoreTier, run_id: SrrId) -> Path:
        return self.root(tier) / "srr" / str(run_id)

    def uniprot_dir(self, tier: StoreTier, uniprot_id: UniprotId) -> Path:
        return self.root(tier) / "uniprot" / str(uniprot_id)

    def expression_dir(
        self,
        tier: StoreTier,
        accession: GeoSeriesAccession,
        *,
        ten_x: bool = False,
    ) -> Path:
        folder = "expression10x" if ten_x else "expression"
        return self.root(tier) / folder / str(accession)

    def knowledge_dir(self, tier: StoreTier, name: str) -> Path:
        return self.root(tier) / "knowledge" / name

    def doi_dir(self, doi: Doi) -> Path:
        return self.project_root / "doi" / slug_identifier(str(doi))

    def doi_resolution_path(self, doi: Doi) -> Path:
        return self.doi_dir(doi) / "resolution.json"

    def metadata_path(
        self, tier: StoreTier, dataset_type: str, dataset_id: str
    ) -> Path:
        return (
            self.root(tier)
            / "metadata"
            / dataset_type
            / f"{slug_identifier(dataset_id)}.json"
        )

    # Roots ------------------------------------------------------------------

    def ensure_project_root(self) -> None:
        with _filesystem_errors(f"create {self.project_root}"):
            self.project_root.mkdir(parents=True, exist_ok=True)

    def ensure_cache_root(self) -> None:
        with _filesystem_errors(f"create {self.cache_root}"):
            self.cache_root.mkdir(parents=True, exist_ok=True)

    def ensure_roots(self) -> None:
        self.ensure_project_root()
        self.ensure_cache_root()

    @staticmethod
    def exists(path: Path) -> bool:
        return path.exists()

    def clear_project(self) -> None:
        if not self.project_root.exists():
            return
        with _filesystem_errors(f"remove {self.project_root}"):
            shutil.rmtree(self.project_root)
        logger.info("Cleared project store %s", self.project_root)

    @contextmanager
    def staging_dir(self, kind: str) -> Iterator[Path]:
        """Yield an isolated staging directory inside the project tier."""
        self.ensure_project_root()
        with _filesystem_errors("create staging directory"):
            staging = tempfile.mkdtemp(
                prefix=f"{_TEMP_PREFIX}{kind}-", dir=self.project_root
            )
        try:
            yield Path(staging)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    # Atomic writes ----------------------------------------------------------

    @staticmethod
    def write_bytes_atomic(path: Path, content: bytes) -> None:
        with _filesystem_errors(f"write {path}"):
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    @classmethod
    def write_json_atomic(cls, path: Path, payload: Any) -> None:
        content = json.dumps(payload, indent=2, sort_keys=False)
        cls.write_bytes_atomic(path, content.encode("utf-8"))

    @classmethod
    def write_metadata(cls, path: Path, metadata: DatasetMetadata) -> None:
        cls.write_json_atomic(path, metadata.to_dict())

    @staticmethod
    def read_json(path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise FilesystemError(f"read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise FilesystemError(f"parse {path}: {exc}") from exc

    @staticmethod
    def atomic_rename_dir(source: Path, destination: Path) -> None:
        """Replace ``destination`` with ``source``; never merges in place."""
        with _filesystem_errors(f"publish {destination}"):
            destination.parent.mkdir(parents=True, exist_ok=True)
            if destination.exists():
                shutil.rmtree(destination)
            os.rename(source, destination)

    @classmethod
    def copy_dir_atomic(cls, source: Path, destination: Path) -> None:
        with _filesystem_errors(f"copy {source} -> {destination}"):
            destination.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(
                tempfile.mkdtemp(prefix=f"{_TEMP_PREFIX}copy-", dir=destination.parent)
            )
        try:
            # copytree needs a destination that does not exist yet
            target = staging / "payload"
            with _filesystem_errors(f"copy {source} -> {destination}"):
                shutil.copytree(source, target)
            cls.atomic_rename_dir(target, destination)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    @staticmethod
    def copy_file_atomic(source: Path, destination: Path) -> None:
        with _filesystem_errors(f"copy {source} -> {destination}"):
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{_TEMP_PREFIX}file-", dir=destination.parent
            )
            os.close(fd)
            try:
                shutil.copyfile(source, tmp_name)
                os.replace(tmp_name, destination)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    @classmethod
    def promote(
        cls,
        source: Path,
        destination: Path,
        sidecars: Sequence[str] = (),
    ) -> None:
        """Copy a payload between tiers and publish it atomically.

        Sidecar files live next to a file payload and are copied when present.
        """
        if source.is_dir():
            cls.copy_dir_atomic(source, destination)
            return
        cls.copy_file_atomic(source, destination)
        for name in sidecars:
            sidecar = source.parent / name
            if sidecar.exists():
                cls.copy_file_atomic(sidecar, destination.parent / name)

    @classmethod
    def publish(
        cls,
        staged: Path,
        destination: Path,
        sidecars: Sequence[Path] = (),
    ) -> None:
        """Move a staged payload (and its sidecars) into its final place."""
        if staged.is_dir():
            cls.atomic_rename_dir(staged, destination)
            return
        with _filesystem_errors(f"publish {destination}"):
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staged, destination)
            for sidecar in sidecars:
                os.replace(sidecar, destination.parent / sidecar.name)

    # Metadata ---------------------------------------------------------------

    def list_metadata(self, tier: StoreTier) -> List[DatasetMetadata]:
        metadata_root = self.root(tier) / "metadata"
        if not metadata_root.exists():
            return []
        entries: List[DatasetMetadata] = []
        for path in sorted(metadata_root.rglob("*.json")):
            if not path.is_file():
                continue
            payload = self.read_json(path)
            try:
                entries.append(DatasetMetadata.from_dict(payload))
            except (KeyError, TypeError) as exc:
                raise FilesystemError(f"invalid metadata record {path}") from exc
        return entries


__all__ = ["Store", "StoreTier", "slug_identifier"]
