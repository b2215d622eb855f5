"""Zip archive checks used before a downloaded package is trusted."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath

from biodata_manager.errors import FilesystemError

logger = logging.getLogger(__name__)


def validate_zip(zip_path: Path) -> None:
    """Read every member so truncated or corrupt archives fail early."""
    try:
        with zipfile.ZipFile(zip_path) as archive:
            broken = archive.testzip()
    except (OSError, zipfile.BadZipFile) as exc:
        raise FilesystemError(f"open zip {zip_path}: {exc}") from exc
    if broken is not None:
        raise FilesystemError(f"corrupt zip member {broken} in {zip_path}")


def _safe_member_path(target_dir: Path, name: str) -> Path:
    member = PurePosixPath(name.replace("\\", "/"))
    if member.is_absolute() or ".." in member.parts:
        raise FilesystemError("zip entry path traversal detected")
    return target_dir.joinpath(*member.parts)


def extract_zip(zip_path: Path, target_dir: Path) -> None:
    """Extract ``zip_path`` into ``target_dir``, rejecting escaping entries."""
    try:
        with zipfile.ZipFile(zip_path) as archive:
            for info in archive.infolist():
                destination = _safe_member_path(target_dir, info.filename)
                if info.is_dir():
                    destination.mkdir(parents=True, exist_ok=True)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as source, destination.open("wb") as sink:
                    shutil.copyfileobj(source, sink)
    except (OSError, zipfile.BadZipFile) as exc:
        raise FilesystemError(f"extract zip {zip_path}: {exc}") from exc
    logger.debug("Extracted %s into %s", zip_path, target_dir)


__all__ = ["extract_zip", "validate_zip"]
