"""Discovery of optional external executables."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

SRA_TOOLKIT_URL = "https://github.com/ncbi/sra-tools/wiki/02.-Installing-SRA-Toolkit"


@dataclass(frozen=True)
class ToolStatus:
    ready: bool
    message: Optional[str] = None

    @classmethod
    def missing(cls, message: str) -> "ToolStatus":
        return cls(ready=False, message=message)


class ToolLocator:
    """Looks executables up on a search path, caching each answer."""

    def __init__(self, search_path: Optional[str] = None) -> None:
        self.search_path = search_path
        self._found: Dict[str, Optional[Path]] = {}

    def find(self, name: str) -> Optional[Path]:
        if name not in self._found:
            location = shutil.which(name, path=self.search_path)
            self._found[name] = Path(location) if location else None
            logger.debug("Tool lookup %s -> %s", name, self._found[name])
        return self._found[name]

    def version(self, name: str) -> Optional[str]:
        """Return the first line printed by ``<tool> --version``."""
        executable = self.find(name)
        if executable is None:
            return None
        try:
            completed = subprocess.run(
                [str(executable), "--version"],
                capture_output=True,
                text=True,
                timeout=30,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("Unable to query %s version: %s", name, exc)
            return None
        if completed.returncode != 0:
            return None
        output = completed.stdout.strip()
        return output.splitlines()[0] if output else None


class SraToolchain:
    """The executables needed for sequencing-run downloads."""

    DATASETS = "datasets"
    PREFETCH = "prefetch"
    FASTERQ_DUMP = "fasterq-dump"

    def __init__(self, locator: ToolLocator) -> None:
        self.locator = locator

    @property
    def datasets(self) -> Optional[Path]:
        return self.locator.find(self.DATASETS)

    @property
    def prefetch(self) -> Optional[Path]:
        return self.locator.find(self.PREFETCH)

    @property
    def fasterq_dump(self) -> Optional[Path]:
        return self.locator.find(self.FASTERQ_DUMP)

    def status(self) -> ToolStatus:
        if self.fasterq_dump is None:
            return ToolStatus.missing("missing fasterq-dump (SRA Toolkit)")
        if self.datasets is None and self.prefetch is None:
            return ToolStatus.missing(
                "missing prefetch or datasets (SRA download tool)"
            )
        return ToolStatus(ready=True)

    def versions(self) -> Dict[str, Optional[str]]:
        return {
            "datasets": self.locator.version(self.DATASETS),
            "sra_toolkit": self.locator.version(self.FASTERQ_DUMP),
        }


__all__ = ["SRA_TOOLKIT_URL", "SraToolchain", "ToolLocator", "ToolStatus"]
