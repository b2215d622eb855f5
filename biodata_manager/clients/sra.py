"""Sequencing-run downloads through the external SRA toolchain."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from biodata_manager.errors import ConversionError, FilesystemError, MissingToolError
from biodata_manager.models.ids import SrrFormat, SrrId
from biodata_manager.services.archive import extract_zip, validate_zip
from biodata_manager.services.tools import SRA_TOOLKIT_URL, SraToolchain

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class ToolInfo:
    datasets: Optional[str] = None
    sra_toolkit: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"datasets": self.datasets, "sra_toolkit": self.sra_toolkit}


def _find_files(root: Path, extension: str) -> List[Path]:
    suffix = f".{extension}".lower()
    return sorted(
        path
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() == suffix
    )


def _fastq_records(handle) -> Iterator[tuple]:
    while True:
        header = handle.readline()
        if not header:
            return
        if not header.strip():
            continue
        sequence = handle.readline()
        separator = handle.readline()
        quality = handle.readline()
        if not header.startswith("@") or not separator.startswith("+") or not quality:
            raise ConversionError(f"malformed FASTQ record near {header.strip()!r}")
        if len(sequence.strip()) != len(quality.strip()):
            raise ConversionError(
                f"sequence and quality lengths differ for {header.strip()!r}"
            )
        yield header[1:].strip(), sequence.strip()


def fastq_to_fasta(source: Path, destination: Path) -> Path:
    """Write the sequences of a FASTQ file as FASTA."""
    try:
        with source.open("r", encoding="utf-8") as reader, destination.open(
            "w", encoding="utf-8"
        ) as writer:
            for name, sequence in _fastq_records(reader):
                writer.write(f">{name}\n{sequence}\n")
    except OSError as exc:
        raise FilesystemError(f"convert {source}: {exc}") from exc
    return destination


class SraToolkitClient:
    """Drive ``datasets``/``prefetch``/``fasterq-dump`` as subprocesses."""

    def __init__(
        self, toolchain: SraToolchain, runner: Runner = subprocess.run
    ) -> None:
        self.toolchain = toolchain
        self._run = runner

    def _require(self, path: Optional[Path], name: str) -> Path:
        if path is None:
            raise MissingToolError(name, SRA_TOOLKIT_URL)
        return path

    def _execute(self, program: Path, args: Sequence[str]) -> None:
        command = [str(program), *args]
        logger.debug("Running %s", " ".join(command))
        try:
            completed = self._run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ConversionError(f"unable to run {program}: {exc}") from exc
        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise ConversionError(stderr or f"command failed: {program}")

    def _datasets_download(self, run_id: SrrId, zip_path: Path) -> None:
        datasets = self._require(self.toolchain.datasets, "datasets")
        self._execute(
            datasets,
            ["download", "sra", "run", str(run_id), "--filename", str(zip_path)],
        )

    def _prefetch(self, run_id: SrrId, out_dir: Path) -> Path:
        prefetch = self._require(self.toolchain.prefetch, "prefetch")
        self._execute(prefetch, [str(run_id), "--output-directory", str(out_dir)])
        found = _find_files(out_dir, "sra")
        if not found:
            raise FilesystemError("prefetch did not produce an .sra file")
        return found[0]

    def _fasterq_dump(self, sra_path: Path, paired: bool, out_dir: Path) -> List[Path]:
        fasterq = self._require(self.toolchain.fasterq_dump, "fasterq-dump")
        args = [str(sra_path), "--outdir", str(out_dir)]
        if paired:
            args.append("--split-files")
        self._execute(fasterq, args)
        return _find_files(out_dir, "fastq")

    def _fetch_fastq(self, run_id: SrrId, paired: bool, work_dir: Path) -> List[Path]:
        fastq_dir = work_dir / "fastq"
        fastq_dir.mkdir(parents=True, exist_ok=True)

        if self.toolchain.datasets is not None:
            zip_path = work_dir / f"{run_id}.zip"
            self._datasets_download(run_id, zip_path)
            if zip_path.exists():
                extract_dir = work_dir / "extract"
                validate_zip(zip_path)
                extract_zip(zip_path, extract_dir)
                fastq_files = _find_files(extract_dir, "fastq")
                if fastq_files:
                    return fastq_files
                sra_files = _find_files(extract_dir, "sra")
                if sra_files:
                    return self._fasterq_dump(sra_files[0], paired, fastq_dir)

        sra_path = self._prefetch(run_id, work_dir / "prefetch")
        return self._fasterq_dump(sra_path, paired, fastq_dir)

    def download(
        self,
        run_id: SrrId,
        fmt: SrrFormat,
        paired: bool,
        destination_dir: Path,
    ) -> List[Path]:
        """Fetch ``run_id`` and leave only the payload files in ``destination_dir``."""
        work_dir = destination_dir / ".work"
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"create {work_dir}: {exc}") from exc

        try:
            fastq_files = self._fetch_fastq(run_id, paired, work_dir)
            if not fastq_files:
                raise ConversionError(f"no FASTQ output produced for {run_id}")
            outputs: List[Path] = []
            for fastq in fastq_files:
                if fmt is SrrFormat.FASTA:
                    target = destination_dir / f"{fastq.stem}.fasta"
                    outputs.append(fastq_to_fasta(fastq, target))
                else:
                    target = destination_dir / fastq.name
                    try:
                        shutil.move(str(fastq), target)
                    except OSError as exc:
                        raise FilesystemError(f"move {fastq}: {exc}") from exc
                    outputs.append(target)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
        return outputs

    def tool_info(self) -> ToolInfo:
        versions = self.toolchain.versions()
        return ToolInfo(
            datasets=versions.get("datasets"),
            sra_toolkit=versions.get("sra_toolkit"),
        )


__all__ = ["SraToolkitClient", "ToolInfo", "fastq_to_fasta"]
