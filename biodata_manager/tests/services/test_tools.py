from __future__ import annotations

import stat
import subprocess
from pathlib import Path

import pytest

from biodata_manager.services import tools
from biodata_manager.services.tools import SraToolchain, ToolLocator


def _install(bin_dir: Path, *names: str) -> None:
    bin_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        path = bin_dir / name
        path.write_text("#!/bin/sh\necho \"$0 3.1.0\"\n")
        path.chmod(path.stat().st_mode | stat.S_IEXEC)


def test_missing_fasterq_dump(tmp_path: Path) -> None:
    _install(tmp_path / "bin", "prefetch")
    status = SraToolchain(ToolLocator(str(tmp_path / "bin"))).status()

    assert status.ready is False
    assert status.message == "missing fasterq-dump (SRA Toolkit)"


def test_missing_download_tool(tmp_path: Path) -> None:
    _install(tmp_path / "bin", "fasterq-dump")
    status = SraToolchain(ToolLocator(str(tmp_path / "bin"))).status()

    assert status.ready is False
    assert status.message == "missing prefetch or datasets (SRA download tool)"


def test_ready_with_datasets_instead_of_prefetch(tmp_path: Path) -> None:
    _install(tmp_path / "bin", "fasterq-dump", "datasets")
    toolchain = SraToolchain(ToolLocator(str(tmp_path / "bin")))

    assert toolchain.status().ready is True
    assert toolchain.prefetch is None
    assert toolchain.datasets == tmp_path / "bin" / "datasets"


def test_locator_caches_lookups(tmp_path: Path) -> None:
    locator = ToolLocator(str(tmp_path / "bin"))
    assert locator.find("datasets") is None

    _install(tmp_path / "bin", "datasets")
    assert locator.find("datasets") is None
    assert ToolLocator(str(tmp_path / "bin")).find("datasets") is not None


def test_version_reads_first_line(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _install(tmp_path / "bin", "fasterq-dump")
    calls = []

    def fake_run(command, **kwargs):
        calls.append(command)
        return subprocess.CompletedProcess(
            command, 0, stdout="fasterq-dump : 3.1.0\nextra\n", stderr=""
        )

    monkeypatch.setattr(tools.subprocess, "run", fake_run)
    locator = ToolLocator(str(tmp_path / "bin"))

    assert locator.version("fasterq-dump") == "fasterq-dump : 3.1.0"
    assert locator.version("datasets") is None
    assert calls == [[str(tmp_path / "bin" / "fasterq-dump"), "--version"]]
