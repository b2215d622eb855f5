"""Command-line entry point: ``biodata <command>``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from biodata_manager.config import TOOL_NAME, TOOL_VERSION, Settings, load_settings
from biodata_manager.errors import BiodataError
from biodata_manager.models.batch import load_batch_config
from biodata_manager.models.ids import DatasetSpecifier, ProteinFormat, SrrFormat
from biodata_manager.workflow.fetch import FetchOptions
from biodata_manager.workflow.orchestrator import Orchestrator, build_overrides

logger = logging.getLogger(__name__)

FORMAT_CHOICES = sorted(
    {item.value for item in ProteinFormat} | {item.value for item in SrrFormat}
)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biodata",
        description="Fetch and cache bioinformatics datasets reproducibly.",
    )
    parser.add_argument(
        "--version", action="version", version=f"{TOOL_NAME} {TOOL_VERSION}"
    )
    sub = parser.add_subparsers(dest="command")

    for name in ("fetch", "add"):
        p_fetch = sub.add_parser(
            name,
            help="Fetch one dataset, a DOI's datasets or the whole batch file",
        )
        p_fetch.add_argument(
            "spec",
            nargs="?",
            help="Dataset specifier, e.g. protein:1LYZ, doi:10.1000/xyz or go",
        )
        p_fetch.add_argument("--config", help="Batch file to fetch instead of a spec")
        p_fetch.add_argument("--format", choices=FORMAT_CHOICES)
        p_fetch.add_argument(
            "--paired", action="store_true", help="Split paired-end srr reads"
        )
        p_fetch.add_argument(
            "--force",
            action="store_true",
            help="Ignore existing project and cache copies",
        )
        p_fetch.add_argument(
            "--no-cache",
            action="store_true",
            help="Do not mirror downloads into the cache",
        )
        p_fetch.add_argument(
            "--dry-run", action="store_true", help="Report actions without fetching"
        )

    sub.add_parser("list", help="List datasets held in the project and cache stores")

    p_info = sub.add_parser("info", help="Show where one dataset is stored")
    p_info.add_argument("spec")

    sub.add_parser("clear", help="Remove the project store")

    p_init = sub.add_parser("init", help="Write a batch file from the project store")
    p_init.add_argument(
        "--force", action="store_true", help="Overwrite an existing batch file"
    )

    sub.add_parser("tools", help="Report external tool availability")
    return parser


def _fetch(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    specifier = DatasetSpecifier.parse(args.spec) if args.spec else None
    config = None
    if args.config:
        if specifier is not None:
            raise BiodataError("pass a dataset specifier or --config, not both")
        config = load_batch_config(Path(args.config), explicit=True)
    overrides = build_overrides(specifier, args.format, args.paired)
    options = FetchOptions(
        force=args.force, no_cache=args.no_cache, dry_run=args.dry_run
    )
    return orchestrator.fetch(specifier, config, overrides, options).to_dict()


def _list(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    return [entry.to_dict() for entry in orchestrator.list()]


def _info(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    return orchestrator.info(DatasetSpecifier.parse(args.spec)).to_dict()


def _clear(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    return orchestrator.clear()


def _init(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    return orchestrator.init_config(overwrite=args.force)


def _tools(orchestrator: Orchestrator, args: argparse.Namespace) -> Any:
    return orchestrator.tools()


COMMANDS: Dict[str, Callable[[Orchestrator, argparse.Namespace], Any]] = {
    "fetch": _fetch,
    "add": _fetch,
    "list": _list,
    "info": _info,
    "clear": _clear,
    "init": _init,
    "tools": _tools,
}


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(
    argv: Optional[List[str]] = None,
    *,
    orchestrator: Optional[Orchestrator] = None,
) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    try:
        if orchestrator is None:
            settings = load_settings()
            _configure_logging(settings)
            orchestrator = Orchestrator(settings)
        payload = COMMANDS[args.command](orchestrator, args)
    except BiodataError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    print(json.dumps(payload, indent=2))
    return 0


__all__ = ["build_arg_parser", "main"]
