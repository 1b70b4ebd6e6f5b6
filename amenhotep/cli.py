from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ._version import __version__
from .config import OPTIONAL_TEMPLATES, ScaffoldConfig, load_config
from .core import IndexerScaffolder
from .errors import ExtractionError, ScaffoldError
from .executors import ApplyExecutor, DryRunExecutor

EXIT_ERROR = 1

COMMAND_MODES = {
    "dry-run": DryRunExecutor.name,
    "generate": ApplyExecutor.name,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amenhotep",
        description="Scaffold a Checkpoint indexer from Cairo contract sources",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subcommands = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("dry-run", "Check the expected output without writing anything"),
        ("generate", "Generate the indexer files"),
    ):
        sub = subcommands.add_parser(name, help=help_text)
        sub.add_argument("source_dir", help="Directory containing the contract sources")
        sub.add_argument("--output", help="Output root (default: config output_root, else ./indexer)")
        sub.add_argument("--config", help="Optional JSON config file")
        sub.add_argument("--workers", type=int, help="Parallel extraction workers")
        sub.add_argument(
            "--template",
            action="append",
            default=[],
            choices=list(OPTIONAL_TEMPLATES),
            help="Enable an optional template (repeatable)",
        )
        sub.add_argument("--report", help="Path to write a JSON plan summary")
        sub.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logs")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _load_config(args: argparse.Namespace) -> ScaffoldConfig:
    config = load_config(Path(args.config)) if args.config else ScaffoldConfig()
    overrides = {}
    if args.template:
        overrides["templates"] = tuple(dict.fromkeys(config.templates + tuple(args.template)))
    if args.workers is not None:
        if args.workers < 1:
            raise ValueError("--workers must be at least 1")
        overrides["max_workers"] = args.workers
    if args.output:
        overrides["output_root"] = Path(args.output)
    return dataclasses.replace(config, **overrides) if overrides else config


def _print_error(exc: Exception) -> None:
    if isinstance(exc, ExtractionError):
        for error in exc.errors:
            print(f"ParseError: {error.path}:{error.line}: {error.message}", file=sys.stderr)
        return
    print(f"{type(exc).__name__}: {exc}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = _load_config(args)
    except (OSError, ValueError) as exc:
        _print_error(exc)
        return EXIT_ERROR

    scaffolder = IndexerScaffolder(config=config)
    try:
        schemas, plan, report = scaffolder.run(COMMAND_MODES[args.command], args.source_dir)
    except ScaffoldError as exc:
        _print_error(exc)
        return EXIT_ERROR

    sys.stdout.write(report.render())
    for failure in report.failures:
        _print_error(failure)

    if args.report:
        destination = scaffolder.write_plan_report(scaffolder.summarize(schemas, plan, report), args.report)
        print(f"[report] written: {destination}", file=sys.stderr)

    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
