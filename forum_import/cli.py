"""Command line entry point for the forum importer."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .errors import FatalImportError
from .models.config import ImportConfig
from .orchestrator import ImportOrchestrator
from .readers.database import SqlSourceReader
from .targets.base import BaseTarget
from .targets.database import SqlTarget
from .targets.memory import MemoryTarget

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> ImportConfig:
    """Load the config file (if any) and apply command line overrides."""
    data = {}
    if args.config:
        with open(args.config) as f:
            data = json.load(f)

    if args.source_url:
        data["source_url"] = args.source_url
    if args.target_url:
        data["target_url"] = args.target_url
    if args.chunk_size is not None:
        data["chunk_size"] = args.chunk_size
    if args.output_dir:
        data["output_dir"] = args.output_dir
    if args.dry_run:
        data["dry_run"] = True
    if args.no_report:
        data["save_report"] = False

    return ImportConfig.from_dict(data)


def build_target(config: ImportConfig) -> BaseTarget:
    if config.target_url:
        return SqlTarget(
            config.target_url,
            dry_run=config.dry_run,
            disable_foreign_key_checks=config.disable_foreign_key_checks,
        )
    return MemoryTarget()


def run_import(args: argparse.Namespace) -> int:
    """Run an import; returns the process exit status."""
    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    problems = config.validate()
    if problems:
        for problem in problems:
            print(f"error: {problem}", file=sys.stderr)
        return 2

    reader = None
    orchestrator = None
    try:
        reader = SqlSourceReader(config.source_url, chunk_size=config.chunk_size)
        orchestrator = ImportOrchestrator(reader, build_target(config), config)
        report = orchestrator.run()
    except FatalImportError as e:
        if orchestrator is not None and orchestrator.report is not None:
            print(orchestrator.report.format_summary())
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        if reader is not None:
            reader.close()

    print(report.format_summary())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Forum import tool - move a legacy forum into the new platform"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Run an import")
    run_parser.add_argument("--config", help="Path to import config JSON file")
    run_parser.add_argument("--source-url", help="SQLAlchemy URL of the legacy database")
    run_parser.add_argument("--target-url", help="SQLAlchemy URL of the target database")
    run_parser.add_argument("--chunk-size", type=int, help="Rows fetched per batch")
    run_parser.add_argument("--output-dir", help="Directory the run report is written to")
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate without writing")
    run_parser.add_argument("--no-report", action="store_true", help="Don't save a JSON report")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "run":
        return run_import(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
