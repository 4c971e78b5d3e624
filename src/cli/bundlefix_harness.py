# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Run the post-obfuscation bundle manifest fix-up flow."""

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from bundlefix import BundleFixError, MappingIndex, process_archive
from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(prog="bundlefix")
    parser.add_argument(
        "--archive", required=True, help="Obfuscated archive to fix in place."
    )
    parser.add_argument(
        "--mapping", required=True, help="Obfuscation mapping file path."
    )
    parser.add_argument(
        "--keep-scratch",
        action="store_true",
        help="Keep the extracted scratch directory after rebuilding.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run bundle fix-up command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning("Argument parsing failed (argv=%s)", argv)
        return 2
    if args.verbose:
        logging.getLogger("bundlefix").setLevel(logging.DEBUG)

    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    archive_path = Path(args.archive).resolve()
    mapping_path = Path(args.mapping).resolve()

    _emit_marker(console=console, phase="load", state="start")
    try:
        index = MappingIndex.load(mapping_path)
    except BundleFixError as exc:
        logger.warning("Mapping load failed (error=%s)", exc)
        stderr.write(f"Mapping load failed: {exc}\n")
        return 2
    _emit_marker(console=console, phase="load", state="done")
    _emit_summary(
        console=console,
        summary={"classes_mapped": len(index.classes), "packages_mapped": len(index)},
    )

    _emit_marker(console=console, phase="process", state="start")
    try:
        result = process_archive(
            archive_path=archive_path,
            mapping_path=mapping_path,
            keep_scratch=args.keep_scratch,
            index=index,
        )
    except BundleFixError as exc:
        logger.warning("Processing failed (error=%s)", exc)
        stderr.write(f"Processing failed: {exc}\n")
        return 2
    _emit_marker(console=console, phase="process", state="done")
    _emit_summary(
        console=console,
        summary={
            "entries_extracted": result.entries_extracted,
            "files_archived": result.files_archived,
            "manifest_rewritten": int(result.manifest_rewritten),
            "exported_before": result.exported_before,
            "exported_after": result.exported_after,
            "elapsed_ms": result.elapsed_ms,
        },
    )
    console.print("status=success")
    return 0


def _emit_marker(console: Console, phase: str, state: str) -> None:
    console.print(f"{phase}:{state}")


def _emit_summary(console: Console, summary: dict[str, int]) -> None:
    fields = " ".join(f"{key}={value}" for key, value in summary.items())
    console.print(fields)


def main() -> None:
    """Run bundle fix-up CLI."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
