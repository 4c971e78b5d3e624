# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Fix an obfuscated bundle's manifest and repackage the archive."""

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from bundlefix.archive import MANIFEST_PATH, extract_archive, rebuild_archive
from bundlefix.errors import ArchiveIOError, MissingFileError
from bundlefix.manifest import (
    count_exported_packages,
    parse_manifest,
    rewrite_manifest,
    serialize_manifest,
)
from bundlefix.mapping import MappingIndex

logger = logging.getLogger(__name__)

SCRATCH_FALLBACK_SUFFIX = ".unpacked"


@dataclass(frozen=True)
class ProcessResult:
    """Represent counters of one archive fix-up run.

    Args:
        entries_extracted: Archive entries inflated into the scratch tree.
        files_archived: Files written into the rebuilt archive.
        manifest_rewritten: Whether a manifest was found and rewritten.
        exported_before: Export-Package tokens before rewriting.
        exported_after: Export-Package tokens after rewriting.
        elapsed_ms: Wall-clock duration in milliseconds.
    """

    entries_extracted: int
    files_archived: int
    manifest_rewritten: bool
    exported_before: int
    exported_after: int
    elapsed_ms: int


def scratch_dir_for(archive_path: Path) -> Path:
    """Derive the scratch directory that sits beside an archive.

    Args:
        archive_path: Archive file path.

    Returns:
        Archive path without its suffix, or ``<name>.unpacked`` when it has none.
    """
    if archive_path.suffix:
        return archive_path.with_suffix("")
    return archive_path.with_name(f"{archive_path.name}{SCRATCH_FALLBACK_SUFFIX}")


def process_archive(
    archive_path: Path,
    mapping_path: Path,
    keep_scratch: bool = False,
    index: MappingIndex | None = None,
    log: logging.Logger | None = None,
) -> ProcessResult:
    """Rewrite an obfuscated archive's Export-Package header in place.

    Args:
        archive_path: Obfuscated archive to fix.
        mapping_path: Obfuscation mapping produced alongside the archive.
        keep_scratch: Keep the extracted tree after the rebuild.
        index: Already loaded index for ``mapping_path``; loaded when omitted.
        log: Logger receiving diagnostics.

    Returns:
        Run counters.

    Raises:
        MissingFileError: If the archive or the mapping file is absent.
        ParseError: If the mapping file is malformed.
        MalformedManifestError: If the manifest cannot be parsed.
        ArchiveIOError: If extraction, manifest I/O or rebuild fails.
    """
    log = log or logger
    started = time.monotonic()
    if not archive_path.is_file():
        raise MissingFileError(archive_path, "Archive")
    scratch_dir = scratch_dir_for(archive_path)
    if index is None:
        index = MappingIndex.load(mapping_path, log=log)

    entries_extracted = extract_archive(archive_path, scratch_dir, log=log)
    exported_before = 0
    exported_after = 0
    manifest_path = scratch_dir.joinpath(*MANIFEST_PATH.split("/"))
    manifest_rewritten = manifest_path.is_file()
    if manifest_rewritten:
        exported_before, exported_after = _fix_manifest(
            manifest_path=manifest_path, index=index, log=log
        )
    else:
        log.info("No manifest found, skipping rewrite (path=%s)", archive_path)

    files_archived = rebuild_archive(scratch_dir, archive_path, log=log)
    if not keep_scratch:
        shutil.rmtree(scratch_dir, ignore_errors=True)

    elapsed_ms = int(round((time.monotonic() - started) * 1000))
    return ProcessResult(
        entries_extracted=entries_extracted,
        files_archived=files_archived,
        manifest_rewritten=manifest_rewritten,
        exported_before=exported_before,
        exported_after=exported_after,
        elapsed_ms=elapsed_ms,
    )


def _fix_manifest(
    manifest_path: Path, index: MappingIndex, log: logging.Logger
) -> tuple[int, int]:
    """Rewrite a manifest file in place.

    Args:
        manifest_path: Manifest inside the scratch tree.
        index: Mapping index providing package renames.
        log: Logger receiving diagnostics.

    Returns:
        Export-Package token counts before and after rewriting.
    """
    try:
        text = manifest_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ArchiveIOError(
            f"Manifest cannot be read ({exc})", manifest_path
        ) from exc

    attributes = parse_manifest(text)
    rewritten = rewrite_manifest(attributes, index=index, log=log)
    try:
        manifest_path.write_bytes(serialize_manifest(rewritten).encode("utf-8"))
    except OSError as exc:
        raise ArchiveIOError(
            f"Manifest cannot be written ({exc})", manifest_path
        ) from exc

    before = count_exported_packages(attributes)
    after = count_exported_packages(rewritten)
    log.info("Rewrote manifest (path=%s exported_before=%d exported_after=%d)",
             manifest_path, before, after)
    return before, after
