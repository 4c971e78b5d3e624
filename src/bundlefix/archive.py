# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Extract archives into scratch trees and rebuild archives from them."""

import logging
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from bundlefix.errors import ArchiveIOError, MissingFileError

logger = logging.getLogger(__name__)

MANIFEST_PATH = "META-INF/MANIFEST.MF"
TEMP_SUFFIX = ".tmp"


@dataclass(frozen=True)
class ArchiveEntry:
    """Represent one archive member.

    Args:
        relative_path: Forward-slash separated member path.
        is_directory: Whether the member is a directory.
        content: Decompressed member bytes, empty for directories.
    """

    relative_path: str
    is_directory: bool
    content: bytes


def read_entries(archive_path: Path) -> list[ArchiveEntry]:
    """Load every member of an archive into memory.

    Args:
        archive_path: Archive file path.

    Returns:
        Entries in archive order.

    Raises:
        MissingFileError: If the archive does not exist.
        ArchiveIOError: If the archive cannot be read.
    """
    if not archive_path.is_file():
        raise MissingFileError(archive_path, "Archive")
    try:
        with zipfile.ZipFile(archive_path) as archive:
            return [
                ArchiveEntry(
                    relative_path=info.filename,
                    is_directory=info.is_dir(),
                    content=b"" if info.is_dir() else archive.read(info),
                )
                for info in archive.infolist()
            ]
    except (OSError, zipfile.BadZipFile, RuntimeError, NotImplementedError) as exc:
        raise ArchiveIOError(
            f"Archive cannot be read ({exc})", archive_path
        ) from exc


def extract_archive(
    archive_path: Path, dest_dir: Path, log: logging.Logger | None = None
) -> int:
    """Inflate an archive into a freshly created directory.

    Args:
        archive_path: Archive file path.
        dest_dir: Scratch directory; existing contents are removed first.
        log: Logger receiving diagnostics.

    Returns:
        Number of entries extracted.

    Raises:
        MissingFileError: If the archive does not exist.
        ArchiveIOError: If reading the archive or writing any entry fails.
    """
    log = log or logger
    if not archive_path.is_file():
        raise MissingFileError(archive_path, "Archive")
    try:
        if dest_dir.exists():
            shutil.rmtree(dest_dir)
        dest_dir.mkdir(parents=True)
    except OSError as exc:
        raise ArchiveIOError(
            f"Scratch directory cannot be prepared ({exc})", dest_dir
        ) from exc

    try:
        archive = zipfile.ZipFile(archive_path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveIOError(
            f"Archive cannot be opened ({exc})", archive_path
        ) from exc

    extracted = 0
    try:
        for info in archive.infolist():
            target = _entry_target(
                dest_dir=dest_dir, name=info.filename, archive_path=archive_path
            )
            try:
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as source, target.open("wb") as sink:
                        shutil.copyfileobj(source, sink)
            except (
                OSError,
                zipfile.BadZipFile,
                RuntimeError,
                NotImplementedError,
            ) as exc:
                raise ArchiveIOError(
                    f"Entry {info.filename!r} cannot be extracted ({exc})",
                    archive_path,
                ) from exc
            extracted += 1
    finally:
        _close_archive(archive=archive, archive_path=archive_path, log=log)

    log.info("Extracted archive (path=%s entries=%d)", archive_path, extracted)
    return extracted


def collect_files(root: Path) -> list[Path]:
    """Collect regular files beneath a directory.

    Args:
        root: Directory to walk.

    Returns:
        Files in deterministic walk order; directories are not listed.
    """
    files: list[Path] = []
    pending: list[Path] = [root]
    while pending:
        current = pending.pop()
        for child in sorted(current.iterdir(), key=lambda item: item.name):
            if child.is_dir() and not child.is_symlink():
                pending.append(child)
            elif child.is_file():
                files.append(child)
    return files


def relative_name(path: Path, root: Path) -> str:
    """Return the forward-slash archive name of a file below ``root``."""
    return path.relative_to(root).as_posix()


def rebuild_archive(
    src_dir: Path, archive_path: Path, log: logging.Logger | None = None
) -> int:
    """Write a new archive from a directory tree and replace the destination.

    The archive is written next to the destination first and renamed over it
    only after every entry has been written.

    Args:
        src_dir: Directory tree to pack.
        archive_path: Destination archive path.
        log: Logger receiving diagnostics.

    Returns:
        Number of files written.

    Raises:
        MissingFileError: If ``src_dir`` does not exist.
        ArchiveIOError: If reading a file or writing the archive fails.
    """
    log = log or logger
    if not src_dir.is_dir():
        raise MissingFileError(src_dir, "Source directory")
    try:
        names = {relative_name(path, src_dir): path for path in collect_files(src_dir)}
    except OSError as exc:
        raise ArchiveIOError(
            f"Source directory cannot be walked ({exc})", src_dir
        ) from exc

    ordered = sorted(names, key=lambda name: (name != MANIFEST_PATH, name))
    temp_path = archive_path.with_name(f"{archive_path.name}{TEMP_SUFFIX}")
    try:
        with zipfile.ZipFile(
            temp_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            strict_timestamps=False,
        ) as archive:
            for name in ordered:
                archive.write(names[name], arcname=name)
    except (OSError, ValueError) as exc:
        temp_path.unlink(missing_ok=True)
        raise ArchiveIOError(
            f"Archive cannot be written ({exc})", temp_path
        ) from exc

    try:
        temp_path.replace(archive_path)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise ArchiveIOError(
            f"Archive cannot be replaced ({exc})", archive_path
        ) from exc

    log.info("Rebuilt archive (path=%s files=%d)", archive_path, len(ordered))
    return len(ordered)


def _entry_target(dest_dir: Path, name: str, archive_path: Path) -> Path:
    """Resolve the extraction target of one entry.

    Args:
        dest_dir: Scratch directory.
        name: Entry name from the archive.
        archive_path: Archive path used in error messages.

    Returns:
        Target path inside ``dest_dir``.

    Raises:
        ArchiveIOError: If the entry would land outside ``dest_dir``.
    """
    entry = PurePosixPath(name)
    if entry.is_absolute() or ".." in entry.parts:
        raise ArchiveIOError(
            f"Entry {name!r} escapes the extraction directory", archive_path
        )
    return dest_dir.joinpath(*entry.parts)


def _close_archive(
    archive: zipfile.ZipFile, archive_path: Path, log: logging.Logger
) -> None:
    try:
        archive.close()
    except OSError as exc:
        log.warning(
            "Archive reader could not be closed (path=%s error=%s)", archive_path, exc
        )
