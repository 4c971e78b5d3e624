# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Public import surface for bundle fix-up components."""

from bundlefix.archive import (
    ArchiveEntry,
    extract_archive,
    read_entries,
    rebuild_archive,
)
from bundlefix.errors import (
    ArchiveIOError,
    BundleFixError,
    MalformedManifestError,
    MissingFileError,
    ParseError,
)
from bundlefix.manifest import (
    EXPORT_PACKAGE,
    ManifestAttribute,
    parse_manifest,
    rewrite_manifest,
    serialize_manifest,
)
from bundlefix.mapping import ClassMapping, FieldMapping, MappingIndex, MethodMapping
from bundlefix.processor import ProcessResult, process_archive, scratch_dir_for

__all__ = [
    "EXPORT_PACKAGE",
    "ArchiveEntry",
    "ArchiveIOError",
    "BundleFixError",
    "ClassMapping",
    "FieldMapping",
    "MalformedManifestError",
    "ManifestAttribute",
    "MappingIndex",
    "MethodMapping",
    "MissingFileError",
    "ParseError",
    "ProcessResult",
    "extract_archive",
    "parse_manifest",
    "process_archive",
    "read_entries",
    "rebuild_archive",
    "rewrite_manifest",
    "scratch_dir_for",
    "serialize_manifest",
]
