# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Parse obfuscation mapping files and derive package rename tables."""

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from bundlefix.errors import MissingFileError, ParseError

logger = logging.getLogger(__name__)

_ARROW = "->"
_METHOD_PATTERN = re.compile(
    r"^(?:(?P<first>\d+):(?P<last>\d+):)?"
    r"(?P<type>\S+)\s+(?P<name>[^\s(]+)\((?P<args>[^)]*)\)"
    r"(?::\d+(?::\d+)?)?$"
)
_FIELD_PATTERN = re.compile(r"^(?P<type>\S+)\s+(?P<name>\S+)$")


@dataclass(frozen=True)
class ClassMapping:
    """Represent one renamed class.

    Args:
        original: Original dotted class name.
        obfuscated: Renamed dotted class name.
    """

    original: str
    obfuscated: str


@dataclass(frozen=True)
class FieldMapping:
    """Represent one renamed field of the enclosing class."""

    class_name: str
    field_type: str
    original: str
    obfuscated: str


@dataclass(frozen=True)
class MethodMapping:
    """Represent one renamed method of the enclosing class.

    Args:
        class_name: Original name of the enclosing class.
        first_line: First source line of the method, 0 when absent.
        last_line: Last source line of the method, 0 when absent.
        return_type: Declared return type.
        original: Original method name.
        arguments: Comma-separated argument types.
        obfuscated: Renamed method name.
    """

    class_name: str
    first_line: int
    last_line: int
    return_type: str
    original: str
    arguments: str
    obfuscated: str


MappingEntry = ClassMapping | FieldMapping | MethodMapping


def package_of(class_name: str) -> str:
    """Return the package part of a dotted class name.

    Args:
        class_name: Dotted qualified class name.

    Returns:
        Name truncated at the last dot, empty for the default package.
    """
    return class_name.rpartition(".")[0]


def parse_mapping_lines(
    lines: Iterable[str],
    source: Path | None = None,
    log: logging.Logger | None = None,
) -> Iterator[MappingEntry]:
    """Decode mapping file lines into tagged mapping entries.

    Args:
        lines: Raw mapping file lines.
        source: Mapping file path used in error messages.
        log: Logger receiving diagnostics.

    Yields:
        One entry per class, field or method line.

    Raises:
        ParseError: If a class line does not hold exactly two names.
    """
    log = log or logger
    current_class: str | None = None
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if line[0].isspace():
            if current_class is None:
                log.debug(
                    "Skipping member line before any class (line=%d)", line_number
                )
                continue
            member = _parse_member(class_name=current_class, text=stripped)
            if member is None:
                log.debug("Skipping undecodable member line (line=%d)", line_number)
                continue
            yield member
            continue
        entry = _parse_class(text=stripped, source=source, line_number=line_number)
        current_class = entry.original
        yield entry


def read_mapping_entries(
    mapping_path: Path, log: logging.Logger | None = None
) -> list[MappingEntry]:
    """Read and decode all entries of a mapping file.

    Args:
        mapping_path: Mapping file path.
        log: Logger receiving diagnostics.

    Returns:
        Decoded entries in file order.

    Raises:
        MissingFileError: If the mapping file does not exist.
        ParseError: If the file cannot be read or a class line is malformed.
    """
    if not mapping_path.is_file():
        raise MissingFileError(mapping_path, "Mapping file")
    try:
        with mapping_path.open(encoding="utf-8") as handle:
            return list(parse_mapping_lines(handle, source=mapping_path, log=log))
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(
            f"Mapping file could not be read: {exc}", mapping_path
        ) from exc


@dataclass
class MappingIndex:
    """Hold class renames and the package renames derived from them.

    Args:
        classes: Original class name to obfuscated class name.
        packages: Original package name to obfuscated package names.
    """

    classes: dict[str, str] = field(default_factory=dict)
    packages: dict[str, set[str]] = field(default_factory=dict)

    @classmethod
    def load(
        cls, mapping_path: Path, log: logging.Logger | None = None
    ) -> "MappingIndex":
        """Build an index from a mapping file.

        Args:
            mapping_path: Mapping file path.
            log: Logger receiving diagnostics.

        Returns:
            Populated mapping index.
        """
        log = log or logger
        index = cls.from_entries(read_mapping_entries(mapping_path, log=log))
        log.info(
            "Loaded mapping (path=%s classes=%d packages=%d)",
            mapping_path,
            len(index.classes),
            len(index.packages),
        )
        return index

    @classmethod
    def from_entries(cls, entries: Iterable[MappingEntry]) -> "MappingIndex":
        """Build an index from decoded entries; member entries are ignored.

        Args:
            entries: Decoded mapping entries.

        Returns:
            Populated mapping index.
        """
        index = cls()
        for entry in entries:
            if isinstance(entry, ClassMapping):
                index.add_class(entry)
            elif isinstance(entry, (FieldMapping, MethodMapping)):
                continue
        return index

    def add_class(self, mapping: ClassMapping) -> None:
        """Record one class rename and its package rename.

        Args:
            mapping: Class rename entry.
        """
        self.classes[mapping.original] = mapping.obfuscated
        original_package = package_of(mapping.original)
        obfuscated_package = package_of(mapping.obfuscated)
        self.packages.setdefault(original_package, set()).add(obfuscated_package)

    def lookup_packages(self, original_package: str) -> set[str]:
        """Return obfuscated packages for an original package.

        Args:
            original_package: Original dotted package name.

        Returns:
            Derived package set, or the input alone when never observed.
        """
        packages = self.packages.get(original_package)
        if packages is None:
            return {original_package}
        return set(packages)

    def lookup_class(self, original_class: str) -> str:
        """Return the obfuscated name of a class, or the input when unmapped."""
        return self.classes.get(original_class, original_class)

    def __len__(self) -> int:
        return len(self.packages)


def _parse_class(text: str, source: Path | None, line_number: int) -> ClassMapping:
    body = text[:-1] if text.endswith(":") else text
    parts = [part.strip() for part in body.split(_ARROW)]
    if len(parts) != 2 or not all(parts):
        raise ParseError(
            f"Class mapping line must hold two names: {text!r}", source, line_number
        )
    return ClassMapping(original=parts[0], obfuscated=parts[1])


def _parse_member(class_name: str, text: str) -> FieldMapping | MethodMapping | None:
    """Decode one indented member line.

    Args:
        class_name: Original name of the enclosing class.
        text: Stripped member line.

    Returns:
        Decoded member entry, or ``None`` when the line is not understood.
    """
    declaration, arrow, obfuscated = text.rpartition(_ARROW)
    if not arrow:
        return None
    declaration = declaration.strip()
    obfuscated = obfuscated.strip()
    method = _METHOD_PATTERN.match(declaration)
    if method is not None:
        return MethodMapping(
            class_name=class_name,
            first_line=int(method.group("first") or 0),
            last_line=int(method.group("last") or 0),
            return_type=method.group("type"),
            original=method.group("name"),
            arguments=method.group("args"),
            obfuscated=obfuscated,
        )
    field_match = _FIELD_PATTERN.match(declaration)
    if field_match is not None:
        return FieldMapping(
            class_name=class_name,
            field_type=field_match.group("type"),
            original=field_match.group("name"),
            obfuscated=obfuscated,
        )
    return None
