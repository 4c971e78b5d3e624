# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Error taxonomy for bundle fix-up operations."""

from pathlib import Path


class BundleFixError(RuntimeError):
    """Represent any fatal bundle fix-up failure."""


class MissingFileError(BundleFixError):
    """Represent an archive or mapping file absent at the expected path."""

    def __init__(self, path: Path, what: str) -> None:
        """Initialize error.

        Args:
            path: Path that was expected to exist.
            what: Human readable description of the file.
        """
        super().__init__(f"{what} does not exist: {path}")
        self.path = path


class ParseError(BundleFixError):
    """Represent an undecodable class-mapping line."""

    def __init__(
        self, message: str, path: Path | None = None, line_number: int = 0
    ) -> None:
        """Initialize error.

        Args:
            message: Failure description.
            path: Mapping file path, when known.
            line_number: 1-based line number, 0 when unknown.
        """
        location = ""
        if path is not None:
            location = f" ({path}:{line_number})" if line_number else f" ({path})"
        super().__init__(f"{message}{location}")
        self.path = path
        self.line_number = line_number


class MalformedManifestError(BundleFixError):
    """Represent a manifest line with an unexpected structure."""


class ArchiveIOError(BundleFixError):
    """Represent an underlying read or write failure on an archive."""

    def __init__(self, message: str, path: Path) -> None:
        """Initialize error.

        Args:
            message: Failure description.
            path: Offending file or directory path.
        """
        super().__init__(f"{message}: {path}")
        self.path = path
