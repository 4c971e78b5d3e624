# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Parse, rewrite, and re-fold JAR manifest attributes."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from bundlefix.errors import MalformedManifestError
from bundlefix.mapping import MappingIndex

logger = logging.getLogger(__name__)

EXPORT_PACKAGE = "Export-Package"
ATTRIBUTE_SEPARATOR = ": "
PACKAGE_SEPARATOR = ","
FIRST_LINE_WIDTH = 70
CONTINUATION_WIDTH = 69
CONTINUATION_PREFIX = " "
MAX_NAME_LENGTH = FIRST_LINE_WIDTH - len(ATTRIBUTE_SEPARATOR)


@dataclass(frozen=True)
class ManifestAttribute:
    """Represent one logical manifest header.

    Args:
        name: Attribute name.
        value: Unfolded attribute value.
        section: Zero-based index of the blank-line separated section.
    """

    name: str
    value: str
    section: int = 0


def parse_manifest(text: str) -> list[ManifestAttribute]:
    """Reconstruct logical attributes from folded manifest text.

    A line starting with one space continues the current value with that
    space removed. An empty line closes the current section. Any other line
    holding the ``": "`` separator starts a new attribute; remaining lines are
    appended trimmed.

    Args:
        text: Raw manifest text.

    Returns:
        Attributes in file order.

    Raises:
        MalformedManifestError: If a line holds more than one separator, or a
            continuation appears before the first attribute.
    """
    attributes: list[ManifestAttribute] = []
    current_name: str | None = None
    value_parts: list[str] = []
    section = 0
    section_used = False

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line:
            if current_name is not None:
                attributes.append(
                    ManifestAttribute(current_name, "".join(value_parts), section)
                )
                current_name = None
            if section_used:
                section += 1
                section_used = False
            continue
        if line.startswith(CONTINUATION_PREFIX):
            continuation = line[len(CONTINUATION_PREFIX):]
        elif ATTRIBUTE_SEPARATOR in line:
            parts = line.split(ATTRIBUTE_SEPARATOR)
            if len(parts) > 2:
                raise MalformedManifestError(
                    f"Unsupported manifest line {line_number}: {line!r}"
                )
            if current_name is not None:
                attributes.append(
                    ManifestAttribute(current_name, "".join(value_parts), section)
                )
            current_name = parts[0]
            section_used = True
            value_parts = [parts[1].lstrip()]
            continue
        else:
            continuation = line.strip()

        if current_name is None:
            if not continuation:
                continue
            raise MalformedManifestError(
                f"Manifest line {line_number} continues no attribute: {line!r}"
            )
        value_parts.append(continuation)

    if current_name is not None:
        attributes.append(
            ManifestAttribute(current_name, "".join(value_parts), section)
        )
    return attributes


def rewrite_export_package(
    value: str, index: MappingIndex, log: logging.Logger | None = None
) -> str:
    """Map every exported package through the index.

    Args:
        value: Comma-separated Export-Package value.
        index: Mapping index providing package renames.
        log: Logger receiving diagnostics.

    Returns:
        Comma-joined renamed packages in original token order.
    """
    log = log or logger
    renamed: list[str] = []
    for token in value.split(PACKAGE_SEPARATOR):
        package = token.strip()
        if not package:
            continue
        targets = sorted(index.lookup_packages(package))
        if targets != [package]:
            log.debug(
                "Renamed exported package (original=%s renamed=%s)", package, targets
            )
        renamed.extend(targets)
    return PACKAGE_SEPARATOR.join(renamed)


def rewrite_manifest(
    attributes: Iterable[ManifestAttribute],
    index: MappingIndex,
    log: logging.Logger | None = None,
) -> list[ManifestAttribute]:
    """Rewrite Export-Package attributes and pass the rest through.

    Args:
        attributes: Parsed manifest attributes.
        index: Mapping index providing package renames.
        log: Logger receiving diagnostics.

    Returns:
        Attributes in original order.
    """
    rewritten: list[ManifestAttribute] = []
    for attribute in attributes:
        if attribute.name != EXPORT_PACKAGE:
            rewritten.append(attribute)
            continue
        rewritten.append(
            replace(
                attribute,
                value=rewrite_export_package(attribute.value, index=index, log=log),
            )
        )
    return rewritten


def serialize_manifest(attributes: Sequence[ManifestAttribute]) -> str:
    """Render attributes as folded manifest text.

    Args:
        attributes: Attributes to render.

    Returns:
        Newline-terminated manifest text, sections separated by an empty line.

    Raises:
        MalformedManifestError: If a name leaves no room for the separator on
            the first physical line.
    """
    lines: list[str] = []
    previous_section: int | None = None
    for attribute in attributes:
        if len(attribute.name) > MAX_NAME_LENGTH:
            raise MalformedManifestError(
                f"Manifest attribute name longer than {MAX_NAME_LENGTH}: "
                f"{attribute.name!r}"
            )
        if previous_section is not None and attribute.section != previous_section:
            lines.append("")
        previous_section = attribute.section
        header = f"{attribute.name}{ATTRIBUTE_SEPARATOR}{attribute.value}"
        lines.extend(fold_line(header))
    return "".join(f"{line}\n" for line in lines)


def fold_line(line: str) -> list[str]:
    """Split one logical header line into physical lines.

    Args:
        line: Complete ``name: value`` text.

    Returns:
        First physical line followed by space-prefixed continuations.
    """
    physical = [line[:FIRST_LINE_WIDTH]]
    for start in range(FIRST_LINE_WIDTH, len(line), CONTINUATION_WIDTH):
        physical.append(CONTINUATION_PREFIX + line[start:start + CONTINUATION_WIDTH])
    return physical


def count_exported_packages(attributes: Iterable[ManifestAttribute]) -> int:
    """Count non-empty Export-Package tokens across attributes."""
    return sum(
        len([token for token in attribute.value.split(PACKAGE_SEPARATOR) if token])
        for attribute in attributes
        if attribute.name == EXPORT_PACKAGE
    )
