# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for mapping file parsing and package index derivation."""

from pathlib import Path

import pytest

from bundlefix import ClassMapping, FieldMapping, MappingIndex, MethodMapping
from bundlefix.errors import MissingFileError, ParseError
from bundlefix.mapping import package_of, parse_mapping_lines


def _write_mapping(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_mapping_classes_in_same_package_collapse_to_one_target(tmp_path: Path) -> None:
    mapping_path = _write_mapping(
        tmp_path / "proguard_map.txt",
        "A.B.C -> x.y.Z:\n"
        "A.B.D -> x.y.W:\n",
    )

    index = MappingIndex.load(mapping_path)

    assert index.lookup_packages("A.B") == {"x.y"}
    assert index.lookup_class("A.B.C") == "x.y.Z"


def test_mapping_unknown_package_falls_back_to_itself(tmp_path: Path) -> None:
    mapping_path = _write_mapping(tmp_path / "map.txt", "com.foo.Bar -> a.b.c.D:\n")

    index = MappingIndex.load(mapping_path)

    assert index.lookup_packages("org.unknown") == {"org.unknown"}
    assert index.lookup_class("org.unknown.Type") == "org.unknown.Type"


def test_mapping_split_package_keeps_every_target(tmp_path: Path) -> None:
    mapping_path = _write_mapping(
        tmp_path / "map.txt",
        "com.foo.Bar -> a.A:\n"
        "com.foo.Baz -> b.B:\n"
        "com.foo.Qux -> a.C:\n",
    )

    index = MappingIndex.load(mapping_path)

    assert index.lookup_packages("com.foo") == {"a", "b"}
    assert len(index) == 1


def test_mapping_member_lines_only_yield_empty_index(tmp_path: Path) -> None:
    mapping_path = _write_mapping(
        tmp_path / "map.txt",
        "    int count -> a\n"
        "    void run(java.lang.String) -> b\n",
    )

    index = MappingIndex.load(mapping_path)

    assert len(index) == 0
    assert index.lookup_packages("com.foo") == {"com.foo"}


def test_mapping_parser_emits_tagged_member_entries() -> None:
    lines = [
        "# compiler: R8\n",
        "com.foo.Bar -> a.b:\n",
        "    java.lang.String name -> a\n",
        "    12:15:void run(java.lang.String,int):40:43 -> b\n",
        "    boolean isReady() -> c\n",
        "\n",
    ]

    entries = list(parse_mapping_lines(lines))

    assert entries == [
        ClassMapping(original="com.foo.Bar", obfuscated="a.b"),
        FieldMapping(
            class_name="com.foo.Bar",
            field_type="java.lang.String",
            original="name",
            obfuscated="a",
        ),
        MethodMapping(
            class_name="com.foo.Bar",
            first_line=12,
            last_line=15,
            return_type="void",
            original="run",
            arguments="java.lang.String,int",
            obfuscated="b",
        ),
        MethodMapping(
            class_name="com.foo.Bar",
            first_line=0,
            last_line=0,
            return_type="boolean",
            original="isReady",
            arguments="",
            obfuscated="c",
        ),
    ]


def test_mapping_index_ignores_member_entries() -> None:
    index = MappingIndex.from_entries(
        [
            FieldMapping(class_name="com.foo.Bar", field_type="int", original="x", obfuscated="a"),
            ClassMapping(original="com.foo.Bar", obfuscated="q.Bar"),
        ]
    )

    assert index.packages == {"com.foo": {"q"}}
    assert index.classes == {"com.foo.Bar": "q.Bar"}


def test_mapping_class_line_with_extra_arrow_raises_parse_error(tmp_path: Path) -> None:
    mapping_path = _write_mapping(
        tmp_path / "map.txt",
        "com.foo.Bar -> a.b:\n"
        "com.foo.Baz -> a.c -> a.d:\n",
    )

    with pytest.raises(ParseError) as excinfo:
        MappingIndex.load(mapping_path)

    assert excinfo.value.line_number == 2


def test_mapping_class_line_without_arrow_raises_parse_error() -> None:
    with pytest.raises(ParseError):
        list(parse_mapping_lines(["com.foo.Bar:\n"]))


def test_mapping_missing_file_raises_missing_file_error(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        MappingIndex.load(tmp_path / "absent.txt")


def test_mapping_default_package_class_maps_to_empty_package() -> None:
    assert package_of("Main") == ""
    assert package_of("com.foo.Main") == "com.foo"
