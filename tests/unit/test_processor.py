# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the archive fix-up orchestration."""

import zipfile
from pathlib import Path

import pytest

from bundlefix import process_archive, read_entries, scratch_dir_for
from bundlefix.errors import MalformedManifestError, MissingFileError, ParseError

_MANIFEST = (
    "Manifest-Version: 1.0\n"
    "Bundle-SymbolicName: com.example.demo\n"
    "Export-Package: com.foo,\n"
    " com.bar\n"
)


def _write_archive(path: Path, members: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return path


def _read_member(archive_path: Path, name: str) -> bytes:
    with zipfile.ZipFile(archive_path) as archive:
        return archive.read(name)


def test_processor_rewrites_export_package_in_place(tmp_path: Path) -> None:
    archive_path = _write_archive(
        tmp_path / "demo.jar",
        {
            "META-INF/MANIFEST.MF": _MANIFEST.encode("utf-8"),
            "x/y/A.class": b"\xca\xfe",
        },
    )
    mapping_path = tmp_path / "proguard_map.txt"
    mapping_path.write_text(
        "com.foo.Service -> x.y.A:\n"
        "    int state -> a\n",
        encoding="utf-8",
    )

    result = process_archive(archive_path, mapping_path)

    manifest = _read_member(archive_path, "META-INF/MANIFEST.MF").decode("utf-8")
    assert manifest == (
        "Manifest-Version: 1.0\n"
        "Bundle-SymbolicName: com.example.demo\n"
        "Export-Package: x.y,com.bar\n"
    )
    assert _read_member(archive_path, "x/y/A.class") == b"\xca\xfe"
    assert result.manifest_rewritten is True
    assert result.exported_before == 2
    assert result.exported_after == 2
    assert result.files_archived == 2
    assert not scratch_dir_for(archive_path).exists()


def test_processor_without_manifest_repackages_unchanged(tmp_path: Path) -> None:
    members = {"a/B.class": b"\x01\x02", "readme.txt": b"hello"}
    archive_path = _write_archive(tmp_path / "plain.jar", members)
    mapping_path = tmp_path / "map.txt"
    mapping_path.write_text("a.B -> q.B:\n", encoding="utf-8")

    result = process_archive(archive_path, mapping_path, keep_scratch=True)

    assert result.manifest_rewritten is False
    assert {entry.relative_path: entry.content for entry in read_entries(archive_path)} == members
    assert (tmp_path / "plain" / "readme.txt").read_bytes() == b"hello"


def test_processor_missing_mapping_leaves_archive_untouched(tmp_path: Path) -> None:
    archive_path = _write_archive(tmp_path / "demo.jar", {"a.txt": b"a"})
    before = archive_path.read_bytes()

    with pytest.raises(MissingFileError):
        process_archive(archive_path, tmp_path / "absent.txt")

    assert archive_path.read_bytes() == before
    assert not (tmp_path / "demo").exists()


def test_processor_missing_archive_raises(tmp_path: Path) -> None:
    mapping_path = tmp_path / "map.txt"
    mapping_path.write_text("a.B -> q.B:\n", encoding="utf-8")

    with pytest.raises(MissingFileError):
        process_archive(tmp_path / "absent.jar", mapping_path)


def test_processor_malformed_mapping_aborts(tmp_path: Path) -> None:
    archive_path = _write_archive(tmp_path / "demo.jar", {"a.txt": b"a"})
    mapping_path = tmp_path / "map.txt"
    mapping_path.write_text("broken line without arrow\n", encoding="utf-8")

    with pytest.raises(ParseError):
        process_archive(archive_path, mapping_path)


def test_processor_malformed_manifest_keeps_original_archive(tmp_path: Path) -> None:
    archive_path = _write_archive(
        tmp_path / "demo.jar",
        {"META-INF/MANIFEST.MF": b"Bundle-Description: a: b\n"},
    )
    before = archive_path.read_bytes()
    mapping_path = tmp_path / "map.txt"
    mapping_path.write_text("a.B -> q.B:\n", encoding="utf-8")

    with pytest.raises(MalformedManifestError):
        process_archive(archive_path, mapping_path)

    assert archive_path.read_bytes() == before


def test_processor_scratch_dir_strips_archive_suffix(tmp_path: Path) -> None:
    assert scratch_dir_for(tmp_path / "demo-1.0.jar") == tmp_path / "demo-1.0"
    assert scratch_dir_for(tmp_path / "bundle") == tmp_path / "bundle.unpacked"
