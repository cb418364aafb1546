"""Tests for the command line entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cli.commands import expand, extract, inspect
from psfx_testing import BlobBuilder, make_cab

if TYPE_CHECKING:
    from pathlib import Path


def _extracted_tree(root: Path, builder: BlobBuilder) -> Path:
    root.mkdir()
    (root / "express.psf.cix.xml").write_bytes(builder.manifest_xml())
    (root / "express.psf").write_bytes(builder.data)
    return root


class TestExtractCommand:
    def test_extracts_package(self, tmp_path: Path, capsys):
        package = tmp_path / "update.msu"
        package.write_bytes(make_cab({"Windows10.0-KB5000001-x64.cab": make_cab({"update.mum": b"m"})}))

        extract.main([str(package), "-o", str(tmp_path / "out")])

        assert (tmp_path / "out" / "update.mum").read_bytes() == b"m"
        assert "Success" in capsys.readouterr().out

    def test_refuses_non_empty_output(self, tmp_path: Path):
        package = tmp_path / "update.msu"
        package.write_bytes(b"irrelevant")
        out = tmp_path / "out"
        out.mkdir()
        (out / "existing").write_bytes(b"")

        with pytest.raises(SystemExit) as exc:
            extract.main([str(package), "-o", str(out)])
        assert exc.value.code == 1

    def test_malformed_package_exits_1(self, tmp_path: Path):
        package = tmp_path / "update.msu"
        package.write_bytes(b"not a cabinet")
        with pytest.raises(SystemExit) as exc:
            extract.main([str(package), "-o", str(tmp_path / "out")])
        assert exc.value.code == 1


class TestExpandCommand:
    def test_expands_directory(self, tmp_path: Path):
        builder = BlobBuilder()
        builder.add("dir\\a.txt", b"alpha")
        source = _extracted_tree(tmp_path / "src", builder)

        expand.main([str(source), "--from-dir", "-o", str(tmp_path / "out"), "-w", "1"])

        assert (tmp_path / "out" / "dir" / "a.txt").read_bytes() == b"alpha"

    def test_reports_failed_files(self, tmp_path: Path, capsys):
        builder = BlobBuilder()
        builder.add("ok.txt", b"fine")
        builder.add("old.dll", b"legacy", source_type="PA19")
        source = _extracted_tree(tmp_path / "src", builder)

        with pytest.raises(SystemExit) as exc:
            expand.main([str(source), "--from-dir", "-o", str(tmp_path / "out"), "-w", "1"])

        assert exc.value.code == 1
        assert "old.dll: UnsupportedSourceType" in capsys.readouterr().out
        assert (tmp_path / "out" / "ok.txt").exists()

    def test_no_verify(self, tmp_path: Path):
        builder = BlobBuilder()
        builder.add("a.txt", b"alpha", hash="0" * 64)
        source = _extracted_tree(tmp_path / "src", builder)

        expand.main([str(source), "--from-dir", "--no-verify", "-o", str(tmp_path / "out"), "-w", "1"])

        assert (tmp_path / "out" / "a.txt").read_bytes() == b"alpha"


class TestInspectCommand:
    def test_inspects_manifest(self, tmp_path: Path, capsys):
        builder = BlobBuilder()
        builder.add("a.txt", b"alpha")
        path = tmp_path / "express.psf.cix.xml"
        path.write_bytes(builder.manifest_xml())

        inspect.main([str(path)])

        assert "Files:       1" in capsys.readouterr().out

    def test_missing_input(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc:
            inspect.main([str(tmp_path / "missing.xml")])
        assert exc.value.code == 1
