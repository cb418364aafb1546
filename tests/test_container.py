"""Tests for the cabinet adapter and the inner package locator."""

from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from cabarchive import CabArchive, CabFile, CorruptionError, NotSupportedError

from psfx.container import cabinet
from psfx.container.cabinet import CabinetContainer
from psfx.container.locator import find_inner_package, patch_blob_name, resolve_inner_container
from psfx.errors import EntryNotFoundError, MalformedContainerError
from psfx_testing import make_cab

PATTERN = r"Windows(\d+\.\d+)-(KB\d+)-(.*)\.cab"
INNER = "Windows10.0-KB5000001-x64.cab"


class TestCabinetContainer:
    def test_list_and_read(self):
        cab = CabinetContainer.from_bytes("t.cab", make_cab({"a.txt": b"alpha", "sub\\b.txt": b"beta"}))
        assert sorted(cab.list_entries()) == ["a.txt", "sub\\b.txt"]
        assert cab.read_entry("a.txt") == b"alpha"

    def test_lookup_is_case_and_separator_insensitive(self):
        cab = CabinetContainer.from_bytes("t.cab", make_cab({"Sub\\Express.PSF.cix.xml": b"<x/>"}))
        assert cab.read_entry("sub/express.psf.cix.xml") == b"<x/>"
        assert cab.has_entry("SUB\\EXPRESS.PSF.CIX.XML")

    def test_missing_entry(self):
        cab = CabinetContainer.from_bytes("t.cab", make_cab({"a.txt": b"alpha"}))
        with pytest.raises(EntryNotFoundError, match="missing.txt"):
            cab.read_entry("missing.txt")
        assert not cab.has_entry("missing.txt")

    def test_malformed_container(self):
        with pytest.raises(MalformedContainerError):
            CabinetContainer.from_bytes("junk.cab", b"this is not a cabinet archive")

    def test_missing_container_file(self, tmp_path: Path):
        with pytest.raises(EntryNotFoundError):
            CabinetContainer.open(tmp_path / "nope.msu")

    def test_open_from_path(self, tmp_path: Path):
        path = tmp_path / "update.msu"
        path.write_bytes(make_cab({"a.txt": b"alpha"}))
        cab = CabinetContainer.open(path)
        assert cab.name == "update.msu"
        assert cab.read_entry("a.txt") == b"alpha"

    def test_extract_all_mirrors_subdirectories(self, tmp_path: Path):
        cab = CabinetContainer.from_bytes("t.cab", make_cab({"a.txt": b"alpha", "sub\\b.txt": b"beta"}))
        written = cab.extract_all(tmp_path / "out")
        assert sorted(p.name for p in written) == ["a.txt", "b.txt"]
        assert (tmp_path / "out" / "sub" / "b.txt").read_bytes() == b"beta"

    def test_extract_all_restores_entry_timestamps(self, tmp_path: Path):
        stamp = datetime.datetime(2020, 9, 13, 12, 26, 40)
        archive = CabArchive()
        archive["a.txt"] = CabFile(b"alpha", mtime=stamp)
        cab = CabinetContainer.from_bytes("t.cab", archive.save())

        (written,) = cab.extract_all(tmp_path / "out")

        assert datetime.datetime.fromtimestamp(written.stat().st_mtime) == stamp

    def test_unreadable_container_file(self, tmp_path: Path):
        with pytest.raises(MalformedContainerError, match="Cannot read container"):
            CabinetContainer.open(tmp_path)


FAKE_EXTRACTOR = """
import sys
from pathlib import Path
from cabarchive import CabArchive

source, dest = Path(sys.argv[1]), Path(sys.argv[2])
for name, entry in CabArchive(source.read_bytes()).items():
    target = dest / name.replace("\\\\", "/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(entry.buf)
"""


def _unsupported(self, buf):
    raise NotSupportedError("LZX compression not supported")


class TestSystemExtractorFallback:
    @pytest.fixture(autouse=True)
    def _lzx_only(self, monkeypatch):
        monkeypatch.setattr(CabArchive, "parse", _unsupported)

    def _use_command(self, monkeypatch, argv):
        monkeypatch.setattr(cabinet, "extractor_command", lambda source, dest: [*argv, str(source), str(dest)])

    def test_unsupported_compression_goes_through_the_extractor(self, tmp_path: Path, monkeypatch):
        script = tmp_path / "fake_extractor.py"
        script.write_text(FAKE_EXTRACTOR, encoding="utf-8")
        self._use_command(monkeypatch, [sys.executable, str(script)])

        cab = CabinetContainer.from_bytes("lzx.cab", make_cab({"a.txt": b"alpha", "sub\\b.txt": b"beta"}))

        assert sorted(cab.list_entries()) == ["a.txt", "sub\\b.txt"]
        assert cab.read_entry("sub/b.txt") == b"beta"
        cab.extract_all(tmp_path / "out")
        assert (tmp_path / "out" / "a.txt").read_bytes() == b"alpha"

    def test_missing_extractor(self, monkeypatch):
        self._use_command(monkeypatch, ["psfx-no-such-extractor"])
        with pytest.raises(MalformedContainerError, match="psfx-no-such-extractor is required"):
            CabinetContainer.from_bytes("lzx.cab", make_cab({"a.txt": b"alpha"}))

    def test_failing_extractor(self, monkeypatch):
        self._use_command(monkeypatch, [sys.executable, "-c", "import sys; sys.exit(3)"])
        with pytest.raises(MalformedContainerError, match="exit 3"):
            CabinetContainer.from_bytes("lzx.cab", make_cab({"a.txt": b"alpha"}))

    def test_corrupt_data_does_not_reach_the_extractor(self, monkeypatch):
        def corrupt(self, buf):
            raise CorruptionError("bad header")

        monkeypatch.setattr(CabArchive, "parse", corrupt)
        self._use_command(monkeypatch, ["psfx-no-such-extractor"])
        with pytest.raises(MalformedContainerError, match="bad header"):
            CabinetContainer.from_bytes("junk.cab", b"junk")

    def test_non_cabinet_data_does_not_reach_the_extractor(self, monkeypatch):
        self._use_command(monkeypatch, ["psfx-no-such-extractor"])
        with pytest.raises(MalformedContainerError, match="LZX compression not supported"):
            CabinetContainer.from_bytes("junk.cab", b"this is not a cabinet archive")

    @pytest.mark.parametrize(("platform", "tool"), [("win32", "expand.exe"), ("linux", "cabextract")])
    def test_default_command(self, monkeypatch, platform: str, tool: str):
        monkeypatch.setattr(sys, "platform", platform)
        assert cabinet.extractor_command(Path("a.cab"), Path("out"))[0] == tool


class TestLocator:
    def test_find_inner_package(self):
        outer = CabinetContainer.from_bytes("u.msu", make_cab({
            "WSUSSCAN.cab": b"x",
            INNER: make_cab({"update.mum": b"m"}),
        }))
        assert find_inner_package(outer, PATTERN) == INNER

    def test_pattern_is_case_insensitive(self):
        outer = CabinetContainer.from_bytes("u.msu", make_cab({"windows10.0-kb5000001-x64.cab": b"x"}))
        assert find_inner_package(outer, PATTERN) == "windows10.0-kb5000001-x64.cab"

    def test_no_inner_package(self):
        outer = CabinetContainer.from_bytes("u.msu", make_cab({"WSUSSCAN.cab": b"x"}))
        with pytest.raises(EntryNotFoundError):
            find_inner_package(outer, PATTERN)

    def test_resolve_single_level(self):
        inner = make_cab({"update.mum": b"m"})
        outer = CabinetContainer.from_bytes("u.msu", make_cab({INNER: inner}))
        resolved = resolve_inner_container(outer, PATTERN)
        assert resolved.name == INNER
        assert resolved.list_entries() == ["update.mum"]

    def test_resolve_doubly_wrapped_package(self):
        innermost = make_cab({"update.mum": b"m"})
        middle = make_cab({INNER: innermost})
        outer = CabinetContainer.from_bytes("u.msu", make_cab({INNER: middle}))
        resolved = resolve_inner_container(outer, PATTERN, max_depth=2)
        assert resolved.list_entries() == ["update.mum"]

    def test_max_depth_stops_descent(self):
        innermost = make_cab({"update.mum": b"m"})
        middle = make_cab({INNER: innermost})
        outer = CabinetContainer.from_bytes("u.msu", make_cab({INNER: middle}))
        resolved = resolve_inner_container(outer, PATTERN, max_depth=1)
        assert resolved.list_entries() == [INNER]

    def test_patch_blob_name(self):
        assert patch_blob_name(INNER) == "Windows10.0-KB5000001-x64.psf"
        assert patch_blob_name("dir\\" + INNER) == "Windows10.0-KB5000001-x64.psf"
