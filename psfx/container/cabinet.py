"""
psfx Cabinet Container
Adapter over the cabarchive library: list entries, read an entry's bytes,
open a nested cabinet, extract everything to a directory.
Cabinets cabarchive cannot decode (LZX folders) go through the system
extractor: expand.exe on Windows, cabextract elsewhere.
"""
import datetime
import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from cabarchive import CabArchive, CabFile, CorruptionError, NotSupportedError

from ..config import config
from ..errors import EntryNotFoundError, MalformedContainerError
from ..utils.logger import logger
from ..utils.paths import normalize_relative, safe_join


CAB_SIGNATURE = b"MSCF"


def extractor_command(source: Path, dest: Path) -> List[str]:
    """argv of the system cabinet extractor"""
    if sys.platform == "win32":
        return ["expand.exe", "-F:*", str(source), str(dest)]
    return ["cabextract", "-q", "-d", str(dest), str(source)]


def _entry_mtime(entry: CabFile) -> Optional[datetime.datetime]:
    # cabinet timestamps are local time
    if entry.date is None or entry.time is None:
        return None
    return datetime.datetime.combine(entry.date, entry.time)


def _extract_externally(name: str, data: bytes) -> CabArchive:
    """Unpack with the system extractor and load the files into a CabArchive"""
    with tempfile.TemporaryDirectory(prefix="psfx-cab-") as tmp:
        source = Path(tmp) / "source.cab"
        dest = Path(tmp) / "out"
        source.write_bytes(data)
        dest.mkdir()

        argv = extractor_command(source, dest)
        if shutil.which(argv[0]) is None:
            raise MalformedContainerError(
                f"Cannot read cabinet {name}: {argv[0]} is required for this compression"
            )

        timeout = config.get('container', 'extractor_timeout', default=600)
        try:
            cp = subprocess.run(argv, capture_output=True, check=False, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise MalformedContainerError(f"{argv[0]} timed out on {name}") from None
        except OSError as e:
            raise MalformedContainerError(f"Cannot run {argv[0]} on {name}: {e}") from e

        if cp.returncode != 0:
            stderr = cp.stderr.decode("utf-8", errors="ignore").strip()
            raise MalformedContainerError(
                f"{argv[0]} failed on {name} (exit {cp.returncode}): {stderr[:512]}"
            )

        archive = CabArchive()
        for path in sorted(p for p in dest.rglob("*") if p.is_file()):
            rel = path.relative_to(dest).as_posix().replace("/", "\\")
            mtime = datetime.datetime.fromtimestamp(path.stat().st_mtime)
            archive[rel] = CabFile(path.read_bytes(), mtime=mtime)
        return archive


class CabinetContainer:
    """An opened cabinet; owns its parsed archive and nothing else"""

    def __init__(self, name: str, archive: CabArchive):
        self.name = name
        self._archive = archive

    @classmethod
    def open(cls, path) -> "CabinetContainer":
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise EntryNotFoundError(f"Container not found: {path}") from None
        except OSError as e:
            raise MalformedContainerError(f"Cannot read container {path}: {e}") from e
        return cls.from_bytes(path.name, data)

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "CabinetContainer":
        archive = CabArchive()
        try:
            archive.parse(data)
        except CorruptionError as e:
            raise MalformedContainerError(f"Cannot read cabinet {name}: {e}") from e
        except NotSupportedError as e:
            if not data.startswith(CAB_SIGNATURE):
                raise MalformedContainerError(f"Cannot read cabinet {name}: {e}") from e
            logger.info(f"⚠️  {name}: {e}, using the system extractor")
            archive = _extract_externally(name, data)
        logger.debug(f"Opened cabinet {name} ({len(archive)} entries)")
        return cls(name, archive)

    def list_entries(self) -> List[str]:
        return list(self._archive.keys())

    def _lookup(self, name: str) -> str:
        if name in self._archive:
            return name
        wanted = normalize_relative(name).lower()
        for entry in self._archive:
            if normalize_relative(entry).lower() == wanted:
                return entry
        raise EntryNotFoundError(f"Entry {name!r} not found in {self.name}")

    def has_entry(self, name: str) -> bool:
        try:
            self._lookup(name)
        except EntryNotFoundError:
            return False
        return True

    def read_entry(self, name: str) -> bytes:
        return self._archive[self._lookup(name)].buf

    def open_nested(self, name: str) -> "CabinetContainer":
        """Parse an entry as a cabinet of its own; the parent is not retained"""
        return CabinetContainer.from_bytes(name, self.read_entry(name))

    def extract_all(self, output_dir) -> List[Path]:
        """Write every entry under output_dir, restoring entry timestamps"""
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for name, entry in self._archive.items():
            target = safe_join(out_dir, name)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(entry.buf or b"")

            mtime = _entry_mtime(entry)
            if mtime is not None:
                stamp = mtime.timestamp()
                os.utime(target, (stamp, stamp))

            written.append(target)
            logger.debug(f"   {name} → {target} ({len(entry)} bytes)")

        logger.info(f"📦 Extracted {len(written)} entries from {self.name}")
        return written


__all__ = ["CabinetContainer", "extractor_command"]
