"""
psfx Patch Blob
Read-only byte source for the aggregate patch file (*.psf).
Every thread reads through its own handle, so seek+read pairs never race.
"""
import os
import threading
from pathlib import Path
from typing import BinaryIO, List

from ..errors import TruncatedPayloadError


class PatchBlob:

    def __init__(self, size: int):
        self.size = size

    @classmethod
    def open(cls, path) -> "FilePatchBlob":
        return FilePatchBlob(path)

    @classmethod
    def from_bytes(cls, data: bytes) -> "MemoryPatchBlob":
        return MemoryPatchBlob(data)

    def read_range(self, offset: int, length: int) -> bytes:
        """Return exactly length bytes starting at offset"""
        if offset + length > self.size:
            raise TruncatedPayloadError(
                f"Payload [{offset}, {offset + length}) exceeds blob size {self.size}"
            )
        data = self._read(offset, length)
        if len(data) != length:
            raise TruncatedPayloadError(
                f"Short read at offset {offset}: wanted {length} bytes, got {len(data)}"
            )
        return data

    def _read(self, offset: int, length: int) -> bytes:
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FilePatchBlob(PatchBlob):

    def __init__(self, path):
        self.path = Path(path)
        super().__init__(os.path.getsize(self.path))
        self._local = threading.local()
        self._handles: List[BinaryIO] = []
        self._lock = threading.Lock()

    def _handle(self) -> BinaryIO:
        handle = getattr(self._local, 'handle', None)
        if handle is None:
            handle = open(self.path, 'rb')
            self._local.handle = handle
            with self._lock:
                self._handles.append(handle)
        return handle

    def _read(self, offset: int, length: int) -> bytes:
        handle = self._handle()
        handle.seek(offset)
        return handle.read(length)

    def close(self):
        with self._lock:
            for handle in self._handles:
                handle.close()
            self._handles.clear()
        self._local = threading.local()


class MemoryPatchBlob(PatchBlob):
    """Blob already held in memory, e.g. read straight from the inner cabinet"""

    def __init__(self, data: bytes):
        super().__init__(len(data))
        self._view = memoryview(data)

    def _read(self, offset: int, length: int) -> bytes:
        return self._view[offset:offset + length].tobytes()


__all__ = ["PatchBlob", "FilePatchBlob", "MemoryPatchBlob"]
