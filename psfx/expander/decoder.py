"""
psfx Delta Decoder
Binding to the platform delta compression API (msdelta.dll, ApplyDeltaB).

The native call hands back a buffer owned by msdelta; it is copied into a
Python bytes object and released with DeltaFree before returning, so callers
only ever see an owned, bounds-checked buffer.
"""
import ctypes
import sys
import threading
from typing import Optional, Protocol

from ..errors import DeltaApplyError
from ..utils.logger import logger

DELTA_FLAG_NONE = 0


class DeltaDecoder(Protocol):
    def apply_delta(self, basis: Optional[bytes], encoded: bytes) -> bytes:
        ...


class DELTA_INPUT(ctypes.Structure):
    _fields_ = [
        ("lpStart", ctypes.c_void_p),
        ("uSize", ctypes.c_size_t),
        ("Editable", ctypes.c_int),
    ]


class DELTA_OUTPUT(ctypes.Structure):
    _fields_ = [
        ("lpStart", ctypes.c_void_p),
        ("uSize", ctypes.c_size_t),
    ]


class MsDeltaDecoder:
    """Applies PA30 deltas through msdelta.dll (Windows only)"""

    def __init__(self, library: str = "msdelta.dll"):
        self.library = library
        self._dll = None
        self._lock = threading.Lock()

    def _load(self):
        with self._lock:
            if self._dll is not None:
                return self._dll
            if sys.platform != 'win32':
                raise DeltaApplyError(f"{self.library} is only available on Windows")
            try:
                dll = ctypes.WinDLL(self.library, use_last_error=True)
            except OSError as e:
                raise DeltaApplyError(f"Cannot load {self.library}: {e}") from e

            dll.ApplyDeltaB.argtypes = [
                ctypes.c_uint64, DELTA_INPUT, DELTA_INPUT, ctypes.POINTER(DELTA_OUTPUT)
            ]
            dll.ApplyDeltaB.restype = ctypes.c_int
            dll.DeltaFree.argtypes = [ctypes.c_void_p]
            dll.DeltaFree.restype = ctypes.c_int

            logger.debug(f"Loaded {self.library}")
            self._dll = dll
            return dll

    def apply_delta(self, basis: Optional[bytes], encoded: bytes) -> bytes:
        dll = self._load()

        basis_buf = ctypes.create_string_buffer(basis, len(basis)) if basis else None
        encoded_buf = ctypes.create_string_buffer(encoded, len(encoded))

        source = DELTA_INPUT(
            ctypes.addressof(basis_buf) if basis_buf is not None else None,
            len(basis) if basis else 0,
            0,
        )
        delta = DELTA_INPUT(ctypes.addressof(encoded_buf), len(encoded), 0)
        output = DELTA_OUTPUT()

        if not dll.ApplyDeltaB(DELTA_FLAG_NONE, source, delta, ctypes.byref(output)):
            error = ctypes.get_last_error()
            raise DeltaApplyError(f"ApplyDeltaB failed (error {error})")

        if not output.lpStart:
            return b""
        try:
            return ctypes.string_at(output.lpStart, output.uSize)
        finally:
            dll.DeltaFree(output.lpStart)


__all__ = ["DeltaDecoder", "MsDeltaDecoder", "DELTA_INPUT", "DELTA_OUTPUT"]
