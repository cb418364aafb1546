"""
psfx File Metadata
Manifest timestamps are Windows FILETIME values: 100ns ticks since 1601-01-01.
"""
import ctypes
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Ticks between 1601-01-01 and 1970-01-01
EPOCH_DIFFERENCE_TICKS = 116444736000000000
NS_PER_TICK = 100


def filetime_to_unix_ns(ticks: int) -> int:
    return (ticks - EPOCH_DIFFERENCE_TICKS) * NS_PER_TICK


def unix_ns_to_filetime(ns: int) -> int:
    return ns // NS_PER_TICK + EPOCH_DIFFERENCE_TICKS


def filetime_to_datetime(ticks: int) -> datetime:
    seconds, remainder = divmod(filetime_to_unix_ns(ticks), 1_000_000_000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=remainder // 1000)


def set_mtime(path: Path, ticks: int):
    """Set modification time, leaving access time untouched"""
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, filetime_to_unix_ns(ticks)))


def set_attributes(path: Path, attributes: int) -> bool:
    """
    Apply the opaque attribute bitmask verbatim.
    Only meaningful on Windows; returns False elsewhere.
    """
    if sys.platform != 'win32' or not attributes:
        return False
    set_attrs = ctypes.windll.kernel32.SetFileAttributesW
    if not set_attrs(str(path), attributes):
        raise ctypes.WinError()
    return True


__all__ = [
    "EPOCH_DIFFERENCE_TICKS",
    "filetime_to_unix_ns",
    "unix_ns_to_filetime",
    "filetime_to_datetime",
    "set_mtime",
    "set_attributes",
]
