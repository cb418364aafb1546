"""
psfx Path Utilities
Sandboxed joins under an output root and atomic file writes.
"""
import os
import stat
import tempfile
from pathlib import Path

from ..errors import PathEscapeError


def normalize_relative(name: str) -> str:
    """Manifest and cabinet names use backslashes; convert to forward slashes"""
    return name.replace('\\', '/')


def safe_join(root, relative_path: str) -> Path:
    """
    Resolve relative_path under root.

    Raises PathEscapeError when the result would land outside root
    (``..`` segments, absolute paths, symlinked parents). Never clamps.
    """
    if not relative_path or not relative_path.strip():
        raise PathEscapeError("Empty relative path")

    root_path = Path(root).resolve()
    target = (root_path / normalize_relative(relative_path)).resolve()

    if target == root_path or not target.is_relative_to(root_path):
        raise PathEscapeError(f"Path escapes output root: {relative_path!r}")
    return target


def _process_umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return mask


_UMASK = _process_umask()


def write_atomic(path: Path, data: bytes):
    """Write to a temp file in the same directory, then replace the target"""
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix='.tmp')
    try:
        with os.fdopen(tmp_fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600; give the result the mode a plain open() would
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = 0o666 & ~_UMASK
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)


def write_direct(path: Path, data: bytes):
    with open(path, 'wb') as f:
        f.write(data)


__all__ = ["normalize_relative", "safe_join", "write_atomic", "write_direct"]
