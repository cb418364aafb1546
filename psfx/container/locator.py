"""
psfx Package Locator
Finds the inner update cabinet inside an outer package and descends through
packages that wrap a cabinet of the same kind again.
"""
import re
from pathlib import PurePosixPath
from typing import Optional

from ..errors import EntryNotFoundError
from ..utils.logger import logger
from ..utils.paths import normalize_relative
from .cabinet import CabinetContainer


def find_inner_package(container: CabinetContainer, pattern: str) -> str:
    """Return the first entry name matching the package naming pattern"""
    found = _match(container, pattern)
    if found is None:
        raise EntryNotFoundError(
            f"No entry matching {pattern!r} in {container.name}"
        )
    return found


def _match(container: CabinetContainer, pattern: str) -> Optional[str]:
    regex = re.compile(pattern, re.IGNORECASE)
    for name in container.list_entries():
        if regex.search(PurePosixPath(normalize_relative(name)).name):
            return name
    return None


def resolve_inner_container(outer: CabinetContainer, pattern: str, max_depth: int = 2) -> CabinetContainer:
    """
    Open the inner package of outer.

    Some packages wrap the update cabinet in a cabinet of the same name;
    keep descending while the opened container holds another match.
    """
    name = find_inner_package(outer, pattern)
    current = outer.open_nested(name)
    logger.info(f"Inner package: {name}")

    depth = 1
    while depth < max_depth:
        nested = _match(current, pattern)
        if nested is None:
            break
        logger.info(f"   nested package: {nested}")
        current = current.open_nested(nested)
        depth += 1

    return current


def patch_blob_name(inner_name: str, suffix: str = '.psf') -> str:
    """Windows10.0-KB5022842-x64.cab -> Windows10.0-KB5022842-x64.psf"""
    return PurePosixPath(normalize_relative(inner_name)).stem + suffix


__all__ = ["find_inner_package", "resolve_inner_container", "patch_blob_name"]
