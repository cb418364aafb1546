"""
psfx Manifest Inspector
Peek at an update package's express manifest without expanding anything.
"""
from pathlib import Path

from ..config import config
from ..container.cabinet import CabinetContainer
from ..container.locator import resolve_inner_container
from ..errors import EntryNotFoundError
from ..manifest.model import Manifest, SourceType
from ..manifest.parser import ManifestParser, find_manifest
from ..utils.filetime import filetime_to_datetime


class Inspector:

    def __init__(self):
        self.parser = ManifestParser()

    def inspect(self, path: str) -> dict:
        """
        Summarize a manifest. path may be the manifest itself, a directory
        holding it, or an update package.
        """
        source = Path(path)
        if not source.exists():
            raise EntryNotFoundError(f"Not found: {path}")

        manifest = self.parser.parse(self._manifest_bytes(source))
        counts = manifest.source_type_counts()
        newest = max((f.mtime for f in manifest.files), default=None)

        info = {
            'source': str(source),
            'container_name': manifest.container_name,
            'container_type': manifest.container_type,
            'version': manifest.schema_version,
            'namespace': manifest.namespace,
            'declared_length': manifest.declared_length,
            'file_count': len(manifest.files),
            'total_declared_length': manifest.total_declared_length,
            'source_types': {t.value: counts.get(t, 0) for t in SourceType},
            'basis_locations': [
                {'id': loc.id, 'path': loc.path, 'flags': loc.flags}
                for loc in manifest.basis_search_locations
            ],
            'newest_file_time': filetime_to_datetime(newest).isoformat() if newest else None,
        }

        self._print(info)
        return info

    def _manifest_bytes(self, source: Path) -> bytes:
        if source.is_dir():
            found = find_manifest(source, config.manifest_name, config.manifest_suffix)
            if found is None:
                raise EntryNotFoundError(f"No manifest found in {source}")
            return found.read_bytes()

        if source.name.lower().endswith('.xml'):
            return source.read_bytes()

        inner = resolve_inner_container(
            CabinetContainer.open(source), config.package_pattern, config.max_nesting_depth
        )
        if inner.has_entry(config.manifest_name):
            return inner.read_entry(config.manifest_name)
        for name in inner.list_entries():
            if name.lower().endswith(config.manifest_suffix):
                return inner.read_entry(name)
        raise EntryNotFoundError(f"No manifest in {inner.name}")

    def _print(self, info: dict):
        def fmt_size(b):
            if not b:
                return 'unknown'
            if b >= 1024 * 1024:
                return f"{b/1024/1024:.2f} MB"
            return f"{b/1024:.1f} KB"

        print(f"\n{'='*50}")
        print(f"  PSF Manifest Inspection")
        print(f"{'='*50}")
        print(f"  Source:      {info['source']}")
        print(f"  Container:   {info['container_name']} ({info['container_type'] or 'unknown'})")
        print(f"  Version:     {info['version']}")
        print(f"  Blob size:   {fmt_size(info['declared_length'])}")
        print()
        print(f"  Files:       {info['file_count']}")
        print(f"  Restored:    {fmt_size(info['total_declared_length'])}")
        for wire, count in info['source_types'].items():
            print(f"    {wire:<6}     {count}")
        print(f"  Newest file: {info['newest_file_time'] or 'unknown'}")
        print()
        print(f"  Basis search locations: {len(info['basis_locations'])}")
        for loc in info['basis_locations']:
            print(f"    [{loc['id']}] {loc['path']} (flags {loc['flags']:#x})")
        print(f"{'='*50}\n")


__all__ = ["Inspector"]
