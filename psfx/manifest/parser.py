"""
psfx Manifest Parser
Deserializes the container index document into the Manifest model.
Checks shape only; offsets and paths are validated by the expander.
"""
import io
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..errors import ManifestParseError
from ..utils.logger import logger
from .model import BasisLocation, DeltaSource, FileDescriptor, FileHash, Manifest, SourceType


def _local(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _namespace(tag: str) -> str:
    if tag.startswith('{'):
        return tag[1:].split('}', 1)[0]
    return ''


class ManifestParser:

    def parse(self, source: Union[bytes, str, os.PathLike, BinaryIO]) -> Manifest:
        """
        Parse a manifest from raw bytes, a file path or a binary stream.

        Raises:
            ManifestParseError: on malformed XML or the first missing/invalid field
        """
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)

        try:
            root = ET.parse(source).getroot()
        except ET.ParseError as e:
            raise ManifestParseError(f"Malformed manifest document: {e}") from e
        except OSError as e:
            raise ManifestParseError(f"Cannot read manifest: {e}") from e

        return self._parse_root(root)

    # ── Elements ──────────────────────────────────────────────────────────

    def _parse_root(self, root: ET.Element) -> Manifest:
        where = _local(root.tag)
        container_name = self._str(root, 'name', where)
        declared_length = self._uint(root, 'length', where)
        schema_version = self._str(root, 'version', where)

        description = self._child(root, 'Description')
        basis = self._child(root, 'DeltaBasisSearch')
        files = self._child(root, 'Files')

        locations = []
        if basis is not None:
            for i, el in enumerate(self._children(basis, 'Location')):
                locations.append(self._parse_location(el, f"{where}/DeltaBasisSearch/Location[{i}]"))

        descriptors = []
        if files is not None:
            for i, el in enumerate(self._children(files, 'File')):
                descriptors.append(self._parse_file(el, f"{where}/Files/File[{i}]"))

        manifest = Manifest(
            container_name=container_name,
            declared_length=declared_length,
            schema_version=schema_version,
            container_type=root.get('type', ''),
            namespace=_namespace(root.tag),
            description=(''.join(description.itertext()).strip() if description is not None else ''),
            basis_search_locations=tuple(locations),
            files=tuple(descriptors),
        )
        logger.debug(
            f"Parsed manifest {manifest.container_name} v{manifest.schema_version}: "
            f"{len(manifest.files)} files, {len(manifest.basis_search_locations)} basis locations"
        )
        return manifest

    def _parse_location(self, el: ET.Element, where: str) -> BasisLocation:
        return BasisLocation(
            id=self._int(el, 'id', where),
            path=self._str(el, 'path', where),
            flags=self._uint(el, 'flags', where),
        )

    def _parse_file(self, el: ET.Element, where: str) -> FileDescriptor:
        file_id = self._uint(el, 'id', where)
        name = self._str(el, 'name', where)
        where = f"{where}({name})"

        return FileDescriptor(
            id=file_id,
            relative_path=name,
            declared_length=self._uint(el, 'length', where),
            mtime=self._uint(el, 'time', where),
            attributes=self._uint(el, 'attr', where),
            content_hash=self._parse_hash(self._require(el, 'Hash', where), f"{where}/Hash"),
            delta=self._parse_source(
                self._require(self._require(el, 'Delta', where), 'Source', f"{where}/Delta"),
                f"{where}/Delta/Source",
            ),
        )

    def _parse_source(self, el: ET.Element, where: str) -> DeltaSource:
        raw_type = self._str(el, 'type', where)
        try:
            source_type = SourceType.from_wire(raw_type)
        except ValueError:
            raise ManifestParseError(f"{where}: unknown source type {raw_type!r}") from None

        return DeltaSource(
            source_type=source_type,
            offset=self._uint(el, 'offset', where),
            length=self._uint(el, 'length', where),
            source_hash=self._parse_hash(self._require(el, 'Hash', where), f"{where}/Hash"),
        )

    def _parse_hash(self, el: ET.Element, where: str) -> FileHash:
        return FileHash(
            algorithm=self._str(el, 'alg', where),
            value=self._str(el, 'value', where),
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _children(el: ET.Element, name: str) -> List[ET.Element]:
        return [child for child in el if _local(child.tag) == name]

    def _child(self, el: ET.Element, name: str) -> Optional[ET.Element]:
        found = self._children(el, name)
        return found[0] if found else None

    def _require(self, el: ET.Element, name: str, where: str) -> ET.Element:
        child = self._child(el, name)
        if child is None:
            raise ManifestParseError(f"{where}: missing required element <{name}>")
        return child

    @staticmethod
    def _str(el: ET.Element, attr: str, where: str) -> str:
        value = el.get(attr)
        if value is None:
            raise ManifestParseError(f"{where}: missing required attribute '{attr}'")
        return value

    def _int(self, el: ET.Element, attr: str, where: str) -> int:
        value = self._str(el, attr, where)
        try:
            return int(value.strip(), 10)
        except ValueError:
            raise ManifestParseError(f"{where}: attribute '{attr}' is not an integer: {value!r}") from None

    def _uint(self, el: ET.Element, attr: str, where: str) -> int:
        value = self._int(el, attr, where)
        if value < 0:
            raise ManifestParseError(f"{where}: attribute '{attr}' must not be negative: {value}")
        return value


def find_manifest(directory, manifest_name: str = 'express.psf.cix.xml',
                  suffix: str = '.psf.cix.xml') -> Optional[Path]:
    """
    Locate the manifest in an extracted tree.
    Prefers the well-known name at the top level, then any *suffix match.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None

    preferred = directory / manifest_name
    if preferred.is_file():
        return preferred

    suffix = suffix.lower()
    candidates = sorted(
        p for p in directory.rglob('*')
        if p.is_file() and p.name.lower().endswith(suffix)
    )
    return candidates[0] if candidates else None


__all__ = ["ManifestParser", "find_manifest"]
