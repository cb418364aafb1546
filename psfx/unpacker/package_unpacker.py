"""
psfx Package Unpacker
Top-level workflows: plain extraction of the inner update cabinet, and
extraction followed by delta expansion of the express manifest.
"""
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from ..config import config
from ..container.cabinet import CabinetContainer
from ..container.locator import patch_blob_name, resolve_inner_container
from ..errors import EntryNotFoundError, PsfxError
from ..expander.batch_expander import BatchExpander
from ..expander.blob import PatchBlob
from ..manifest.model import Manifest
from ..manifest.parser import ManifestParser, find_manifest
from ..utils.logger import logger


class PackageUnpacker:

    def __init__(self, batch: BatchExpander = None, package_pattern: str = None, max_nesting_depth: int = None):
        self.batch = batch or BatchExpander()
        self.parser = ManifestParser()
        self.package_pattern = package_pattern or config.package_pattern
        self.max_nesting_depth = max_nesting_depth or config.max_nesting_depth

    def extract(self, container_path: str, output_dir: str) -> Dict:
        """Extract the inner cabinet of an update package into output_dir"""
        start_time = time.time()
        logger.info(f"🔓 Extracting: {container_path}")

        inner = self._open_inner(container_path)
        written = inner.extract_all(output_dir)

        return {
            'success': True,
            'inner_container': inner.name,
            'output_dir': str(output_dir),
            'extracted': [str(p) for p in written],
            'time': time.time() - start_time
        }

    def extract_with_delta(
        self,
        container_path: str,
        output_dir: str,
        patch_blob_path: str = None,
        on_progress: Optional[Callable] = None
    ) -> Dict:
        """
        Extract the package, then rebuild every file of its express manifest.

        The patch blob comes from patch_blob_path when given, else from the
        extracted tree, else straight from the inner cabinet.
        """
        start_time = time.time()
        logger.info(f"🔓 Extracting with delta expansion: {container_path}")

        inner = self._open_inner(container_path)
        inner.extract_all(output_dir)

        manifest = self._load_manifest(output_dir)
        blob_name = patch_blob_name(inner.name, config.patch_blob_suffix)

        if patch_blob_path:
            blob = PatchBlob.open(patch_blob_path)
        elif (Path(output_dir) / blob_name).is_file():
            blob = PatchBlob.open(Path(output_dir) / blob_name)
        else:
            logger.info(f"   reading {blob_name} from {inner.name}")
            blob = PatchBlob.from_bytes(inner.read_entry(blob_name))

        with blob:
            summary = self.batch.expand(manifest, blob, output_dir, on_progress=on_progress)

        summary['inner_container'] = inner.name
        summary['time'] = time.time() - start_time
        return summary

    def expand_directory(
        self,
        source_dir: str,
        output_dir: str,
        patch_blob_path: str = None,
        on_progress: Optional[Callable] = None
    ) -> Dict:
        """
        Delta-expand an already extracted tree.
        Without patch_blob_path, the blob is the manifest's name minus .cix.xml
        (express.psf.cix.xml -> express.psf) next to the manifest.
        """
        manifest_path = self._find_manifest(source_dir)
        manifest = self._parse(manifest_path)

        if patch_blob_path is None:
            name = manifest_path.name
            stem = name[:-len('.cix.xml')] if name.lower().endswith('.cix.xml') else manifest_path.stem
            blob_path = manifest_path.with_name(stem)
            if not blob_path.is_file():
                raise EntryNotFoundError(f"Patch blob not found: {blob_path}")
            patch_blob_path = str(blob_path)

        with PatchBlob.open(patch_blob_path) as blob:
            return self.batch.expand(manifest, blob, output_dir, on_progress=on_progress)

    # ── Internals ─────────────────────────────────────────────────────────

    def _open_inner(self, container_path: str) -> CabinetContainer:
        outer = CabinetContainer.open(container_path)
        return resolve_inner_container(outer, self.package_pattern, self.max_nesting_depth)

    def _find_manifest(self, directory) -> Path:
        manifest_path = find_manifest(directory, config.manifest_name, config.manifest_suffix)
        if manifest_path is None:
            raise EntryNotFoundError(
                f"No manifest (*{config.manifest_suffix}) found in {directory}"
            )
        return manifest_path

    def _load_manifest(self, directory) -> Manifest:
        return self._parse(self._find_manifest(directory))

    def _parse(self, manifest_path: Path) -> Manifest:
        try:
            manifest = self.parser.parse(str(manifest_path))
        except PsfxError as e:
            logger.error(f"Manifest rejected: {manifest_path}: {e}")
            raise
        logger.info(f"   manifest: {manifest_path.name} ({len(manifest.files)} files)")
        return manifest


__all__ = ["PackageUnpacker"]
