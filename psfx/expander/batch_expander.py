"""
psfx Batch Expander
Expands every file of a manifest against one patch blob, sequentially or on a
thread pool, with cooperative abort and a per-file failure summary.
"""
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import config
from ..manifest.model import FileDescriptor, Manifest
from ..utils.logger import logger
from ..utils.paths import normalize_relative
from .blob import PatchBlob
from .engine import DeltaExpander, FileOutcome

DUPLICATE_ENTRY = "DuplicateEntry"
ABORTED = "Aborted"


class BatchExpander:
    def __init__(
        self,
        expander: DeltaExpander = None,
        max_workers: int = None,
        max_failures: int = None
    ):
        self.expander = expander or DeltaExpander()

        workers = max_workers if max_workers is not None else config.max_workers
        self.max_workers = workers or min(32, (os.cpu_count() or 4) * 2)
        self.max_failures = max_failures if max_failures is not None else config.max_failures

    def expand(
        self,
        manifest: Manifest,
        blob: PatchBlob,
        output_dir,
        on_progress: Optional[Callable] = None
    ) -> Dict:
        """
        Reconstruct all files of manifest under output_dir.

        Args:
            manifest: parsed manifest
            blob: the aggregate patch blob
            output_dir: root of the reconstructed tree
            on_progress: optional callback(completed, total, outcome)

        Returns:
            summary dict with outcomes in manifest order and failures

        Raises:
            PathEscapeError: before anything is written, if any path escapes
        """
        start_time = time.time()
        output_root = Path(output_dir)
        output_root.mkdir(parents=True, exist_ok=True)

        outcomes, jobs = self._preflight(manifest.files, output_root)
        total = len(manifest.files)

        logger.info(
            f"🔓 Expanding {total} files from {manifest.container_name} "
            f"with {self.max_workers} worker(s)..."
        )

        state = _RunState(total, self.max_failures)
        for index in outcomes:
            state.record(outcomes[index])

        if self.max_workers == 1:
            for index, descriptor, target in jobs:
                outcomes[index] = self._run_one(descriptor, blob, output_root, target, state, on_progress)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_index = {
                    executor.submit(self._run_one, descriptor, blob, output_root, target, state, on_progress): index
                    for index, descriptor, target in jobs
                }
                for future in as_completed(future_to_index):
                    outcomes[future_to_index[future]] = future.result()

        ordered = [outcomes[i] for i in range(total)]
        return self._build_summary(ordered, state.abort.is_set(), time.time() - start_time)

    def _preflight(self, files, output_root: Path):
        """Resolve every target up front; flag duplicate ids and paths"""
        outcomes = {}
        jobs = []
        seen_ids = set()
        seen_paths = set()

        for index, descriptor in enumerate(files):
            target = self.expander.resolve_target(descriptor, output_root)
            path_key = normalize_relative(str(target)).lower()

            if descriptor.id in seen_ids or path_key in seen_paths:
                outcome = FileOutcome(descriptor.id, descriptor.relative_path)
                outcome.fail(DUPLICATE_ENTRY, f"Duplicate file id or path: {descriptor.id} {descriptor.relative_path}")
                logger.error(f"   ❌ {descriptor.relative_path} — {DUPLICATE_ENTRY}")
                outcomes[index] = outcome
                continue

            seen_ids.add(descriptor.id)
            seen_paths.add(path_key)
            jobs.append((index, descriptor, target))

        return outcomes, jobs

    def _run_one(
        self,
        descriptor: FileDescriptor,
        blob: PatchBlob,
        output_root: Path,
        target: Path,
        state: "_RunState",
        on_progress: Optional[Callable]
    ) -> FileOutcome:
        """Expand a single file; called inline or from the thread pool"""
        if state.abort.is_set():
            outcome = FileOutcome(descriptor.id, descriptor.relative_path)
            outcome.fail(ABORTED, "Run aborted before this file was started")
        else:
            outcome = self.expander.expand_file(descriptor, blob, output_root, target)

        completed = state.record(outcome)
        if on_progress:
            on_progress(completed, state.total, outcome)
        return outcome

    def _build_summary(self, outcomes: List[FileOutcome], aborted: bool, elapsed: float) -> Dict:
        succeeded = [o for o in outcomes if o.succeeded]
        failures = [
            {
                'id': o.file_id,
                'file': o.relative_path,
                'error_kind': o.error_kind,
                'error': o.error
            }
            for o in outcomes if not o.succeeded
        ]
        warnings = [
            {'id': o.file_id, 'file': o.relative_path, 'warning': w}
            for o in outcomes for w in o.warnings
        ]
        total_restored = sum(o.size for o in succeeded)

        logger.info(f"\n{'='*50}")
        logger.info(f"✨ Delta Expansion {'Aborted' if aborted else 'Complete'}!")
        logger.info(f"   Files:     {len(succeeded)} succeeded, {len(failures)} failed")
        if warnings:
            logger.info(f"   Warnings:  {len(warnings)}")
        logger.info(f"   Restored:  {total_restored/1024/1024:.2f} MB")
        logger.info(f"   Time:      {elapsed:.2f}s")
        logger.info(f"{'='*50}")

        return {
            'success': not aborted,
            'aborted': aborted,
            'total': len(outcomes),
            'succeeded': len(succeeded),
            'failed': len(failures),
            'failures': failures,
            'warnings': warnings,
            'results': outcomes,
            'total_restored_size': total_restored,
            'processing_time': elapsed
        }


class _RunState:
    """Counters shared by workers; sets the abort flag past max_failures"""

    def __init__(self, total: int, max_failures: Optional[int]):
        self.total = total
        self.max_failures = max_failures
        self.completed = 0
        self.failures = 0
        self.abort = threading.Event()
        self._lock = threading.Lock()

    def record(self, outcome: FileOutcome) -> int:
        with self._lock:
            self.completed += 1
            if not outcome.succeeded and outcome.error_kind != ABORTED:
                self.failures += 1
                if self.max_failures and self.failures >= self.max_failures:
                    self.abort.set()
            return self.completed


__all__ = ["BatchExpander"]
