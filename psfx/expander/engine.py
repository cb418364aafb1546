"""
psfx Delta Expander
Rebuilds one output file from its slice of the patch blob:
slice -> verify payload -> decode -> verify output -> write -> restore metadata.
"""
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import config
from ..errors import (
    DeltaApplyError,
    FileExpansionError,
    MetadataApplyWarning,
    OutputHashMismatchError,
    PayloadHashMismatchError,
    UnsupportedSourceTypeError,
    WriteFailedError,
)
from ..manifest.model import FileDescriptor, FileHash, SourceType
from ..utils.checksum import checksum_matches
from ..utils.filetime import set_attributes, set_mtime
from ..utils.logger import logger
from ..utils.paths import safe_join, write_atomic, write_direct
from .blob import PatchBlob
from .decoder import DeltaDecoder, MsDeltaDecoder


class FileState(enum.Enum):
    PENDING = "pending"
    PAYLOAD_SLICED = "payload_sliced"
    DECODED = "decoded"
    VERIFIED = "verified"
    WRITTEN = "written"
    METADATA_APPLIED = "metadata_applied"
    FAILED = "failed"


@dataclass
class FileOutcome:
    file_id: int
    relative_path: str
    state: FileState = FileState.PENDING
    output_path: Optional[Path] = None
    size: int = 0
    error_kind: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        # Content on disk is what counts; metadata problems are warnings
        return self.state in (FileState.WRITTEN, FileState.METADATA_APPLIED)

    def fail(self, kind: str, message: str):
        self.state = FileState.FAILED
        self.error_kind = kind
        self.error = message


class DeltaExpander:

    def __init__(
        self,
        decoder: DeltaDecoder = None,
        verify_source_hash: bool = None,
        verify_output_hash: bool = None,
        atomic_writes: bool = None
    ):
        self.decoder = decoder or MsDeltaDecoder()
        self.verify_source_hash = config.verify_source_hash if verify_source_hash is None else verify_source_hash
        self.verify_output_hash = config.verify_output_hash if verify_output_hash is None else verify_output_hash
        self.atomic_writes = config.atomic_writes if atomic_writes is None else atomic_writes

    def resolve_target(self, descriptor: FileDescriptor, output_root) -> Path:
        """Raises PathEscapeError if the file would land outside output_root"""
        return safe_join(output_root, descriptor.relative_path)

    def expand_file(
        self,
        descriptor: FileDescriptor,
        blob: PatchBlob,
        output_root,
        target: Path = None
    ) -> FileOutcome:
        """
        Reconstruct a single file.

        PathEscapeError propagates; every per-file failure is recorded on
        the returned outcome instead of being raised.
        """
        target = target or self.resolve_target(descriptor, output_root)
        outcome = FileOutcome(descriptor.id, descriptor.relative_path, output_path=target)

        try:
            data = self.reconstruct(descriptor, blob, outcome)
            self._write(target, data)
            outcome.state = FileState.WRITTEN
            outcome.size = len(data)
        except FileExpansionError as e:
            outcome.fail(e.kind, str(e))
            logger.error(f"   ❌ {descriptor.relative_path} — {e.kind}: {e}")
            return outcome
        except OSError as e:
            outcome.fail(WriteFailedError.kind, str(e))
            logger.error(f"   ❌ {descriptor.relative_path} — {WriteFailedError.kind}: {e}")
            return outcome

        self._apply_metadata(descriptor, target, outcome)
        logger.debug(f"   {descriptor.relative_path} ({outcome.size} bytes)")
        return outcome

    def reconstruct(self, descriptor: FileDescriptor, blob: PatchBlob,
                    outcome: FileOutcome = None) -> bytes:
        """Slice, verify and decode a file's payload; raises FileExpansionError"""
        outcome = outcome or FileOutcome(descriptor.id, descriptor.relative_path)
        source = descriptor.delta

        payload = blob.read_range(source.offset, source.length)
        outcome.state = FileState.PAYLOAD_SLICED

        if self.verify_source_hash:
            self._verify(payload, source.source_hash, PayloadHashMismatchError, "payload")

        data = self.decode(source.source_type, payload)
        outcome.state = FileState.DECODED

        if len(data) != descriptor.declared_length:
            warning = (
                f"LengthMismatch: declared {descriptor.declared_length} bytes, "
                f"decoded {len(data)}"
            )
            outcome.warnings.append(warning)
            logger.warning(f"   ⚠️  {descriptor.relative_path} — {warning}")

        if self.verify_output_hash:
            self._verify(data, descriptor.content_hash, OutputHashMismatchError, "output")
        outcome.state = FileState.VERIFIED
        return data

    def decode(self, source_type: SourceType, payload: bytes) -> bytes:
        if source_type is SourceType.RAW:
            return payload

        if source_type is SourceType.FULL_DELTA:
            try:
                return self.decoder.apply_delta(None, payload)
            except DeltaApplyError:
                raise
            except Exception as e:
                raise DeltaApplyError(f"Delta decoder failed: {e}") from e

        if source_type is SourceType.REVERSIBLE_DELTA:
            raise UnsupportedSourceTypeError(
                f"{source_type.value} payloads need basis files and are not supported"
            )

        raise UnsupportedSourceTypeError(f"Unknown source type: {source_type!r}")

    @staticmethod
    def _verify(data: bytes, expected: FileHash, error_cls, label: str):
        if not checksum_matches(data, expected.algorithm, expected.value):
            raise error_cls(f"{label} {expected.algorithm} mismatch, expected {expected.normalized}")

    def _write(self, target: Path, data: bytes):
        target.parent.mkdir(parents=True, exist_ok=True)
        if self.atomic_writes:
            write_atomic(target, data)
        else:
            write_direct(target, data)

    def _apply_metadata(self, descriptor: FileDescriptor, target: Path, outcome: FileOutcome):
        try:
            set_mtime(target, descriptor.mtime)
            set_attributes(target, descriptor.attributes)
        except (OSError, ValueError, OverflowError) as e:
            warning = f"{MetadataApplyWarning.kind}: {e}"
            outcome.warnings.append(warning)
            logger.warning(f"   ⚠️  {descriptor.relative_path} — {warning}")
            return
        outcome.state = FileState.METADATA_APPLIED


__all__ = ["DeltaExpander", "FileOutcome", "FileState"]
