"""
psfx Manifest Model
Typed, immutable view of a PSF express manifest (*.psf.cix.xml).
"""
import enum
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Tuple


class SourceType(enum.Enum):
    """Decode strategy for a file's payload, keyed by its wire name"""
    FULL_DELTA = "PA30"
    REVERSIBLE_DELTA = "PA19"
    RAW = "RAW"

    @classmethod
    def from_wire(cls, value: str) -> "SourceType":
        return cls(value.strip().upper())


@dataclass(frozen=True)
class FileHash:
    algorithm: str
    value: str

    @property
    def normalized(self) -> str:
        return self.value.strip().lower()


@dataclass(frozen=True)
class BasisLocation:
    id: int
    path: str
    flags: int


@dataclass(frozen=True)
class DeltaSource:
    source_type: SourceType
    offset: int
    length: int
    source_hash: FileHash

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class FileDescriptor:
    id: int
    relative_path: str
    declared_length: int
    mtime: int          # FILETIME ticks
    attributes: int     # passed through verbatim
    content_hash: FileHash
    delta: DeltaSource


@dataclass(frozen=True)
class Manifest:
    container_name: str
    declared_length: int
    schema_version: str
    container_type: str = ""
    namespace: str = ""
    description: str = ""
    basis_search_locations: Tuple[BasisLocation, ...] = field(default_factory=tuple)
    files: Tuple[FileDescriptor, ...] = field(default_factory=tuple)

    @property
    def total_declared_length(self) -> int:
        return sum(f.declared_length for f in self.files)

    def source_type_counts(self) -> Dict[SourceType, int]:
        return dict(Counter(f.delta.source_type for f in self.files))


__all__ = [
    "SourceType",
    "FileHash",
    "BasisLocation",
    "DeltaSource",
    "FileDescriptor",
    "Manifest",
]
