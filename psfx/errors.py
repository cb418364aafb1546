"""
psfx Errors
Fatal errors abort the whole run; FileExpansionError subclasses only fail
the file they were raised for and are collected into the run summary.
"""


class PsfxError(Exception):
    """Base class for every error raised by psfx"""


class ManifestParseError(PsfxError, ValueError):
    """The manifest document is malformed or misses a required field"""


class ContainerError(PsfxError):
    """A container could not be read"""


class EntryNotFoundError(ContainerError, LookupError):
    """A named entry does not exist in the container"""


class MalformedContainerError(ContainerError):
    """The container is unreadable, corrupt or uses an unsupported feature"""


class PathEscapeError(PsfxError, ValueError):
    """A relative path resolves outside the output root"""


class FileExpansionError(PsfxError):
    """Per-file failure; the run records it and continues"""
    kind = "ExpansionFailed"


class TruncatedPayloadError(FileExpansionError):
    kind = "TruncatedPayload"


class PayloadHashMismatchError(FileExpansionError):
    kind = "PayloadHashMismatch"


class DeltaApplyError(FileExpansionError):
    kind = "DeltaApplyFailed"


class UnsupportedSourceTypeError(FileExpansionError):
    kind = "UnsupportedSourceType"


class OutputHashMismatchError(FileExpansionError):
    kind = "OutputHashMismatch"


class UnsupportedHashAlgorithmError(FileExpansionError):
    kind = "UnsupportedHashAlgorithm"


class WriteFailedError(FileExpansionError):
    kind = "WriteFailed"


class MetadataApplyWarning(UserWarning):
    """Timestamp or attributes could not be restored on a written file"""
    kind = "MetadataApplyWarning"


__all__ = [
    "PsfxError",
    "ManifestParseError",
    "ContainerError",
    "EntryNotFoundError",
    "MalformedContainerError",
    "PathEscapeError",
    "FileExpansionError",
    "TruncatedPayloadError",
    "PayloadHashMismatchError",
    "DeltaApplyError",
    "UnsupportedSourceTypeError",
    "OutputHashMismatchError",
    "UnsupportedHashAlgorithmError",
    "WriteFailedError",
    "MetadataApplyWarning",
]
