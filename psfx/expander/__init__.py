from .blob import PatchBlob
from .engine import DeltaExpander, FileOutcome, FileState
from .batch_expander import BatchExpander

__all__ = [
    "PatchBlob",
    "DeltaExpander",
    "FileOutcome",
    "FileState",
    "BatchExpander"
]
