"""
psfx CLI Commands
Executable modules for extraction, delta expansion and inspection.
"""

from . import extract
from . import expand
from . import inspect

__all__ = ["extract", "expand", "inspect"]
