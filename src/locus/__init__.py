"""
Locus - cached resolution of logical module names to files.

Locus maps a dotted module name (or any separator-delimited logical name) to
the single file that defines it, searching an ordered list of directories and
remembering every answer in a tiered cache.
"""

__version__ = "1.0.0"

from locus.core.lifecycle.manager import (
    LocusHandle,
    activate,
    add_paths,
    deactivate,
    find_file,
    find_files,
)

__all__ = [
    "__version__",
    "LocusHandle",
    "activate",
    "deactivate",
    "add_paths",
    "find_file",
    "find_files",
]
