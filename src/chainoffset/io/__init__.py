"""Chain file I/O layer for chainoffset.

This module handles reading chain files and writing offset results as JSON,
keeping file formats out of the geometry core.

Key classes:
- ChainReader: Load chain files and yield chains
- ResultWriter: Save offset results
"""

from chainoffset.io.reader import ChainReader
from chainoffset.io.writer import ResultWriter

__all__ = [
    "ChainReader",
    "ResultWriter",
]
