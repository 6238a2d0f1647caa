"""Chain file reader.

This module provides the ChainReader class for loading chain files and
converting their JSON content into domain models.

A chain file is a JSON object with a ``chains`` list; each entry is a
serialized Chain (``Chain.to_dict()``). A bare list of chains is accepted
as well.
"""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from chainoffset.domain import Chain
from chainoffset.exceptions import ChainLoadError


class ChainReader:
    """Loads chain files and yields Chain domain models.

    Example:
        reader = ChainReader(Path("part.json"))
        reader.load()
        for chain in reader.iter_chains():
            print(chain.id, len(chain))
    """

    def __init__(self, path: Path) -> None:
        """Initialize the chain reader.

        Args:
            path: Path to the JSON chain file
        """
        self._path = path
        self._data: list[dict[str, Any]] | None = None

    def load(self) -> None:
        """Load and parse the chain file.

        Raises:
            FileNotFoundError: If the file does not exist
            ChainLoadError: If the file is not valid JSON or has no chain list
        """
        if not self._path.exists():
            raise FileNotFoundError(f"Chain file not found: {self._path}")

        try:
            with self._path.open(encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ChainLoadError(str(self._path), str(e)) from e

        chains = content.get("chains") if isinstance(content, dict) else content
        if not isinstance(chains, list):
            raise ChainLoadError(str(self._path), "expected a 'chains' list")
        self._data = chains

    @property
    def chain_count(self) -> int:
        """Return the number of chains in the file.

        Raises:
            RuntimeError: If the file has not been loaded yet
        """
        if self._data is None:
            raise RuntimeError("Chain file not loaded. Call load() first.")
        return len(self._data)

    def iter_chains(self) -> Iterator[Chain]:
        """Iterate over all chains in file order.

        Yields:
            Chain domain models

        Raises:
            RuntimeError: If the file has not been loaded yet
            ChainLoadError: If an entry is not a valid serialized chain
        """
        if self._data is None:
            raise RuntimeError("Chain file not loaded. Call load() first.")

        for index, entry in enumerate(self._data):
            try:
                yield Chain.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                raise ChainLoadError(str(self._path), f"chain {index}: {e!r}") from e
