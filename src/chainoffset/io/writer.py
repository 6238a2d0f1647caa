"""Result writer for saving offset chains.

This module provides the ResultWriter class for writing chain offset results
to a JSON file next to the input, using the ``{name}-offset.json`` naming
convention.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from chainoffset.domain import ChainOffsetResult
from chainoffset.exceptions import ResultSaveError


class ResultWriter:
    """Collects chain offset results and saves them as JSON.

    Example:
        writer = ResultWriter(Path("part-offset.json"), distance=2.5)
        writer.add_result("chain-1", result)
        writer.save()
    """

    def __init__(self, output_path: Path, distance: float) -> None:
        """Initialize the writer.

        Args:
            output_path: Path of the JSON file to write
            distance: Offset distance the results were computed for
        """
        self._output_path = output_path
        self._distance = distance
        self._results: list[dict[str, Any]] = []

    @property
    def result_count(self) -> int:
        return len(self._results)

    def add_result(self, chain_id: str, result: ChainOffsetResult) -> None:
        """Queue the result of one chain for saving.

        Args:
            chain_id: Id of the chain that was offset
            result: Offset result for that chain
        """
        self._results.append({"chain_id": chain_id, **result.to_dict()})

    def save(self) -> None:
        """Write all queued results.

        Raises:
            ResultSaveError: If the file cannot be written
        """
        document = {
            "distance": self._distance,
            "created": datetime.now().isoformat(timespec="seconds"),
            "results": self._results,
        }
        try:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            with self._output_path.open("w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            raise ResultSaveError(str(self._output_path), str(e)) from e

    @staticmethod
    def get_output_path(input_path: Path) -> Path:
        """Generate output path using the offset naming convention.

        Args:
            input_path: Path to the input chain file

        Returns:
            Path with "-offset" suffix and a ``.json`` extension

        Example:
            >>> ResultWriter.get_output_path(Path("part.json"))
            Path('part-offset.json')
        """
        return input_path.parent / f"{input_path.stem}-offset.json"
