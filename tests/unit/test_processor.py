"""Tests for batch processing orchestration."""

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from chainoffset.config import ChainOffsetSettings, OffsetConfig, ProcessingConfig
from chainoffset.core.processor import OffsetProcessor, process_chain
from chainoffset.domain import Chain, ChainOffsetResult, Circle, Line, Point, Shape


@pytest.fixture
def rectangle() -> Chain:
    """Counter-clockwise 100x50 rectangle."""
    corners = [Point(0, 0), Point(100, 0), Point(100, 50), Point(0, 50)]
    return Chain(
        shapes=tuple(Shape(Line(corners[i], corners[(i + 1) % 4])) for i in range(4)),
        closed=True,
        id="rect",
    )


@pytest.fixture
def hole() -> Chain:
    """Single circle of radius 5."""
    return Chain(shapes=(Shape(Circle(Point(200, 200), 5.0)),), closed=True, id="hole")


@pytest.fixture
def chain_file(tmp_path: Path, rectangle: Chain, hole: Chain) -> Path:
    """Chain file with the rectangle, the hole and an empty chain."""
    empty = Chain(shapes=(), id="empty")
    path = tmp_path / "part.json"
    path.write_text(json.dumps({"chains": [rectangle.to_dict(), hole.to_dict(), empty.to_dict()]}))
    return path


@pytest.fixture
def settings() -> ChainOffsetSettings:
    """Settings running chains inline."""
    return ChainOffsetSettings(processing=ProcessingConfig(max_workers=1))


class TestProcessChain:
    """Tests for the picklable worker function."""

    def test_success(self, rectangle: Chain) -> None:
        """Test a valid chain returns a serialized result."""
        outcome = process_chain(rectangle.to_dict(), 5.0, OffsetConfig().to_dict())
        assert "error" not in outcome
        assert outcome["chain_id"] == "rect"
        assert outcome["duration_ms"] >= 0
        result = ChainOffsetResult.from_dict(outcome["result"])
        assert result.success
        assert result.inner_chain is not None
        assert result.outer_chain is not None

    def test_offset_failure(self) -> None:
        """Test a chain that cannot be offset returns its errors."""
        empty = Chain(shapes=(), id="empty")
        outcome = process_chain(empty.to_dict(), 5.0, OffsetConfig().to_dict())
        assert outcome["error"] == "Chain has no shapes"
        assert outcome["chain_id"] == "empty"
        assert outcome["traceback"] is None

    def test_malformed_chain(self) -> None:
        """Test a malformed chain dictionary is reported, not raised."""
        outcome = process_chain({"id": "bad", "shapes": [{"type": "blob"}]}, 5.0, OffsetConfig().to_dict())
        assert outcome["chain_id"] == "bad"
        assert outcome["error"]
        assert outcome["traceback"]


class TestOffsetProcessor:
    """Tests for OffsetProcessor."""

    def test_process_inline(self, chain_file: Path, settings: ChainOffsetSettings, tmp_path: Path) -> None:
        """Test every non-empty chain is offset and saved in file order."""
        output = tmp_path / "result.json"
        processor = OffsetProcessor(settings)
        stats = processor.process(chain_file, 2.0, output_path=output)

        assert stats.processed_count == 2
        assert stats.skipped_count == 1
        assert stats.error_count == 0
        assert stats.gaps_filled >= 4
        assert len(stats.chain_timings_ms) == 2
        assert [chain_id for chain_id, _ in processor.results] == ["rect", "hole"]

        document = json.loads(output.read_text())
        assert [r["chain_id"] for r in document["results"]] == ["rect", "hole"]
        assert document["distance"] == 2.0

    def test_default_output_path(self, chain_file: Path, settings: ChainOffsetSettings) -> None:
        """Test results go next to the input by default."""
        OffsetProcessor(settings).process(chain_file, 2.0)
        assert (chain_file.parent / "part-offset.json").exists()

    def test_progress_callback(self, chain_file: Path, settings: ChainOffsetSettings, tmp_path: Path) -> None:
        """Test the progress callback fires once per processed chain."""
        callback = Mock()
        OffsetProcessor(settings).process(
            chain_file, 2.0, output_path=tmp_path / "out.json", progress_callback=callback
        )
        assert callback.call_count == 2
        callback.assert_called_with(2, 2, "hole", True)

    def test_failed_chains_skipped_by_default(self, tmp_path: Path, settings: ChainOffsetSettings) -> None:
        """Test failed chains are counted as errors and left out of the output."""
        # A zero-length line fails validation
        bad = {"id": "bad", "closed": False, "shapes": [
            {"id": "z", "type": "line", "geometry": {"start": {"x": 0, "y": 0}, "end": {"x": 0, "y": 0}}}
        ]}
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"chains": [bad]}))
        output = tmp_path / "bad-out.json"

        stats = OffsetProcessor(settings).process(path, 2.0, output_path=output)
        assert stats.error_count == 1
        assert stats.errors[0][0] == "bad"
        assert json.loads(output.read_text())["results"] == []

    def test_failed_chains_kept(self, tmp_path: Path) -> None:
        """Test failure entries are written when failed chains are kept."""
        settings = ChainOffsetSettings(processing=ProcessingConfig(max_workers=1, skip_failed_chains=False))
        bad = {"id": "bad", "shapes": [
            {"id": "z", "type": "line", "geometry": {"start": {"x": 0, "y": 0}, "end": {"x": 0, "y": 0}}}
        ]}
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([bad]))
        output = tmp_path / "bad-out.json"

        OffsetProcessor(settings).process(path, 2.0, output_path=output)
        results = json.loads(output.read_text())["results"]
        assert len(results) == 1
        assert results[0]["chain_id"] == "bad"
        assert results[0]["success"] is False
        assert "zero length" in results[0]["errors"][0]

    def test_parallel_processing(self, chain_file: Path, tmp_path: Path) -> None:
        """Test worker processes give the same results as inline processing."""
        settings = ChainOffsetSettings(processing=ProcessingConfig(max_workers=2))
        processor = OffsetProcessor(settings)
        stats = processor.process(chain_file, 2.0, output_path=tmp_path / "parallel.json")
        assert stats.processed_count == 2
        assert not stats.was_cancelled
        assert [chain_id for chain_id, _ in processor.results] == ["rect", "hole"]

    def test_missing_file(self, tmp_path: Path, settings: ChainOffsetSettings) -> None:
        """Test a missing chain file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            OffsetProcessor(settings).process(tmp_path / "missing.json", 2.0)
