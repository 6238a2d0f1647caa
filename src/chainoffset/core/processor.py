"""Parallel processing orchestration for batch chain offsets.

This module offsets the chains of a chain file, running each chain in a
worker process using ProcessPoolExecutor.

Key components:
- process_chain: Top-level picklable function for parallel execution
- OffsetProcessor: Main orchestrator class for chain files
"""

import time
import traceback
from collections.abc import Callable
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from chainoffset.config import ChainOffsetSettings, OffsetConfig
from chainoffset.core.chain_offset import offset_chain
from chainoffset.domain import Chain, ChainOffsetResult
from chainoffset.io import ChainReader, ResultWriter
from chainoffset.utils import ProcessingLogger, ProcessingStats, configure_logging

ProgressCallback = Callable[[int, int, str, bool], None]


def process_chain(
    chain_dict: dict[str, Any],
    distance: float,
    config_dict: dict[str, Any],
) -> dict[str, Any]:
    """Offset a single chain.

    Top-level function designed to be picklable for use with ProcessPoolExecutor.
    Deserializes the chain and configuration, offsets, and returns the result.

    Args:
        chain_dict: Serialized chain (from Chain.to_dict())
        distance: Offset distance
        config_dict: Serialized offset configuration (from OffsetConfig.to_dict())

    Returns:
        Dictionary containing either:
        - Success: {"result": result_dict, "chain_id": str, "duration_ms": float}
        - Error: {"error": str, "chain_id": str, "traceback": str, "duration_ms": float}
    """
    start_time = time.time()
    chain_id = str(chain_dict.get("id", "unknown"))

    try:
        chain = Chain.from_dict(chain_dict)
        config = OffsetConfig.from_dict(config_dict)
        result = offset_chain(chain, distance, config)

        duration_ms = (time.time() - start_time) * 1000
        if not result.success:
            return {
                "error": "; ".join(result.errors),
                "chain_id": chain.id,
                "traceback": None,
                "duration_ms": duration_ms,
            }
        return {
            "result": result.to_dict(),
            "chain_id": chain.id,
            "duration_ms": duration_ms,
        }

    except Exception as e:
        # Anything escaping here would otherwise be lost in the worker
        duration_ms = (time.time() - start_time) * 1000
        return {
            "error": str(e),
            "chain_id": chain_id,
            "traceback": traceback.format_exc(),
            "duration_ms": duration_ms,
        }


class OffsetProcessor:
    """Orchestrates batch chain offsetting.

    Manages the complete workflow:
    1. Load the chain file
    2. Skip empty chains
    3. Offset chains in parallel using worker processes (inline for one worker)
    4. Collect results and update statistics
    5. Save the results file

    Example:
        settings = ChainOffsetSettings()
        processor = OffsetProcessor(settings)
        stats = processor.process(
            chain_path=Path("part.json"),
            distance=2.5,
            output_path=Path("part-offset.json"),
            max_workers=4
        )
    """

    def __init__(self, config: ChainOffsetSettings) -> None:
        """Initialize the processor with configuration.

        Args:
            config: Settings containing offset, processing and logging config
        """
        self.config = config
        self.logger = configure_logging(
            log_file=config.logging.log_file,
            console_level=config.logging.log_level,
            file_level=config.logging.file_log_level,
            quiet=False,
        )
        self.processing_logger = ProcessingLogger(self.logger)
        # (chain id, result) pairs of the last run, in file order
        self.results: list[tuple[str, ChainOffsetResult]] = []

    def process(
        self,
        chain_path: Path,
        distance: float,
        output_path: Path | None = None,
        max_workers: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ProcessingStats:
        """Offset every chain in a chain file.

        Args:
            chain_path: Path to the input chain file
            distance: Offset distance
            output_path: Path for the results file (auto-generated if None)
            max_workers: Maximum worker processes (None = config default)
            progress_callback: Optional callback(completed, total, chain_id, success)
                for progress updates

        Returns:
            ProcessingStats with counts, timing, and error details

        Raises:
            FileNotFoundError: If the chain file does not exist
            ChainLoadError: If the chain file cannot be parsed
            ResultSaveError: If the results cannot be written
            KeyboardInterrupt: If processing is cancelled by user
        """
        self.processing_logger = ProcessingLogger(self.logger)
        stats = self.processing_logger.stats
        stats.start_time = time.time()

        if max_workers is None:
            max_workers = self.config.processing.max_workers
        if output_path is None:
            output_path = ResultWriter.get_output_path(chain_path)

        self.logger.info(
            "Starting chain processing",
            input=str(chain_path),
            output=str(output_path),
            distance=distance,
            max_workers=max_workers,
        )

        reader = ChainReader(chain_path)
        reader.load()

        chains: list[Chain] = []
        for chain in reader.iter_chains():
            if len(chain) == 0:
                self.processing_logger.log_chain_skipped(chain.id, "empty chain")
                continue
            chains.append(chain)

        self.logger.info(
            "Chains loaded",
            total=reader.chain_count,
            to_process=len(chains),
            skipped=stats.skipped_count,
        )

        results: dict[str, ChainOffsetResult] = {}
        if chains:
            results = self._process_chains(
                chains=chains,
                distance=distance,
                max_workers=max_workers,
                progress_callback=progress_callback,
            )
        else:
            self.logger.info("No chains to process")

        self.results = [(c.id, results[c.id]) for c in chains if c.id in results]
        self._save_results(chains, results, distance, output_path)

        stats.end_time = time.time()
        self.logger.info(
            "Processing complete",
            processed=stats.processed_count,
            skipped=stats.skipped_count,
            errors=stats.error_count,
            gaps_filled=stats.gaps_filled,
            duration_seconds=round(stats.duration_seconds, 2),
        )
        return stats

    def _record(
        self,
        outcome: dict[str, Any],
        chain_id: str,
        results: dict[str, ChainOffsetResult],
    ) -> bool:
        """Fold one worker outcome into results and statistics."""
        stats = self.processing_logger.stats
        if "error" in outcome:
            self.processing_logger.log_chain_error(
                chain_id=outcome.get("chain_id", chain_id),
                error=outcome["error"],
                traceback=outcome.get("traceback"),
            )
            return False

        result = ChainOffsetResult.from_dict(outcome["result"])
        results[chain_id] = result
        duration_ms = outcome.get("duration_ms", 0.0)
        sides = [c for c in (result.inner_chain, result.outer_chain) if c is not None]
        self.processing_logger.log_chain_complete(
            chain_id=chain_id,
            gaps_filled=result.metrics.gaps_filled,
            trims_applied=result.metrics.trims_applied,
            duration_ms=duration_ms,
            continuous=all(c.continuous for c in sides),
        )
        stats.chain_timings_ms.append(duration_ms)
        return True

    def _process_chains(
        self,
        chains: list[Chain],
        distance: float,
        max_workers: int | None,
        progress_callback: ProgressCallback | None = None,
    ) -> dict[str, ChainOffsetResult]:
        """Offset chains, in worker processes unless a single worker is requested.

        Args:
            chains: Chains to offset
            distance: Offset distance
            max_workers: Maximum worker processes
            progress_callback: Optional callback(completed, total, chain_id, success)

        Returns:
            Dictionary mapping chain ids to offset results
        """
        results: dict[str, ChainOffsetResult] = {}
        config_dict = self.config.offset.to_dict()
        total = len(chains)

        if max_workers == 1:
            for completed, chain in enumerate(chains, start=1):
                self.processing_logger.log_chain_start(chain.id, len(chain))
                outcome = process_chain(chain.to_dict(), distance, config_dict)
                success = self._record(outcome, chain.id, results)
                if progress_callback is not None:
                    progress_callback(completed, total, chain.id, success)
            return results

        self.logger.info(
            "Starting parallel processing",
            chain_count=total,
            max_workers=max_workers,
        )

        completed = 0
        pending_futures: dict = {}
        stats = self.processing_logger.stats

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            for chain in chains:
                future = executor.submit(process_chain, chain.to_dict(), distance, config_dict)
                pending_futures[future] = chain.id

            try:
                for future in as_completed(pending_futures):
                    chain_id = pending_futures.pop(future)
                    success = False

                    try:
                        success = self._record(future.result(), chain_id, results)
                    except Exception as e:
                        # Executor-level error (e.g. a worker died)
                        self.processing_logger.log_chain_error(
                            chain_id=chain_id,
                            error=e,
                            traceback=traceback.format_exc(),
                        )

                    completed += 1
                    if progress_callback is not None:
                        progress_callback(completed, total, chain_id, success)

            except KeyboardInterrupt:
                self.logger.info("Cancellation requested by user")
                for f in pending_futures:
                    f.cancel()

                stats.was_cancelled = True
                stats.cancelled_count = len(pending_futures)

                executor.shutdown(wait=True, cancel_futures=True)
                raise

        return results

    def _save_results(
        self,
        chains: list[Chain],
        results: dict[str, ChainOffsetResult],
        distance: float,
        output_path: Path,
    ) -> None:
        """Save results in input order.

        Failed chains are written as failure entries unless
        ``skip_failed_chains`` is set.
        """
        writer = ResultWriter(output_path, distance)
        errors = dict(self.processing_logger.stats.errors)
        for chain in chains:
            result = results.get(chain.id)
            if result is not None:
                writer.add_result(chain.id, result)
            elif not self.config.processing.skip_failed_chains:
                writer.add_result(
                    chain.id,
                    ChainOffsetResult(success=False, errors=(errors.get(chain.id, "Offset failed"),)),
                )
        writer.save()

        self.logger.info(
            "Results saved",
            output=str(output_path),
            chains=writer.result_count,
        )
