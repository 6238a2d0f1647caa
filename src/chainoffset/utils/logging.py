"""Logging utilities for chainoffset."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog


@dataclass
class ProcessingStats:
    """Statistics from a batch offset run."""

    processed_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    gaps_filled: int = 0
    trims_applied: int = 0
    discontinuous_count: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    chain_timings_ms: list[float] = field(default_factory=list)
    was_cancelled: bool = False
    cancelled_count: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate processing duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0

    @property
    def avg_chain_time_ms(self) -> float | None:
        if not self.chain_timings_ms:
            return None
        return sum(self.chain_timings_ms) / len(self.chain_timings_ms)

    @property
    def min_chain_time_ms(self) -> float | None:
        return min(self.chain_timings_ms) if self.chain_timings_ms else None

    @property
    def max_chain_time_ms(self) -> float | None:
        return max(self.chain_timings_ms) if self.chain_timings_ms else None


def configure_logging(
    log_file: Path | None = None,
    console_level: str = "WARNING",
    file_level: str = "DEBUG",
    quiet: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Configure structured logging to the console and, optionally, a file.

    Args:
        log_file: Path to log file (no file output if None)
        console_level: Logging level for console output
        file_level: Logging level for file output
        quiet: If True, suppress console output except errors

    Returns:
        Configured structlog logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Reconfiguring (e.g. one processor per CLI run) must not stack handlers
    for handler in list(root_logger.handlers):
        if getattr(handler, "_chainoffset", False):
            root_logger.removeHandler(handler)
            handler.close()

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        file_handler._chainoffset = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.ERROR if quiet else getattr(logging, console_level.upper()))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler._chainoffset = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("chainoffset")
    logger.info(
        "Logging initialized",
        log_file=str(log_file) if log_file else None,
        level=file_level,
    )

    return logger


def default_log_path() -> Path:
    """Timestamped log file name in the working directory."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(f"chainoffset_{timestamp}.log")


class ProcessingLogger:
    """Logger for tracking batch progress and statistics."""

    def __init__(self, logger: structlog.stdlib.BoundLogger) -> None:
        self._logger = logger
        self._stats = ProcessingStats()

    def log_chain_start(self, chain_id: str, shape_count: int) -> None:
        """Log start of chain processing."""
        self._logger.debug("Offsetting chain", chain=chain_id, shapes=shape_count)

    def log_chain_complete(
        self,
        chain_id: str,
        gaps_filled: int,
        trims_applied: int,
        duration_ms: float,
        continuous: bool = True,
    ) -> None:
        """Log a successfully offset chain."""
        self._logger.info(
            "Chain offset",
            chain=chain_id,
            gaps_filled=gaps_filled,
            trims=trims_applied,
            continuous=continuous,
            duration_ms=round(duration_ms, 2),
        )
        self._stats.processed_count += 1
        self._stats.gaps_filled += gaps_filled
        self._stats.trims_applied += trims_applied
        if not continuous:
            self._stats.discontinuous_count += 1

    def log_chain_skipped(self, chain_id: str, reason: str) -> None:
        """Log skipped chain."""
        self._logger.debug("Chain skipped", chain=chain_id, reason=reason)
        self._stats.skipped_count += 1

    def log_chain_error(
        self,
        chain_id: str,
        error: Exception | str,
        traceback: str | None = None,
    ) -> None:
        """Log chain processing error."""
        self._logger.error(
            "Chain offset failed",
            chain=chain_id,
            error=str(error),
            error_type=type(error).__name__ if isinstance(error, Exception) else "OffsetFailure",
            traceback=traceback,
        )
        self._stats.error_count += 1
        self._stats.errors.append((chain_id, str(error)))

    @property
    def stats(self) -> ProcessingStats:
        """Get current processing statistics."""
        return self._stats
