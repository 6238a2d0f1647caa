"""Exception hierarchy for chainoffset."""


class ChainOffsetError(Exception):
    """Base exception for all chainoffset errors."""

    pass


class ChainFileError(ChainOffsetError):
    """Errors related to reading or writing chain files."""

    pass


class ChainLoadError(ChainFileError):
    """Error loading a chain file."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load chains from '{path}': {reason}")


class ResultSaveError(ChainFileError):
    """Error saving offset results."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to save results to '{path}': {reason}")


class GeometryError(ChainOffsetError):
    """Errors in geometric calculations."""

    pass


class ValidationError(GeometryError):
    """Malformed or degenerate input (bad shape, invalid keep side)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class GeometricMismatchError(GeometryError):
    """A point is not within tolerance of the shape it should lie on."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class LimitExceededError(GeometryError):
    """A required extension exceeds the configured maximum."""

    def __init__(self, required: float, limit: float, unit: str = "") -> None:
        self.required = required
        self.limit = limit
        suffix = f" {unit}" if unit else ""
        super().__init__(
            f"Extension distance {required:.6g}{suffix} exceeds maximum {limit:.6g}"
        )


class UnsupportedOperationError(GeometryError):
    """The shape type or shape pair is not handled by an operation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ProcessingCancelledError(ChainOffsetError):
    """Processing was cancelled by user."""

    def __init__(self, processed_count: int, pending_count: int) -> None:
        self.processed_count = processed_count
        self.pending_count = pending_count
        super().__init__(
            f"Processing cancelled: {processed_count} completed, {pending_count} pending"
        )
