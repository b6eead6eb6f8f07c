"""
Exceptions raised by the aggregation pipeline.

Structural problems (input that is not a recognizable voter collection,
invalid settings) stop processing. Data-quality problems inside individual
records never raise; they are absorbed by the field normalizer.
"""

from typing import Any, Dict, Optional


class AggregationError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether processing can continue without the failed step
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class MalformedInputError(AggregationError):
    """
    Voter data is not a recognizable shape.

    Examples:
        - A bare string or number instead of a collection
        - An object without any array of voter records
        - Array entries that are not objects
    """

    def __init__(self, message: str, data_type: Optional[str] = None, **details: Any):
        if data_type:
            details["data_type"] = data_type
        super().__init__(message, details=details, recoverable=False)


class ConfigurationError(AggregationError):
    """Invalid or missing configuration value."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class CensusDataError(AggregationError):
    """
    Census record could not be read.

    Recoverable: the pipeline skips census integration and returns the
    voter-only aggregate.
    """

    def __init__(self, message: str, field_name: Optional[str] = None):
        details = {"field_name": field_name} if field_name else None
        super().__init__(message, details=details, recoverable=True)


class AggregationTimeoutError(AggregationError):
    """Chunked aggregation did not finish within the configured timeout."""

    def __init__(self, timeout_seconds: float, chunks_completed: int = 0, chunks_total: int = 0):
        super().__init__(
            f"Aggregation timed out after {timeout_seconds}s",
            details={
                "chunks_completed": chunks_completed,
                "chunks_total": chunks_total,
            },
            recoverable=False,
        )
