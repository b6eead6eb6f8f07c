"""
Chunk partitioning for large voter files.

Datasets up to ``chunk_size`` records are aggregated in a single pass;
larger ones are split into contiguous chunks of at most ``chunk_size``
records that together cover every record exactly once, in order.
"""

from typing import List, Sequence, TypeVar

from loguru import logger

from .exceptions import ConfigurationError

DEFAULT_CHUNK_SIZE = 5000

T = TypeVar("T")


def _check_chunk_size(chunk_size: int) -> None:
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ConfigurationError(
            f"Chunk size must be a positive integer, got {chunk_size!r}",
            config_key="processing.chunk_size",
        )


def should_chunk(record_count: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """True when ``record_count`` is too large for a single pass."""
    _check_chunk_size(chunk_size)
    return record_count > chunk_size


def partition_records(records: Sequence[T], chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[List[T]]:
    """
    Split records into ceil(N / chunk_size) contiguous chunks.

    An input of ``chunk_size`` records or fewer (including an empty one)
    comes back as a single chunk.

    Raises:
        ConfigurationError: if chunk_size is not a positive integer
    """
    _check_chunk_size(chunk_size)

    if len(records) <= chunk_size:
        return [list(records)]

    chunks = [
        list(records[start : start + chunk_size]) for start in range(0, len(records), chunk_size)
    ]
    logger.debug(f"  ✂️ Split {len(records):,} records into {len(chunks)} chunks of {chunk_size:,}")
    return chunks
