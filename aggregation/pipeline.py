"""
pipeline.py - Aggregation Pipeline Entry Points

Raw voter data -> normalization -> single pass or chunked parallel
aggregation -> finalize -> optional census integration -> summary.

Small datasets are aggregated on the calling thread. Larger ones are split
into chunks that are counted on a thread pool; each partial is merged as
soon as it completes, so only the running total and in-flight partials are
held at once.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from loguru import logger

from .boundaries import BoundaryMatch, compare_precincts
from .census import integrate_census, load_census_record
from .chunking import DEFAULT_CHUNK_SIZE, partition_records, should_chunk
from .exceptions import AggregationTimeoutError, CensusDataError, ConfigurationError
from .field_normalizer import normalize_records
from .merger import config_value, finalize, merge_pair
from .models import CensusRecord, GlobalAggregate, PartialAggregate, SummaryStatistics, VoterRecord
from .precinct_aggregator import aggregate_chunk
from .summary import summarize

DEFAULT_MAX_WORKERS = 4


def aggregate_chunks(
    chunks: Sequence[Sequence[VoterRecord]],
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: Optional[float] = None,
) -> PartialAggregate:
    """
    Count chunks on a thread pool and fold partials as they complete.

    Raises:
        AggregationTimeoutError: if all chunks are not counted within
            ``timeout`` seconds; no partial result is returned
    """
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        raise ConfigurationError(
            f"max_workers must be a positive integer, got {max_workers!r}",
            config_key="processing.max_workers",
        )

    merged = PartialAggregate.empty()
    completed = 0

    executor = ThreadPoolExecutor(max_workers=max_workers)
    timed_out = False
    try:
        futures = {executor.submit(aggregate_chunk, chunk): index for index, chunk in enumerate(chunks)}
        for future in as_completed(futures, timeout=timeout):
            merged = merge_pair(merged, future.result())
            completed += 1
            logger.debug(f"  ✅ Chunk {futures[future] + 1}/{len(chunks)} merged")
    except FuturesTimeoutError:
        timed_out = True
    finally:
        # Chunks still running on timeout are abandoned, not awaited
        executor.shutdown(wait=not timed_out, cancel_futures=timed_out)

    if timed_out:
        logger.error(f"❌ Aggregation timed out after {timeout}s ({completed}/{len(chunks)} chunks)")
        raise AggregationTimeoutError(timeout, completed, len(chunks))

    return merged


def aggregate(voter_data: Any, config: Optional[Any] = None) -> GlobalAggregate:
    """
    Aggregate raw voter data into a final GlobalAggregate.

    Args:
        voter_data: List of voter objects, an object with a "voters" array,
            or a pandas DataFrame
        config: Object with ``get(key, default)``; reads
            ``processing.chunk_size``, ``processing.max_workers``,
            ``processing.timeout_seconds`` and the ``analysis.*`` settings

    Returns:
        GlobalAggregate identical to a single-pass aggregation regardless
        of chunking

    Raises:
        MalformedInputError: if voter_data is not a recognizable collection
        ConfigurationError: if a processing setting is invalid
        AggregationTimeoutError: if chunked aggregation exceeds its timeout
    """
    records = normalize_records(voter_data)
    chunk_size = config_value(config, "processing.chunk_size", DEFAULT_CHUNK_SIZE)

    logger.info(f"🗳️ Aggregating {len(records):,} voter records")

    if should_chunk(len(records), chunk_size):
        chunks = partition_records(records, chunk_size)
        max_workers = config_value(config, "processing.max_workers", DEFAULT_MAX_WORKERS)
        timeout = config_value(config, "processing.timeout_seconds", None)
        logger.info(f"  ⚙️ Processing {len(chunks)} chunks with {max_workers} workers")
        partial = aggregate_chunks(chunks, max_workers=max_workers, timeout=timeout)
    else:
        partial = aggregate_chunk(records)

    result = finalize(partial, config)
    logger.success(
        f"✅ Aggregated {result.record_count:,} records into {len(result.precincts)} precincts"
    )
    if result.unassigned_records:
        logger.warning(f"⚠️ {result.unassigned_records:,} records had no precinct id")
    return result


@dataclass(frozen=True)
class DashboardData:
    """Everything the dashboard renders: the aggregate and its summary."""

    aggregate: GlobalAggregate
    summary: SummaryStatistics
    boundary_match: Optional[BoundaryMatch] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = self.aggregate.to_dict()
        payload["summary"] = self.summary.to_dict()
        payload["summary_stats"] = self.summary.to_cards()
        if self.boundary_match is not None:
            payload["boundary_match"] = self.boundary_match.to_dict()
        return payload


def _load_precinct_census(precinct_census: Optional[Mapping[str, Any]]) -> Dict[str, CensusRecord]:
    records: Dict[str, CensusRecord] = {}
    for precinct_id, source in (precinct_census or {}).items():
        try:
            record = load_census_record(source)
        except CensusDataError as e:
            logger.warning(f"⚠️ Skipping census data for precinct {precinct_id}: {e}")
            continue
        if record is not None:
            records[str(precinct_id)] = record
    return records


def run_pipeline(
    voter_data: Any,
    census: Any = None,
    config: Optional[Any] = None,
    precinct_census: Optional[Mapping[str, Any]] = None,
    boundary_ids: Optional[Sequence[str]] = None,
) -> DashboardData:
    """
    Full pipeline: aggregate, integrate census when available, summarize.

    Census problems never fail the run: an unreadable census payload is
    logged and the voter-only aggregate is returned.

    Args:
        voter_data: Raw voter data (see ``aggregate``)
        census: CensusRecord, decoded census JSON, ACS response rows, or None
        config: Object with ``get(key, default)``
        precinct_census: Optional precinct id -> census payload
        boundary_ids: Optional precinct ids from a boundary file

    Returns:
        DashboardData with the final aggregate and summary statistics
    """
    result = aggregate(voter_data, config)

    try:
        census_record = load_census_record(census)
    except CensusDataError as e:
        logger.warning(f"⚠️ Census data unavailable: {e} - continuing without census")
        census_record = None

    result = integrate_census(result, census_record, _load_precinct_census(precinct_census))
    summary = summarize(result)

    boundary_match = None
    if boundary_ids is not None:
        boundary_match = compare_precincts(result, boundary_ids)

    logger.info(
        f"📊 Summary: {summary.total_registered:,} registered, "
        f"{summary.turnout_percentage:.1f}% turnout, {summary.precinct_count} precincts"
    )
    return DashboardData(aggregate=result, summary=summary, boundary_match=boundary_match)
