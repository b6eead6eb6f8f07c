"""
merger.py - Partial-Result Merging and Finalization

Partial aggregates are combined by summing counts only. Rates (turnout,
average age, density) and majority labels are derived exactly once, in
``finalize``, from the fully merged counts. Because ``merge_pair`` is
associative and commutative, a left fold, a reversed fold and a pairwise
tree reduction all produce the same GlobalAggregate as a single pass.
"""

import datetime
from functools import reduce
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from loguru import logger

from .calculations import calculate_density, calculate_percentage
from .models import (
    GlobalAggregate,
    PartialAggregate,
    PrecinctAggregate,
    PrecinctMetrics,
    TurnoutTrends,
)

DEFAULT_DENSITY_SCALE = 100
# General-election turnout percentages shown before the current dataset
DEFAULT_HISTORICAL_TURNOUT: Dict[int, float] = {2008: 62, 2012: 58, 2016: 65, 2020: 67}


def config_value(config: Optional[Any], key_path: str, default: Any) -> Any:
    """Read ``key_path`` from any object with ``get(key, default)``; None means defaults."""
    if config is None:
        return default
    value = config.get(key_path, default)
    return default if value is None else value


def merge_pair(left: PartialAggregate, right: PartialAggregate) -> PartialAggregate:
    """Combine two partial aggregates by summing every count."""
    return left.merge(right)


def reduce_partials(partials: Iterable[PartialAggregate]) -> PartialAggregate:
    """Left fold of ``merge_pair`` starting from the empty aggregate."""
    return reduce(merge_pair, partials, PartialAggregate.empty())


def tree_reduce(partials: Sequence[PartialAggregate]) -> PartialAggregate:
    """Pairwise reduction; same result as ``reduce_partials``."""
    level = list(partials)
    if not level:
        return PartialAggregate.empty()

    while len(level) > 1:
        level = [
            merge_pair(level[i], level[i + 1]) if i + 1 < len(level) else level[i]
            for i in range(0, len(level), 2)
        ]
    return level[0]


def derive_precinct_metrics(
    aggregate: PrecinctAggregate, density_scale: float = DEFAULT_DENSITY_SCALE
) -> PrecinctMetrics:
    return PrecinctMetrics(
        registered_voters=aggregate.registered_voters,
        turnout_rate=aggregate.turnout_rate,
        turnout_percentage=aggregate.turnout_percentage,
        average_age=aggregate.average_age,
        majority_party=aggregate.majority_party,
        majority_race=aggregate.majority_race,
        voter_density=calculate_density(aggregate.registered_voters, density_scale),
    )


def build_turnout_trends(
    voted: int,
    registered: int,
    historical_turnout: Mapping[Any, float],
    current_year: int,
) -> TurnoutTrends:
    """
    Historical turnout followed by the current dataset's overall turnout.

    Historical years at or after ``current_year`` are left out so the
    dataset's own figure is always the last point.
    """
    history = sorted(
        (int(year), float(turnout))
        for year, turnout in historical_turnout.items()
        if int(year) < current_year
    )
    years = tuple(str(year) for year, _ in history) + (str(current_year),)
    turnout = tuple(value for _, value in history) + (calculate_percentage(voted, registered),)
    return TurnoutTrends(years=years, turnout=turnout)


def finalize(partial: PartialAggregate, config: Optional[Any] = None) -> GlobalAggregate:
    """
    Derive every rate from fully merged counts.

    Args:
        partial: The merged partial aggregate for the whole dataset
        config: Object with ``get(key, default)``; reads
            ``analysis.density_scale``, ``analysis.historical_turnout`` and
            ``analysis.current_year``

    Returns:
        GlobalAggregate with per-precinct metrics and turnout trends
    """
    density_scale = config_value(config, "analysis.density_scale", DEFAULT_DENSITY_SCALE)
    history = config_value(config, "analysis.historical_turnout", DEFAULT_HISTORICAL_TURNOUT)
    current_year = int(
        config_value(config, "analysis.current_year", datetime.date.today().year)
    )

    for precinct_id, aggregate in partial.precincts.items():
        for problem in aggregate.invariant_violations():
            logger.warning(f"⚠️ Precinct {precinct_id}: {problem}")

    district_data = {
        precinct_id: derive_precinct_metrics(aggregate, density_scale)
        for precinct_id, aggregate in partial.precincts.items()
    }

    total_voted = sum(p.voted_count for p in partial.precincts.values())
    total_registered = sum(p.registered_voters for p in partial.precincts.values())

    return GlobalAggregate(
        precincts=dict(partial.precincts),
        party_counts=dict(partial.party_counts),
        race_counts=dict(partial.race_counts),
        age_group_turnout=partial.age_group_turnout,
        district_data=district_data,
        turnout_trends=build_turnout_trends(total_voted, total_registered, history, current_year),
        record_count=partial.record_count,
        unassigned_records=partial.unassigned_records,
    )


def merge_partials(
    partials: Iterable[PartialAggregate], config: Optional[Any] = None
) -> GlobalAggregate:
    """Fold partial aggregates and finalize the result."""
    partials = list(partials)
    merged = reduce_partials(partials)
    logger.debug(
        f"  🔗 Merged {len(partials)} partial aggregates: "
        f"{merged.record_count:,} records, {len(merged.precincts)} precincts"
    )
    return finalize(merged, config)
