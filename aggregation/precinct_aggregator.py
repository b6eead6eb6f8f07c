"""
precinct_aggregator.py - Per-Chunk Aggregation

Turns one chunk of normalized voter records into a PartialAggregate of raw
counts. Only counts are produced here; turnout, averages and majorities are
derived after all chunks are merged.

The chunk is loaded into a pandas DataFrame and grouped by precinct, the
same way voter files are rolled up to precinct level elsewhere in the
pipeline. Functions hold no shared state and can run on worker threads.
"""

from typing import Dict, Sequence

import pandas as pd
from loguru import logger

from .models import (
    AGE_GROUP_BINS,
    AGE_GROUPS,
    AgeGroupTurnout,
    PartialAggregate,
    PrecinctAggregate,
    VoterRecord,
)


def records_to_frame(records: Sequence[VoterRecord]) -> pd.DataFrame:
    """Columnar view of a chunk of voter records."""
    return pd.DataFrame(
        {
            "precinct": pd.Series([r.precinct for r in records], dtype="object"),
            "age": pd.Series([r.age for r in records], dtype="int64"),
            "has_valid_age": pd.Series([r.has_valid_age for r in records], dtype="bool"),
            "race": pd.Series([r.race for r in records], dtype="object"),
            "party": pd.Series([r.party for r in records], dtype="object"),
            "voted": pd.Series([r.voted for r in records], dtype="bool"),
        }
    )


def _value_counts(series: pd.Series) -> Dict[str, int]:
    return {str(label): int(count) for label, count in series.value_counts().items()}


def _row_counts(row: pd.Series) -> Dict[str, int]:
    return {str(label): int(count) for label, count in row.items() if count > 0}


def _aggregate_precincts(assigned: pd.DataFrame) -> Dict[str, PrecinctAggregate]:
    """Group records that carry a precinct id into per-precinct counts."""
    totals = assigned.groupby("precinct", sort=True).agg(
        registered_voters=("voted", "size"),
        voted_count=("voted", "sum"),
        total_age_sum=("counted_age", "sum"),
        age_sample_count=("has_valid_age", "sum"),
    )
    party_table = pd.crosstab(assigned["precinct"], assigned["party"])
    race_table = pd.crosstab(assigned["precinct"], assigned["race"])

    precincts: Dict[str, PrecinctAggregate] = {}
    for precinct_id, row in totals.iterrows():
        precincts[str(precinct_id)] = PrecinctAggregate(
            registered_voters=int(row["registered_voters"]),
            voted_count=int(row["voted_count"]),
            party_counts=_row_counts(party_table.loc[precinct_id]),
            race_counts=_row_counts(race_table.loc[precinct_id]),
            total_age_sum=int(row["total_age_sum"]),
            age_sample_count=int(row["age_sample_count"]),
        )

    return precincts


def _age_group_turnout(frame: pd.DataFrame) -> AgeGroupTurnout:
    """Bucket records with a valid age into the fixed age groups."""
    valid = frame[frame["has_valid_age"]]
    if valid.empty:
        return AgeGroupTurnout()

    groups = pd.cut(
        valid["age"], bins=list(AGE_GROUP_BINS), labels=list(AGE_GROUPS), right=False
    ).astype(str)
    table = pd.crosstab(groups, valid["voted"]).reindex(
        index=list(AGE_GROUPS), columns=[True, False], fill_value=0
    )

    return AgeGroupTurnout(
        voted=[int(count) for count in table[True]],
        not_voted=[int(count) for count in table[False]],
    )


def aggregate_chunk(records: Sequence[VoterRecord]) -> PartialAggregate:
    """
    Count one chunk of records.

    Records without a precinct id count toward the global party, race and
    age tallies and toward ``unassigned_records``, but not toward any
    precinct.

    Args:
        records: Normalized voter records

    Returns:
        PartialAggregate holding raw counts only
    """
    if not records:
        return PartialAggregate.empty()

    frame = records_to_frame(records)
    frame["counted_age"] = frame["age"].where(frame["has_valid_age"], 0)

    assigned = frame[frame["precinct"].notna()]
    precincts = _aggregate_precincts(assigned) if not assigned.empty else {}
    unassigned = len(frame) - len(assigned)

    logger.trace(
        f"Aggregated chunk: {len(frame):,} records, {len(precincts)} precincts, "
        f"{unassigned} unassigned"
    )

    return PartialAggregate(
        precincts=precincts,
        party_counts=_value_counts(frame["party"]),
        race_counts=_value_counts(frame["race"]),
        age_group_turnout=_age_group_turnout(frame),
        record_count=len(frame),
        unassigned_records=unassigned,
    )
