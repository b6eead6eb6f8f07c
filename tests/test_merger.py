from functools import reduce

import pytest

from aggregation.chunking import partition_records
from aggregation.field_normalizer import normalize_records
from aggregation.merger import (
    build_turnout_trends,
    finalize,
    merge_pair,
    merge_partials,
    reduce_partials,
    tree_reduce,
)
from aggregation.models import PartialAggregate, PrecinctAggregate
from aggregation.precinct_aggregator import aggregate_chunk


def _partials(voters, chunk_size):
    records = normalize_records(voters)
    return [aggregate_chunk(chunk) for chunk in partition_records(records, chunk_size)]


def test_empty_is_identity(small_voters):
    partial = aggregate_chunk(normalize_records(small_voters))

    assert merge_pair(partial, PartialAggregate.empty()) == partial
    assert merge_pair(PartialAggregate.empty(), partial) == partial


def test_merge_is_commutative_and_associative(mixed_voters):
    a, b, c = _partials(mixed_voters, 400)

    assert merge_pair(a, b) == merge_pair(b, a)
    assert merge_pair(merge_pair(a, b), c) == merge_pair(a, merge_pair(b, c))


@pytest.mark.parametrize("chunk_size", [1, 7, 100, 333, 996, 997])
def test_chunked_equals_single_pass(mixed_voters, config, chunk_size):
    single = finalize(aggregate_chunk(normalize_records(mixed_voters)), config)
    partials = _partials(mixed_voters, chunk_size)

    assert finalize(reduce_partials(partials), config) == single
    assert finalize(reduce_partials(reversed(partials)), config) == single
    assert finalize(tree_reduce(partials), config) == single


def test_three_precincts_two_voters_each(small_voters, config):
    # One voter per chunk, merged in reverse
    partials = _partials(small_voters, 1)
    result = merge_partials(reversed(partials), config)

    assert sorted(result.precincts) == ["101", "102", "103"]
    for precinct in result.precincts.values():
        assert precinct.registered_voters == 2
    assert result.district_data["101"].turnout_rate == 0.5
    assert result.district_data["102"].turnout_rate == 1.0
    assert result.district_data["103"].turnout_rate == 0.0
    assert result.record_count == 6


def test_turnout_derived_from_merged_counts():
    # Turnout must come from summed counts, never from the last partial
    left = PartialAggregate(precincts={"1": PrecinctAggregate(10, 10, {"D": 10}, {"White": 10})})
    right = PartialAggregate(precincts={"1": PrecinctAggregate(30, 0, {"D": 30}, {"White": 30})})

    result = finalize(merge_pair(left, right))

    assert result.district_data["1"].turnout_rate == 0.25
    assert result.district_data["1"].turnout_percentage == 25.0


def test_majority_tie_breaks_lexicographically():
    precinct = PrecinctAggregate(
        registered_voters=4,
        party_counts={"Republican": 2, "Democratic": 2},
        race_counts={"White": 2, "Black": 2},
    )
    partial = PartialAggregate(precincts={"7": precinct})

    forward = finalize(partial)
    backward = finalize(
        PartialAggregate(
            precincts={
                "7": PrecinctAggregate(
                    registered_voters=4,
                    party_counts={"Democratic": 2, "Republican": 2},
                    race_counts={"Black": 2, "White": 2},
                )
            }
        )
    )

    assert forward.district_data["7"].majority_party == "Democratic"
    assert forward.district_data["7"].majority_race == "Black"
    assert forward.district_data == backward.district_data


def test_voter_density_uses_scale(config):
    partial = PartialAggregate(
        precincts={
            "1": PrecinctAggregate(50, 0, {"D": 50}, {"White": 50}),
            "2": PrecinctAggregate(250, 0, {"D": 250}, {"White": 250}),
        }
    )
    result = finalize(partial, config)

    assert result.district_data["1"].voter_density == 0.5
    assert result.district_data["2"].voter_density == 1.0


def test_empty_dataset_finalizes_to_zeros(config):
    result = merge_partials([], config)

    assert result.precincts == {}
    assert result.district_data == {}
    assert result.record_count == 0
    assert result.turnout_trends.turnout[-1] == 0.0


def test_turnout_trends_end_with_dataset_turnout():
    trends = build_turnout_trends(
        voted=55, registered=100, historical_turnout={2016: 65, 2008: 62, 2024: 70}, current_year=2024
    )

    assert trends.years == ("2008", "2016", "2024")
    assert trends.turnout == (62.0, 65.0, 55.0)


def test_finalize_reads_history_from_config(config, small_voters):
    result = finalize(aggregate_chunk(normalize_records(small_voters)), config)

    assert result.turnout_trends.years == ("2008", "2012", "2016", "2020", "2024")
    assert result.turnout_trends.turnout[-1] == 50.0


def test_fold_matches_functools_reduce(mixed_voters):
    partials = _partials(mixed_voters, 50)

    assert reduce_partials(partials) == reduce(merge_pair, partials)


def test_invariant_violations_reported_for_inconsistent_counts():
    broken = PrecinctAggregate(
        registered_voters=2,
        voted_count=3,
        party_counts={"Democratic": 1},
        race_counts={"White": 2},
        age_sample_count=5,
    )

    assert broken.invariant_violations() == [
        "party counts do not sum to registered voters",
        "voted count outside [0, registered voters]",
        "more age samples than registered voters",
    ]
    assert PrecinctAggregate(1, 1, {"D": 1}, {"White": 1}, 40, 1).invariant_violations() == []
