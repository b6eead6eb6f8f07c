"""Headline figures for the dashboard summary cards."""

from .calculations import safe_divide
from .models import GlobalAggregate, SummaryStatistics


def summarize(aggregate: GlobalAggregate) -> SummaryStatistics:
    """
    Total registered voters, overall turnout percentage, precinct count and
    mean age, all from precinct counts. Pure; empty input yields zeros.
    """
    precincts = list(aggregate.precincts.values())
    total_registered = sum(p.registered_voters for p in precincts)
    total_voted = sum(p.voted_count for p in precincts)

    return SummaryStatistics(
        total_registered=total_registered,
        turnout_percentage=safe_divide(total_voted, total_registered) * 100,
        precinct_count=len(precincts),
        average_age=safe_divide(
            sum(p.total_age_sum for p in precincts),
            sum(p.age_sample_count for p in precincts),
        ),
    )
