"""
census.py - Census Integration

Combines the final voter aggregate with a county-level census record:

1. Unregistered voters: the county's voting-age population minus everyone
   registered, allocated to precincts in proportion to their registered
   counts.
2. Registration rate per precinct: registered voters over the precinct's
   proportional share of the voting-age population.
3. Income and education against turnout, with Pearson coefficients.

Census data is optional. A missing record leaves the aggregate unchanged
and an unreadable one raises the recoverable ``CensusDataError``.
"""

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from .calculations import pearson_correlation, safe_divide
from .exceptions import CensusDataError
from .models import (
    CensusIntegrationResult,
    CensusRecord,
    CorrelationSummary,
    GlobalAggregate,
)


def load_census_record(source: Any) -> Optional[CensusRecord]:
    """
    Coerce a census payload into a CensusRecord.

    Accepts a CensusRecord, a decoded JSON object, an ACS response (header
    row plus value row), or None.

    Raises:
        CensusDataError: if the payload cannot be read
    """
    if source is None or isinstance(source, CensusRecord):
        return source
    if isinstance(source, Mapping):
        return CensusRecord.from_dict(source)
    if isinstance(source, (list, tuple)) and source and isinstance(source[0], (list, tuple)):
        return CensusRecord.from_acs_response(source)
    raise CensusDataError(f"Unsupported census payload type: {type(source).__name__}")


def allocate_unregistered(
    registered: Mapping[str, int], voting_age_population: int
) -> Dict[str, int]:
    """Distribute the county's unregistered population by share of registered voters."""
    total_registered = sum(registered.values())
    total_unregistered = max(0, voting_age_population - total_registered)
    return {
        precinct_id: int(round(total_unregistered * safe_divide(count, total_registered)))
        for precinct_id, count in registered.items()
    }


def estimate_registration_rates(
    registered: Mapping[str, int], voting_age_population: int
) -> Dict[str, float]:
    """
    Registered voters over each precinct's proportional voting-age population.

    Not clamped: a precinct whose share of the estimate is smaller than its
    registered count reports a rate above 1.
    """
    total_registered = sum(registered.values())
    rates = {}
    for precinct_id, count in registered.items():
        estimated_voting_age = int(
            round(voting_age_population * safe_divide(count, total_registered))
        )
        rates[precinct_id] = safe_divide(count, estimated_voting_age)
    return rates


def _correlate(
    label: str, precinct_ids: List[str], values: List[float], turnout: List[float]
) -> CorrelationSummary:
    return CorrelationSummary(
        value_label=label,
        precincts=tuple(precinct_ids),
        values=tuple(values),
        turnout=tuple(turnout),
        correlation=pearson_correlation(values, turnout),
    )


def integrate_census(
    aggregate: GlobalAggregate,
    census: Optional[CensusRecord],
    precinct_census: Optional[Mapping[str, CensusRecord]] = None,
) -> GlobalAggregate:
    """
    Attach census-derived estimates to a final aggregate.

    Args:
        aggregate: Final voter aggregate (not modified)
        census: County-level census record, or None to skip integration
        precinct_census: Optional precinct-level records; a precinct without
            one uses the county-level income and education figures

    Returns:
        A new GlobalAggregate carrying the integration result
    """
    if census is None:
        logger.info("📊 No census data available - skipping census integration")
        return aggregate

    precinct_census = precinct_census or {}
    precinct_ids = aggregate.precinct_ids
    registered = {pid: aggregate.precincts[pid].registered_voters for pid in precinct_ids}
    vap = census.voting_age_population

    unregistered = allocate_unregistered(registered, vap)
    registration_rate = estimate_registration_rates(registered, vap)

    income, education, turnout = [], [], []
    for pid in precinct_ids:
        source = precinct_census.get(pid) or census
        income.append(source.median_income)
        education.append(source.bachelors_or_higher_share)
        turnout.append(aggregate.district_data[pid].turnout_rate)

    result = CensusIntegrationResult(
        county_level=census,
        unregistered_voters=unregistered,
        registration_rate=registration_rate,
        income_vs_turnout=_correlate("income", precinct_ids, income, turnout),
        education_vs_turnout=_correlate("education", precinct_ids, education, turnout),
        total_unregistered=max(0, vap - sum(registered.values())),
    )

    logger.success(
        f"✅ Census integrated: {result.total_unregistered:,} unregistered across "
        f"{len(precinct_ids)} precincts"
    )
    return replace(aggregate, census=result)
