"""
Aggregation package for Voter Aggregates

Turns raw voter records into precinct-level and dataset-level dashboard
figures, optionally enriched with county census data.
"""

__version__ = "0.1.0"

# Import key entry points for easy access
from .boundaries import BoundaryMatch, compare_precincts, extract_precinct_ids
from .census import integrate_census, load_census_record
from .exceptions import (
    AggregationError,
    AggregationTimeoutError,
    CensusDataError,
    ConfigurationError,
    MalformedInputError,
)
from .merger import merge_partials
from .models import CensusRecord, GlobalAggregate, PartialAggregate, SummaryStatistics, VoterRecord
from .pipeline import DashboardData, aggregate, run_pipeline
from .summary import summarize
from .validation import validate_geo_data, validate_voter_data

__all__ = [
    "aggregate",
    "merge_partials",
    "integrate_census",
    "summarize",
    "run_pipeline",
    "load_census_record",
    "DashboardData",
    "GlobalAggregate",
    "PartialAggregate",
    "SummaryStatistics",
    "VoterRecord",
    "CensusRecord",
    "BoundaryMatch",
    "compare_precincts",
    "extract_precinct_ids",
    "validate_voter_data",
    "validate_geo_data",
    "AggregationError",
    "MalformedInputError",
    "ConfigurationError",
    "CensusDataError",
    "AggregationTimeoutError",
]
