"""
Data model for voter aggregation.

Counts are the primary facts everywhere in this module. Percentages,
averages and majority labels are derived views computed from counts on
demand, so that partial results from different chunks can be merged
exactly by summing.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .calculations import (
    calculate_percentage,
    calculate_turnout_rate,
    pick_majority,
    safe_divide,
)
from .exceptions import CensusDataError


class RaceCategory(str, Enum):
    """Canonical race categories produced by the field normalizer."""

    WHITE = "White"
    BLACK = "Black"
    HISPANIC = "Hispanic"
    ASIAN = "Asian"
    NATIVE = "Native"
    MULTIRACIAL = "Multiracial"
    UNKNOWN = "Unknown"


RACE_CATEGORIES: Tuple[str, ...] = tuple(category.value for category in RaceCategory)

AGE_GROUPS: Tuple[str, ...] = ("18-24", "25-34", "35-44", "45-54", "55-64", "65+")
MIN_VALID_AGE = 18
MAX_VALID_AGE = 120
# Left-closed bin edges for AGE_GROUPS
AGE_GROUP_BINS: Tuple[int, ...] = (18, 25, 35, 45, 55, 65, MAX_VALID_AGE + 1)

UNKNOWN_LABEL = "Unknown"


def add_counts(left: Mapping[str, int], right: Mapping[str, int]) -> Dict[str, int]:
    """Key-by-key sum of two count mappings."""
    merged = Counter(left)
    merged.update(right)
    return dict(merged)


def sorted_counts(counts: Mapping[str, int]) -> Dict[str, int]:
    return {key: counts[key] for key in sorted(counts)}


def precinct_sort_key(precinct_id: str) -> Tuple[int, int, str]:
    """Numeric precinct ids sort numerically and before textual ids."""
    if re.fullmatch(r"-?\d+", precinct_id):
        return (0, int(precinct_id), precinct_id)
    return (1, 0, precinct_id)


@dataclass(frozen=True)
class VoterRecord:
    """One voter after normalization. The only record shape aggregation sees."""

    precinct: Optional[str]
    age: int
    has_valid_age: bool
    race: str
    party: str
    voted: bool


@dataclass
class PrecinctAggregate:
    """Raw counts for one precinct."""

    registered_voters: int = 0
    voted_count: int = 0
    party_counts: Dict[str, int] = field(default_factory=dict)
    race_counts: Dict[str, int] = field(default_factory=dict)
    total_age_sum: int = 0
    age_sample_count: int = 0

    def merge(self, other: "PrecinctAggregate") -> "PrecinctAggregate":
        return PrecinctAggregate(
            registered_voters=self.registered_voters + other.registered_voters,
            voted_count=self.voted_count + other.voted_count,
            party_counts=add_counts(self.party_counts, other.party_counts),
            race_counts=add_counts(self.race_counts, other.race_counts),
            total_age_sum=self.total_age_sum + other.total_age_sum,
            age_sample_count=self.age_sample_count + other.age_sample_count,
        )

    @property
    def turnout_rate(self) -> float:
        return calculate_turnout_rate(self.voted_count, self.registered_voters)

    @property
    def turnout_percentage(self) -> float:
        return calculate_percentage(self.voted_count, self.registered_voters)

    @property
    def average_age(self) -> float:
        return safe_divide(self.total_age_sum, self.age_sample_count)

    @property
    def majority_party(self) -> str:
        return pick_majority(self.party_counts)

    @property
    def majority_race(self) -> str:
        return pick_majority(self.race_counts)

    def invariant_violations(self) -> List[str]:
        """Describe every broken count invariant (empty when consistent)."""
        problems = []
        if sum(self.party_counts.values()) != self.registered_voters:
            problems.append("party counts do not sum to registered voters")
        if sum(self.race_counts.values()) != self.registered_voters:
            problems.append("race counts do not sum to registered voters")
        if not 0 <= self.voted_count <= self.registered_voters:
            problems.append("voted count outside [0, registered voters]")
        if self.age_sample_count > self.registered_voters:
            problems.append("more age samples than registered voters")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registered_voters": self.registered_voters,
            "voted_count": self.voted_count,
            "party_counts": sorted_counts(self.party_counts),
            "race_counts": sorted_counts(self.race_counts),
            "total_age_sum": self.total_age_sum,
            "age_sample_count": self.age_sample_count,
        }


@dataclass
class AgeGroupTurnout:
    """Voted / not-voted counts for the six fixed age buckets."""

    voted: List[int] = field(default_factory=lambda: [0] * len(AGE_GROUPS))
    not_voted: List[int] = field(default_factory=lambda: [0] * len(AGE_GROUPS))

    @property
    def age_groups(self) -> Tuple[str, ...]:
        return AGE_GROUPS

    @property
    def total(self) -> int:
        return sum(self.voted) + sum(self.not_voted)

    def merge(self, other: "AgeGroupTurnout") -> "AgeGroupTurnout":
        return AgeGroupTurnout(
            voted=[a + b for a, b in zip(self.voted, other.voted)],
            not_voted=[a + b for a, b in zip(self.not_voted, other.not_voted)],
        )

    def to_dict(self) -> Dict[str, List[Any]]:
        return {
            "age_groups": list(AGE_GROUPS),
            "voted": list(self.voted),
            "not_voted": list(self.not_voted),
        }


@dataclass
class PartialAggregate:
    """
    Counts produced from one chunk of records.

    ``merge`` is associative and commutative and ``empty()`` is its identity,
    so partials can be combined in any order or grouping.
    """

    precincts: Dict[str, PrecinctAggregate] = field(default_factory=dict)
    party_counts: Dict[str, int] = field(default_factory=dict)
    race_counts: Dict[str, int] = field(default_factory=dict)
    age_group_turnout: AgeGroupTurnout = field(default_factory=AgeGroupTurnout)
    record_count: int = 0
    unassigned_records: int = 0

    @classmethod
    def empty(cls) -> "PartialAggregate":
        return cls()

    def merge(self, other: "PartialAggregate") -> "PartialAggregate":
        precincts: Dict[str, PrecinctAggregate] = {}
        for precinct_id in self.precincts.keys() | other.precincts.keys():
            mine = self.precincts.get(precinct_id)
            theirs = other.precincts.get(precinct_id)
            if mine is None:
                precincts[precinct_id] = theirs.merge(PrecinctAggregate())
            elif theirs is None:
                precincts[precinct_id] = mine.merge(PrecinctAggregate())
            else:
                precincts[precinct_id] = mine.merge(theirs)

        return PartialAggregate(
            precincts=precincts,
            party_counts=add_counts(self.party_counts, other.party_counts),
            race_counts=add_counts(self.race_counts, other.race_counts),
            age_group_turnout=self.age_group_turnout.merge(other.age_group_turnout),
            record_count=self.record_count + other.record_count,
            unassigned_records=self.unassigned_records + other.unassigned_records,
        )


@dataclass(frozen=True)
class PrecinctMetrics:
    """Rates derived once from the fully merged counts of a precinct."""

    registered_voters: int
    turnout_rate: float
    turnout_percentage: float
    average_age: float
    majority_party: str
    majority_race: str
    voter_density: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registered_voters": self.registered_voters,
            "turnout": self.turnout_rate,
            "turnout_percentage": self.turnout_percentage,
            "average_age": self.average_age,
            "majority_party": self.majority_party,
            "majority_race": self.majority_race,
            "voter_density": self.voter_density,
        }


@dataclass(frozen=True)
class TurnoutTrends:
    years: Tuple[str, ...] = ()
    turnout: Tuple[float, ...] = ()

    def to_dict(self) -> Dict[str, List[Any]]:
        return {"years": list(self.years), "turnout": list(self.turnout)}


# ---------------------------------------------------------------------------
# Census
# ---------------------------------------------------------------------------


def _camel_case(name: str) -> str:
    return re.sub(r"_([a-z])", lambda match: match.group(1).upper(), name)


def _lookup(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Read a field under its snake_case or camelCase name."""
    if name in data:
        return data[name]
    return data.get(_camel_case(name), default)


def _as_number(value: Any, field_name: str, required: bool = False) -> float:
    if value is None or value == "":
        if required:
            raise CensusDataError(f"Census field '{field_name}' is missing", field_name)
        return 0.0
    if isinstance(value, bool):
        raise CensusDataError(f"Census field '{field_name}' is not numeric", field_name)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise CensusDataError(f"Census field '{field_name}' is not numeric: {value!r}", field_name)
    if math.isinf(number):
        raise CensusDataError(f"Census field '{field_name}' is not finite: {value!r}", field_name)
    if math.isnan(number):
        if required:
            raise CensusDataError(f"Census field '{field_name}' is missing", field_name)
        return 0.0
    # ACS reports unavailable estimates as large negative sentinels
    if number < 0:
        if required:
            raise CensusDataError(f"Census field '{field_name}' is negative", field_name)
        return 0.0
    return number


def _as_count_mapping(value: Any, field_name: str) -> Dict[str, float]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise CensusDataError(f"Census field '{field_name}' must be an object", field_name)
    return {str(key): _as_number(count, f"{field_name}.{key}") for key, count in value.items()}


EDUCATION_LEVELS = ("less_than_high_school", "high_school", "some_college", "bachelors", "graduate")

# ACS 5-year variables for a county-level census record
ACS_VARIABLES: Dict[str, str] = {
    "total_population": "B01001_001E",
    "voting_age_population": "B29001_001E",
    "race.white": "B02001_002E",
    "race.black": "B02001_003E",
    "race.native_american": "B02001_004E",
    "race.asian": "B02001_005E",
    "race.pacific_islander": "B02001_006E",
    "race.other": "B02001_007E",
    "race.multiracial": "B02001_008E",
    "hispanic.non_hispanic": "B03003_002E",
    "hispanic.hispanic": "B03003_003E",
    "median_income": "B19013_001E",
    "education.less_than_high_school": "B15003_002E",
    "education.high_school": "B15003_017E",
    "education.some_college_short": "B15003_019E",
    "education.some_college_long": "B15003_020E",
    "education.associates": "B15003_021E",
    "education.bachelors": "B15003_022E",
    "education.masters": "B15003_023E",
    "education.professional": "B15003_024E",
    "education.doctorate": "B15003_025E",
    "housing_units": "B25001_001E",
    "owner_occupied": "B25003_002E",
    "renter_occupied": "B25003_003E",
}


@dataclass(frozen=True)
class CensusRecord:
    """County-level census figures supplied by a census-lookup collaborator."""

    voting_age_population: int
    median_income: float = 0.0
    race_distribution: Mapping[str, float] = field(default_factory=dict)
    education_levels: Mapping[str, float] = field(default_factory=dict)
    housing_units: int = 0
    homeownership_rate: float = 0.0
    total_population: int = 0
    hispanic_origin: Mapping[str, float] = field(default_factory=dict)
    geoid: str = ""
    geo_name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CensusRecord":
        """Build a record from a decoded JSON object (camelCase or snake_case keys)."""
        if not isinstance(data, Mapping):
            raise CensusDataError(f"Census record must be an object, got {type(data).__name__}")

        education = _lookup(data, "education_levels")
        if isinstance(education, Mapping):
            education = {
                level: _lookup(education, level, 0) for level in EDUCATION_LEVELS
            }

        return cls(
            voting_age_population=int(
                _as_number(_lookup(data, "voting_age_population"), "voting_age_population", True)
            ),
            median_income=_as_number(_lookup(data, "median_income"), "median_income"),
            race_distribution=_as_count_mapping(
                _lookup(data, "race_distribution"), "race_distribution"
            ),
            education_levels=_as_count_mapping(education, "education_levels"),
            housing_units=int(_as_number(_lookup(data, "housing_units"), "housing_units")),
            homeownership_rate=_as_number(
                _lookup(data, "homeownership_rate"), "homeownership_rate"
            ),
            total_population=int(_as_number(_lookup(data, "total_population"), "total_population")),
            hispanic_origin=_as_count_mapping(_lookup(data, "hispanic_origin"), "hispanic_origin"),
            geoid=str(_lookup(data, "geoid", "") or ""),
            geo_name=str(_lookup(data, "geo_name", "") or ""),
        )

    @classmethod
    def from_acs_response(
        cls, rows: Sequence[Sequence[Any]], geo_name: Optional[str] = None
    ) -> "CensusRecord":
        """
        Parse an ACS 5-year county response: a header row followed by one value row.

        The response is fetched elsewhere; only the decoded rows are read here.
        Values are matched by variable name, not position.
        """
        if len(rows) < 2:
            raise CensusDataError("ACS response has no data row")

        row = dict(zip(rows[0], rows[1]))

        def value(key: str, required: bool = False) -> float:
            return _as_number(row.get(ACS_VARIABLES[key]), key, required)

        owner = value("owner_occupied")
        renter = value("renter_occupied")
        geoid = f"{row.get('state', '')}{row.get('county', '')}"

        return cls(
            voting_age_population=int(value("voting_age_population", required=True)),
            median_income=value("median_income"),
            race_distribution={
                key.split(".", 1)[1]: value(key) for key in ACS_VARIABLES if key.startswith("race.")
            },
            education_levels={
                "less_than_high_school": value("education.less_than_high_school"),
                "high_school": value("education.high_school"),
                "some_college": value("education.some_college_short")
                + value("education.some_college_long")
                + value("education.associates"),
                "bachelors": value("education.bachelors"),
                "graduate": value("education.masters")
                + value("education.professional")
                + value("education.doctorate"),
            },
            housing_units=int(value("housing_units")),
            homeownership_rate=safe_divide(owner, owner + renter),
            total_population=int(value("total_population")),
            hispanic_origin={
                "non_hispanic": value("hispanic.non_hispanic"),
                "hispanic": value("hispanic.hispanic"),
            },
            geoid=geoid,
            geo_name=geo_name or str(row.get("NAME", "")),
        )

    @property
    def bachelors_or_higher_share(self) -> float:
        """Share of the education-levels population with a bachelor's degree or higher."""
        total = sum(self.education_levels.values())
        degree = self.education_levels.get("bachelors", 0) + self.education_levels.get(
            "graduate", 0
        )
        return safe_divide(degree, total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_population": self.total_population,
            "voting_age_population": self.voting_age_population,
            "race_distribution": dict(self.race_distribution),
            "hispanic_origin": dict(self.hispanic_origin),
            "median_income": self.median_income,
            "education_levels": dict(self.education_levels),
            "housing_units": self.housing_units,
            "homeownership_rate": self.homeownership_rate,
            "geoid": self.geoid,
            "geo_name": self.geo_name,
        }


@dataclass(frozen=True)
class CorrelationSummary:
    """Parallel per-precinct arrays and their Pearson coefficient."""

    value_label: str
    precincts: Tuple[str, ...] = ()
    values: Tuple[float, ...] = ()
    turnout: Tuple[float, ...] = ()
    correlation: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "precincts": list(self.precincts),
            self.value_label: list(self.values),
            "turnout": list(self.turnout),
            "correlation": self.correlation,
        }


@dataclass(frozen=True)
class CensusIntegrationResult:
    county_level: CensusRecord
    unregistered_voters: Mapping[str, int]
    registration_rate: Mapping[str, float]
    income_vs_turnout: CorrelationSummary
    education_vs_turnout: CorrelationSummary
    total_unregistered: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "county_level": self.county_level.to_dict(),
            "total_unregistered": self.total_unregistered,
            "unregistered_voters": dict(self.unregistered_voters),
            "registration_rate": dict(self.registration_rate),
            "socioeconomic_correlations": {
                "income_vs_turnout": self.income_vs_turnout.to_dict(),
                "education_vs_turnout": self.education_vs_turnout.to_dict(),
            },
        }


# ---------------------------------------------------------------------------
# Final aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GlobalAggregate:
    """
    Merged counts for the whole dataset plus rates derived from them.

    Built by the merger; census integration returns a new instance rather
    than modifying an existing one.
    """

    precincts: Mapping[str, PrecinctAggregate]
    party_counts: Mapping[str, int]
    race_counts: Mapping[str, int]
    age_group_turnout: AgeGroupTurnout
    district_data: Mapping[str, PrecinctMetrics]
    turnout_trends: TurnoutTrends = field(default_factory=TurnoutTrends)
    record_count: int = 0
    unassigned_records: int = 0
    census: Optional[CensusIntegrationResult] = None

    @property
    def precinct_ids(self) -> List[str]:
        return sorted(self.precincts, key=precinct_sort_key)

    def to_dict(self) -> Dict[str, Any]:
        ids = self.precinct_ids
        return {
            "record_count": self.record_count,
            "unassigned_records": self.unassigned_records,
            "party_affiliation": sorted_counts(self.party_counts),
            "racial_demographics": sorted_counts(self.race_counts),
            "age_group_turnout": self.age_group_turnout.to_dict(),
            "turnout_trends": self.turnout_trends.to_dict(),
            "precinct_demographics": {
                "precincts": ids,
                "registered_voters": {pid: self.precincts[pid].registered_voters for pid in ids},
                "turnout_percentage": {
                    pid: self.district_data[pid].turnout_percentage for pid in ids
                },
                "party_affiliation": {
                    pid: sorted_counts(self.precincts[pid].party_counts) for pid in ids
                },
                "racial_demographics": {
                    pid: sorted_counts(self.precincts[pid].race_counts) for pid in ids
                },
            },
            "district_data": {pid: self.district_data[pid].to_dict() for pid in ids},
            "census_data": self.census.to_dict() if self.census else None,
        }


@dataclass(frozen=True)
class SummaryStatistics:
    total_registered: int
    turnout_percentage: float
    precinct_count: int
    average_age: float

    def to_cards(self) -> List[Dict[str, str]]:
        """Summary entries in the shape the dashboard header renders."""
        return [
            {
                "label": "Registered Voters",
                "value": f"{self.total_registered:,}",
                "icon": "users",
            },
            {
                "label": "Voter Turnout",
                "value": f"{self.turnout_percentage:.1f}%",
                "icon": "check-square",
            },
            {"label": "Precincts", "value": str(self.precinct_count), "icon": "map"},
            {"label": "Avg. Age", "value": f"{self.average_age:.1f}", "icon": "calendar"},
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_registered": self.total_registered,
            "turnout_percentage": self.turnout_percentage,
            "precinct_count": self.precinct_count,
            "average_age": self.average_age,
        }
