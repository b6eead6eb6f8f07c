import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ops import Config


def make_voter(precinct, age=40, race="White", party="Democratic", voted=True):
    return {"Precinct": precinct, "Age": age, "Race": race, "Party": party, "Voted": voted}


@pytest.fixture
def config():
    return Config.from_defaults(overrides={"analysis.current_year": 2024})


@pytest.fixture
def small_voters():
    # Three precincts, two voters each
    return [
        make_voter("101", 22, "White", "Democratic", True),
        make_voter("101", 30, "Black", "Republican", False),
        make_voter("102", 45, "Hispanic", "Democratic", True),
        make_voter("102", 67, "Asian", "Democratic", True),
        make_voter("103", 58, "White", "Republican", False),
        make_voter("103", 19, "Native American", "Independent", False),
    ]


@pytest.fixture
def mixed_voters():
    """Varied records, including bad ages and records without a precinct."""
    races = ["White", "Black", "Hispanic or Latino", "Asian", "Native", "Multiracial", "Other"]
    parties = ["Democratic", "Republican", "R", "D", "NAV", "", "Green"]
    voted_values = [True, False, "1", "0", 1, 0, "true", "no"]
    ages = [18, 24, 25, 34, 44, 45, 55, 64, 65, 90, 120, 17, "abc", None, "41"]
    voters = []
    for i in range(997):
        precinct = None if i % 53 == 0 else str(100 + i % 17)
        voters.append(
            {
                "precinct": precinct,
                "age": ages[i % len(ages)],
                "race": races[i % len(races)],
                "party": parties[i % len(parties)],
                "voted": voted_values[i % len(voted_values)],
            }
        )
    return voters


@pytest.fixture
def census_payload():
    return {
        "totalPopulation": 350000,
        "votingAgePopulation": 270000,
        "medianIncome": 65000,
        "raceDistribution": {"white": 200000, "black": 50000},
        "educationLevels": {
            "lessThanHighSchool": 20000,
            "highSchool": 80000,
            "someCollege": 70000,
            "bachelors": 60000,
            "graduate": 40000,
        },
        "housingUnits": 140000,
        "homeownershipRate": 0.62,
    }
