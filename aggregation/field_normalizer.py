"""
field_normalizer.py - Voter Record Normalization

Maps raw voter rows (inconsistent key casing, free-text race and party,
voted flags given as booleans, numbers or strings) onto the strict
``VoterRecord`` type. Everything after this module works only with
``VoterRecord``.

Field-level problems never raise: unknown race becomes "Unknown", an
unrecognized voted flag is False, a bad age is excluded from age statistics
and a missing precinct id drops the record from precinct-level tallies.
Only a collection that is not recognizable as voter data is rejected.

All functions are pure and safe to call from worker threads.
"""

import math
import numbers
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from .exceptions import MalformedInputError
from .models import (
    MAX_VALID_AGE,
    MIN_VALID_AGE,
    UNKNOWN_LABEL,
    RaceCategory,
    VoterRecord,
)

# Checked in order; the first category whose pattern appears wins
RACE_PATTERNS: Tuple[Tuple[RaceCategory, Tuple[str, ...]], ...] = (
    (RaceCategory.WHITE, ("white",)),
    (RaceCategory.BLACK, ("black",)),
    (RaceCategory.HISPANIC, ("hispanic", "latino")),
    (RaceCategory.ASIAN, ("asian",)),
    (RaceCategory.NATIVE, ("native",)),
    (RaceCategory.MULTIRACIAL, ("multi",)),
)

PARTY_CODES: Dict[str, str] = {
    "R": "Republican",
    "REP": "Republican",
    "D": "Democratic",
    "DEM": "Democratic",
    "L": "Libertarian",
    "LIB": "Libertarian",
    "G": "Green",
    "GRN": "Green",
    "I": "Independent",
    "IND": "Independent",
    "NP": "No Party",
    "NPA": "No Party",
    "NAV": "Nonaffiliated",
}

TRUTHY_STRINGS = frozenset({"1", "true"})

# Sanitized key -> field, for reading raw rows regardless of key style
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "precinct": ("precinct", "precinct_id", "precinct_number"),
    "age": ("age",),
    "race": ("race", "race_ethnicity", "ethnicity"),
    "party": ("party", "party_code", "party_affiliation", "registered_party"),
    "voted": ("voted", "has_voted"),
}

# Object keys that may carry the array of voter rows
RECORD_COLLECTION_KEYS = ("voters", "records", "data")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def sanitize_field_name(name: Any) -> str:
    """Convert a raw key to snake_case ("Voted" -> "voted", "Precinct ID" -> "precinct_id")."""
    clean = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    clean = re.sub(r"[^\w]+", "_", clean).lower()
    return re.sub(r"_+", "_", clean).strip("_")


def normalize_race(value: Any) -> str:
    """Map free-text race to one of the seven canonical categories."""
    if _is_missing(value):
        return RaceCategory.UNKNOWN.value

    text = str(value).lower()
    for category, patterns in RACE_PATTERNS:
        if any(pattern in text for pattern in patterns):
            return category.value

    return RaceCategory.UNKNOWN.value


def normalize_voted(value: Any) -> bool:
    """True only for True, numeric 1, or the strings "1" / "true"."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, numbers.Number):
        return bool(value == 1)
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


def normalize_party(value: Any) -> str:
    """Expand common party codes; other values are kept as trimmed free text."""
    if _is_missing(value):
        return UNKNOWN_LABEL

    text = str(value).strip()
    if not text:
        return UNKNOWN_LABEL

    return PARTY_CODES.get(text.upper(), text)


def parse_age(value: Any) -> Tuple[int, bool]:
    """
    Parse an age value.

    Returns:
        (age, True) for integer-coercible ages within the voting range,
        (0, False) for anything else
    """
    if _is_missing(value) or isinstance(value, (bool, np.bool_)):
        return 0, False

    try:
        if isinstance(value, numbers.Number):
            number = float(value)
        else:
            number = float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return 0, False

    if not math.isfinite(number):
        return 0, False

    age = int(number)
    if MIN_VALID_AGE <= age <= MAX_VALID_AGE:
        return age, True
    return 0, False


def normalize_precinct(value: Any) -> Optional[str]:
    """Precinct id as a string; None when missing or blank."""
    if _is_missing(value) or isinstance(value, (bool, np.bool_)):
        return None
    # 101.0 from a numeric CSV column is precinct "101"
    if isinstance(value, float) and value.is_integer():
        value = int(value)

    text = str(value).strip()
    return text or None


def _pick(fields: Mapping[str, Any], name: str) -> Any:
    for alias in FIELD_ALIASES[name]:
        if alias in fields:
            return fields[alias]
    return None


def normalize_record(raw: Mapping[str, Any]) -> VoterRecord:
    """Convert one raw voter row into a VoterRecord."""
    fields = {sanitize_field_name(key): value for key, value in raw.items()}
    age, has_valid_age = parse_age(_pick(fields, "age"))

    return VoterRecord(
        precinct=normalize_precinct(_pick(fields, "precinct")),
        age=age,
        has_valid_age=has_valid_age,
        race=normalize_race(_pick(fields, "race")),
        party=normalize_party(_pick(fields, "party")),
        voted=normalize_voted(_pick(fields, "voted")),
    )


def extract_voter_rows(voter_data: Any) -> List[Mapping[str, Any]]:
    """
    Return the list of raw voter rows held by ``voter_data``.

    Accepts a list of objects, an object carrying a "voters" array (or
    "records" / "data"), or a pandas DataFrame.

    Raises:
        MalformedInputError: if the input is none of those shapes
    """
    if isinstance(voter_data, pd.DataFrame):
        rows = voter_data.to_dict("records")
    elif isinstance(voter_data, Mapping):
        for key in RECORD_COLLECTION_KEYS:
            candidate = voter_data.get(key)
            if isinstance(candidate, (list, tuple)):
                rows = list(candidate)
                break
        else:
            raise MalformedInputError(
                "Invalid voter data format. Expected an object with a 'voters' array.",
                data_type="object",
                keys=sorted(str(key) for key in voter_data)[:20],
            )
    elif isinstance(voter_data, (list, tuple)):
        rows = list(voter_data)
    else:
        raise MalformedInputError(
            "Invalid voter data format. Expected an array or an object with a 'voters' array.",
            data_type=type(voter_data).__name__,
        )

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise MalformedInputError(
                f"Voter record at index {index} is not an object",
                data_type=type(row).__name__,
                index=index,
            )

    return rows


def normalize_records(voter_data: Any) -> List[VoterRecord]:
    """Shape-check ``voter_data`` and normalize every row."""
    rows = extract_voter_rows(voter_data)
    records = [normalize_record(row) for row in rows]

    if records:
        missing_precinct = sum(1 for record in records if record.precinct is None)
        invalid_age = sum(1 for record in records if not record.has_valid_age)
        logger.debug(f"  🧹 Normalized {len(records):,} voter records")
        if missing_precinct:
            logger.debug(f"  ⚠️ {missing_precinct:,} records have no precinct id")
        if invalid_age:
            logger.debug(f"  ⚠️ {invalid_age:,} records have no valid age")

    return records
