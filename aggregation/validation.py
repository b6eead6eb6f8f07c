"""
validation.py - Input Diagnostics

Checks the shape of voter data and GeoJSON boundaries without processing
them, so users can diagnose a file before running the pipeline. Reports are
returned, never raised.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from .boundaries import PRECINCT_PROPERTY_KEYS
from .field_normalizer import FIELD_ALIASES, RECORD_COLLECTION_KEYS, sanitize_field_name


@dataclass
class ValidationReport:
    """Outcome of a shape check plus facts about what was found."""

    is_valid: bool = False
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    facts: Dict[str, Any] = field(default_factory=dict)

    def add_issue(self, issue: str, recommendation: str) -> None:
        self.issues.append(issue)
        self.recommendations.append(recommendation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            **self.facts,
        }


def _has_field(record: Mapping[str, Any], name: str) -> bool:
    keys = {sanitize_field_name(key) for key in record}
    return any(alias in keys for alias in FIELD_ALIASES[name])


def validate_voter_data(data: Any) -> ValidationReport:
    """
    Check that voter data is an array of records, or an object holding one,
    and that the first record carries precinct, race and party fields.

    Valid when records are present and the first has a precinct field.
    """
    report = ValidationReport(
        facts={
            "type": type(data).__name__,
            "is_array": isinstance(data, list),
            "has_voters_array": False,
            "voters_length": 0,
            "sample_keys": [],
            "has_precinct": False,
            "has_race": False,
            "has_party": False,
        }
    )

    if data is None or (isinstance(data, str) and not data.strip()):
        report.add_issue("Voter data is missing", "Provide voter data in JSON format")
        return report

    if isinstance(data, Mapping):
        records = next(
            (data[key] for key in RECORD_COLLECTION_KEYS if isinstance(data.get(key), list)),
            None,
        )
        if records is None:
            report.add_issue(
                "Invalid voter data format",
                'Provide voter data as an array or an object with a "voters" array',
            )
            return report
        report.facts["has_voters_array"] = True
    elif isinstance(data, list):
        records = data
    else:
        report.add_issue(
            "Invalid voter data format",
            'Provide voter data as an array or an object with a "voters" array',
        )
        return report

    report.facts["voters_length"] = len(records)
    if not records:
        report.add_issue("Voter data array is empty", "Provide at least one voter record")
        return report

    first = records[0]
    if not isinstance(first, Mapping):
        report.add_issue("Voter records are not objects", "Each voter record must be an object")
        return report

    report.facts["sample_keys"] = [str(key) for key in first]
    for name, label in (("precinct", "Precinct"), ("race", "Race"), ("party", "Party")):
        present = _has_field(first, name)
        report.facts[f"has_{name}"] = present
        if not present:
            report.add_issue(
                f"{label} field is missing", f'Add a "{label}" field to each voter record'
            )

    report.is_valid = report.facts["has_precinct"]
    return report


def validate_geo_data(data: Any) -> ValidationReport:
    """
    Check that GeoJSON is a FeatureCollection whose first feature carries a
    precinct identifier property.
    """
    report = ValidationReport(
        facts={
            "type": type(data).__name__,
            "geojson_type": data.get("type") if isinstance(data, Mapping) else None,
            "has_features": False,
            "features_length": 0,
            "has_precinct": False,
        }
    )

    if data is None:
        report.add_issue("GeoJSON data is missing", "Provide GeoJSON data")
        return report
    if not isinstance(data, Mapping) or not data.get("type"):
        report.add_issue("GeoJSON type is missing", 'GeoJSON must have a "type" property')
        return report

    features = data.get("features")
    if not isinstance(features, list):
        report.add_issue("GeoJSON features array is missing", 'GeoJSON must have a "features" array')
        return report

    report.facts["has_features"] = True
    report.facts["features_length"] = len(features)
    if not features:
        report.add_issue("GeoJSON features array is empty", "GeoJSON must have at least one feature")
        return report

    properties = features[0].get("properties") if isinstance(features[0], Mapping) else None
    if not isinstance(properties, Mapping):
        report.add_issue(
            "GeoJSON feature is missing properties",
            'Each GeoJSON feature must have a "properties" object',
        )
        return report

    has_precinct = any(properties.get(key) is not None for key in PRECINCT_PROPERTY_KEYS)
    report.facts["has_precinct"] = has_precinct
    if not has_precinct:
        keys = ", ".join(f'"{key}"' for key in PRECINCT_PROPERTY_KEYS)
        report.add_issue(
            "GeoJSON features are missing precinct identifiers",
            f"Each GeoJSON feature must have one of these properties: {keys}",
        )

    report.is_valid = data.get("type") == "FeatureCollection" and has_precinct
    return report
