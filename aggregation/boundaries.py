"""
boundaries.py - Precinct Identifiers from Boundary Files

Reads precinct identifiers out of GeoJSON feature collections (already
decoded) or any vector file geopandas can open, and reports how they line
up with the precincts present in the voter aggregate. Geometry is never
inspected.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import geopandas as gpd
from loguru import logger

from .exceptions import MalformedInputError
from .field_normalizer import normalize_precinct
from .models import GlobalAggregate, precinct_sort_key

# Feature property keys that may carry the precinct id; first present wins
PRECINCT_PROPERTY_KEYS: Tuple[str, ...] = (
    "id",
    "PRECINCT",
    "DISTRICT_ID",
    "districtId",
    "precinct",
    "Precinct",
)


def precinct_id_from_properties(properties: Mapping[str, Any]) -> Optional[str]:
    for key in PRECINCT_PROPERTY_KEYS:
        precinct_id = normalize_precinct(properties.get(key))
        if precinct_id is not None:
            return precinct_id
    return None


def _unique_sorted(ids: Iterable[str]) -> List[str]:
    return sorted(set(ids), key=precinct_sort_key)


def extract_precinct_ids(geo_data: Mapping[str, Any]) -> List[str]:
    """
    Precinct ids of a decoded GeoJSON FeatureCollection.

    Features without a recognizable id are skipped (and counted in the log).

    Raises:
        MalformedInputError: if ``geo_data`` has no features array
    """
    features = geo_data.get("features") if isinstance(geo_data, Mapping) else None
    if not isinstance(features, list):
        raise MalformedInputError(
            "GeoJSON data has no 'features' array", data_type=type(geo_data).__name__
        )

    ids = []
    skipped = 0
    for feature in features:
        properties = feature.get("properties") if isinstance(feature, Mapping) else None
        if not isinstance(properties, Mapping):
            properties = {}
        precinct_id = precinct_id_from_properties(properties)
        if precinct_id is None and isinstance(feature, Mapping):
            precinct_id = normalize_precinct(feature.get("id"))
        if precinct_id is None:
            skipped += 1
        else:
            ids.append(precinct_id)

    if skipped:
        logger.warning(f"  ⚠️ {skipped} features have no precinct identifier")

    return _unique_sorted(ids)


def load_boundary_precinct_ids(path: Union[str, Path]) -> List[str]:
    """
    Load a boundary file with geopandas and return its precinct ids.

    Raises:
        MalformedInputError: if no precinct identifier column is present
    """
    path = Path(path)
    logger.info(f"🗺️ Loading boundaries from {path}")
    gdf = gpd.read_file(path)
    logger.info(f"  ✅ Loaded {len(gdf):,} features")

    for column in PRECINCT_PROPERTY_KEYS:
        if column in gdf.columns:
            logger.debug(f"  📍 Using precinct column: {column}")
            ids = [pid for pid in gdf[column].map(normalize_precinct) if pid is not None]
            return _unique_sorted(ids)

    raise MalformedInputError(
        f"No precinct identifier column in {path.name}",
        data_type="boundaries",
        columns=[str(c) for c in gdf.columns if c != "geometry"],
    )


@dataclass(frozen=True)
class BoundaryMatch:
    """Precinct ids present in both sources, or in only one of them."""

    matched: Tuple[str, ...]
    voter_only: Tuple[str, ...]
    boundary_only: Tuple[str, ...]

    @property
    def coverage(self) -> float:
        """Share of voter precincts that have a boundary."""
        total = len(self.matched) + len(self.voter_only)
        return len(self.matched) / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": list(self.matched),
            "voter_only": list(self.voter_only),
            "boundary_only": list(self.boundary_only),
            "coverage": self.coverage,
        }


def compare_precincts(aggregate: GlobalAggregate, boundary_ids: Iterable[str]) -> BoundaryMatch:
    voter_ids = set(aggregate.precincts)
    boundary_set = set(boundary_ids)

    match = BoundaryMatch(
        matched=tuple(_unique_sorted(voter_ids & boundary_set)),
        voter_only=tuple(_unique_sorted(voter_ids - boundary_set)),
        boundary_only=tuple(_unique_sorted(boundary_set - voter_ids)),
    )

    if match.voter_only:
        logger.warning(f"⚠️ {len(match.voter_only)} voter precincts have no boundary")
    logger.info(f"📍 Boundary coverage: {match.coverage:.1%} of voter precincts")
    return match
