import json

import pytest

from aggregation import aggregate
from aggregation.boundaries import (
    compare_precincts,
    extract_precinct_ids,
    load_boundary_precinct_ids,
    precinct_id_from_properties,
)
from aggregation.exceptions import MalformedInputError


def _feature(properties, feature_id=None):
    feature = {
        "type": "Feature",
        "properties": properties,
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]],
        },
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def test_property_key_priority():
    assert precinct_id_from_properties({"id": "1", "Precinct": "2"}) == "1"
    assert precinct_id_from_properties({"PRECINCT": 4101}) == "4101"
    assert precinct_id_from_properties({"districtId": "D7"}) == "D7"
    assert precinct_id_from_properties({"Precinct": "9"}) == "9"
    assert precinct_id_from_properties({"name": "x"}) is None


def test_extract_precinct_ids():
    geo = {
        "type": "FeatureCollection",
        "features": [
            _feature({"precinct": "10"}),
            _feature({"precinct": "9"}),
            _feature({"precinct": "10"}),
            _feature({}, feature_id=11),
            _feature({"name": "no id"}),
        ],
    }

    assert extract_precinct_ids(geo) == ["9", "10", "11"]


def test_extract_skips_non_mapping_properties():
    geo = {
        "type": "FeatureCollection",
        "features": [
            {"properties": ["x"], "id": "7"},
            {"properties": "North", "id": None},
            _feature({"precinct": "3"}),
        ],
    }

    assert extract_precinct_ids(geo) == ["3", "7"]


def test_extract_requires_features():
    with pytest.raises(MalformedInputError):
        extract_precinct_ids({"type": "FeatureCollection"})


def test_compare_precincts(small_voters, config):
    result = aggregate(small_voters, config)
    match = compare_precincts(result, ["101", "102", "200"])

    assert match.matched == ("101", "102")
    assert match.voter_only == ("103",)
    assert match.boundary_only == ("200",)
    assert match.coverage == pytest.approx(2 / 3)


def test_load_boundary_file(tmp_path):
    path = tmp_path / "precincts.geojson"
    path.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [_feature({"Precinct": "102"}), _feature({"Precinct": "101"})],
            }
        )
    )

    assert load_boundary_precinct_ids(path) == ["101", "102"]


def test_load_boundary_file_without_id_column(tmp_path):
    path = tmp_path / "areas.geojson"
    path.write_text(
        json.dumps({"type": "FeatureCollection", "features": [_feature({"name": "North"})]})
    )

    with pytest.raises(MalformedInputError):
        load_boundary_precinct_ids(path)
