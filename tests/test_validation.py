from aggregation import validate_geo_data, validate_voter_data


def test_valid_voter_array(small_voters):
    report = validate_voter_data(small_voters)

    assert report.is_valid is True
    assert report.issues == []
    assert report.facts["voters_length"] == 6
    assert report.facts["sample_keys"] == ["Precinct", "Age", "Race", "Party", "Voted"]


def test_voters_object_with_missing_fields():
    report = validate_voter_data({"voters": [{"precinct": "1", "age": 40}]})

    assert report.is_valid is True
    assert report.facts["has_voters_array"] is True
    assert report.issues == ["Race field is missing", "Party field is missing"]
    assert len(report.recommendations) == 2


def test_missing_precinct_is_invalid():
    report = validate_voter_data([{"Race": "White", "Party": "D"}])

    assert report.is_valid is False
    assert "Precinct field is missing" in report.issues


def test_missing_and_empty_voter_data():
    assert validate_voter_data(None).issues == ["Voter data is missing"]
    assert validate_voter_data([]).issues == ["Voter data array is empty"]
    assert validate_voter_data({"voters": []}).is_valid is False
    assert validate_voter_data("text").issues == ["Invalid voter data format"]
    assert validate_voter_data({"rows": []}).issues == ["Invalid voter data format"]


def test_valid_geojson():
    report = validate_geo_data(
        {"type": "FeatureCollection", "features": [{"properties": {"PRECINCT": "4101"}}]}
    )

    assert report.is_valid is True
    assert report.facts["features_length"] == 1


def test_geojson_problems():
    assert validate_geo_data(None).issues == ["GeoJSON data is missing"]
    assert validate_geo_data({"features": []}).issues == ["GeoJSON type is missing"]
    assert validate_geo_data({"type": "FeatureCollection"}).issues == [
        "GeoJSON features array is missing"
    ]
    assert validate_geo_data({"type": "FeatureCollection", "features": []}).issues == [
        "GeoJSON features array is empty"
    ]
    assert validate_geo_data({"type": "FeatureCollection", "features": [{}]}).issues == [
        "GeoJSON feature is missing properties"
    ]


def test_geojson_without_precinct_identifier():
    report = validate_geo_data(
        {"type": "FeatureCollection", "features": [{"properties": {"name": "North"}}]}
    )

    assert report.is_valid is False
    assert report.issues == ["GeoJSON features are missing precinct identifiers"]


def test_single_feature_is_not_a_collection():
    report = validate_geo_data({"type": "Feature", "features": [{"properties": {"id": 1}}]})

    assert report.is_valid is False
    assert report.facts["has_precinct"] is True


def test_report_to_dict():
    payload = validate_voter_data([{"Precinct": "1"}]).to_dict()

    assert payload["is_valid"] is True
    assert payload["has_race"] is False
    assert payload["voters_length"] == 1
