import json
import sys

import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from ops.run_pipeline import cli


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    # The CLI binds its sink to the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def voters_file(tmp_path, small_voters):
    path = tmp_path / "voters.json"
    path.write_text(json.dumps({"voters": small_voters}))
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"analysis": {"current_year": 2024}}))
    return path


def test_aggregate_json_to_file(tmp_path, voters_file, config_file):
    output = tmp_path / "out" / "dashboard.json"

    result = CliRunner().invoke(
        cli, ["--config", str(config_file), "aggregate", str(voters_file), "--output", str(output)]
    )

    assert result.exit_code == 0
    payload = json.loads(output.read_text())
    assert payload["record_count"] == 6
    assert payload["turnout_trends"]["years"][-1] == "2024"
    assert payload["census_data"] is None


def test_aggregate_csv_with_census(tmp_path, config_file, census_payload):
    voters = tmp_path / "voters.csv"
    voters.write_text(
        "Precinct,Age,Race,Party,Voted\n"
        "101,34,White,D,1\n"
        "101,52,Black,R,0\n"
        "102,29,Asian,D,1\n"
        "102,,Hispanic,,0\n"
    )
    census = tmp_path / "census.json"
    census.write_text(json.dumps(census_payload))
    output = tmp_path / "dashboard.json"

    result = CliRunner().invoke(
        cli,
        [
            "--config",
            str(config_file),
            "aggregate",
            str(voters),
            "--census",
            str(census),
            "--chunk-size",
            "2",
            "--workers",
            "2",
            "-o",
            str(output),
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(output.read_text())
    assert payload["precinct_demographics"]["registered_voters"] == {"101": 2, "102": 2}
    assert payload["party_affiliation"] == {"Democratic": 2, "Republican": 1, "Unknown": 1}
    assert payload["census_data"]["total_unregistered"] == 270000 - 4
    assert payload["summary"]["turnout_percentage"] == 50.0


def test_aggregate_malformed_voters_exits_with_error(tmp_path, config_file):
    voters = tmp_path / "voters.json"
    voters.write_text(json.dumps({"rows": []}))

    result = CliRunner().invoke(cli, ["--config", str(config_file), "aggregate", str(voters)])

    assert result.exit_code == 1


def test_invalid_config_exits_with_error(tmp_path, voters_file):
    bad_config = tmp_path / "bad.yaml"
    bad_config.write_text(yaml.safe_dump({"processing": {"chunk_size": 0}}))

    result = CliRunner().invoke(cli, ["--config", str(bad_config), "aggregate", str(voters_file)])

    assert result.exit_code == 1


def test_validate_valid_file(voters_file, config_file):
    result = CliRunner().invoke(cli, ["--config", str(config_file), "validate", str(voters_file)])

    assert result.exit_code == 0


def test_validate_invalid_boundaries(tmp_path, voters_file, config_file):
    boundaries = tmp_path / "precincts.geojson"
    boundaries.write_text(json.dumps({"type": "FeatureCollection", "features": []}))

    result = CliRunner().invoke(
        cli,
        ["--config", str(config_file), "validate", str(voters_file), "--boundaries", str(boundaries)],
    )

    assert result.exit_code == 1
