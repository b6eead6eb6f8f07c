import pytest
import yaml

from aggregation.exceptions import ConfigurationError
from ops import Config
from ops.config_loader import CONFIG_ENV_VAR, PACKAGE_CONFIG


def test_defaults():
    config = Config.from_defaults()

    assert config.config_path is None
    assert config.get_processing_setting("chunk_size") == 5000
    assert config.get_processing_setting("max_workers") == 4
    assert config.get_processing_setting("timeout_seconds") is None
    assert config.get_analysis_setting("density_scale") == 100
    assert config.get_analysis_setting("historical_turnout") == {2008: 62, 2012: 58, 2016: 65, 2020: 67}


def test_get_with_missing_key_returns_default():
    config = Config.from_defaults()

    assert config.get("processing.unknown", "fallback") == "fallback"
    assert config.get("nothing.here") is None


def test_overrides_apply_on_top_of_defaults():
    config = Config.from_defaults(overrides={"processing.chunk_size": 250})

    assert config.get("processing.chunk_size") == 250
    assert config.get("processing.max_workers") == 4


def test_yaml_file_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"processing": {"chunk_size": 1000}, "analysis": {"density_scale": 50}}))

    config = Config(path)

    assert config.config_path == path.resolve()
    assert config.get("processing.chunk_size") == 1000
    assert config.get("analysis.density_scale") == 50
    assert config.get("processing.max_workers") == 4


def test_empty_yaml_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert Config(path).get("processing.chunk_size") == 5000


def test_environment_variable_lookup(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({"processing": {"max_workers": 2}}))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert Config().get("processing.max_workers") == 2


def test_falls_back_to_packaged_config(tmp_path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)

    config = Config()

    assert config.config_path == PACKAGE_CONFIG.resolve()
    assert config.get("processing.chunk_size") == 5000


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "overrides",
    [
        {"processing.chunk_size": 0},
        {"processing.chunk_size": "big"},
        {"processing.max_workers": -1},
        {"processing.timeout_seconds": 0},
        {"analysis.density_scale": 0},
        {"analysis.historical_turnout": [62, 58]},
    ],
)
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ConfigurationError):
        Config.from_defaults(overrides=overrides)


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError):
        Config(path)
