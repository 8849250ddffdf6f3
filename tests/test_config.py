from pathlib import Path

import pytest

from vofuse.config import default_config, load_config, validate_config


REPO_ROOT = Path(__file__).resolve().parents[1]


def test_defaults_without_file():
    config = load_config(None)
    assert config['FILTER_WINDOW'] == 10
    assert config['RECOVERY_BUFFER'] == 20
    assert config['ALPHA_BLENDING'] == 0.75
    assert config['ALPHA_WEIGHT'] == 0.7
    assert config['REDUCTION_FACTOR'] == 0.01
    assert config['POINT_CLOUD_FRAME_ID'] == "fuser_cloud"


def test_shipped_default_yaml_matches_module_defaults():
    config = load_config(str(REPO_ROOT / "configs" / "config_default.yaml"))
    assert config == default_config()


def test_yaml_sections_override_defaults(tmp_path):
    path = tmp_path / "fuser.yaml"
    path.write_text(
        "fusion:\n"
        "  filter_window: 5\n"
        "  alpha_blending: 0.5\n"
        "rotation_median:\n"
        "  max_iterations: 20\n"
        "point_cloud:\n"
        "  radius: 2.5\n"
        "output:\n"
        "  verbose: true\n"
    )
    config = load_config(str(path))
    assert config['FILTER_WINDOW'] == 5
    assert config['ALPHA_BLENDING'] == 0.5
    assert config['RECOVERY_BUFFER'] == 20
    assert config['MEDIAN_MAX_ITERATIONS'] == 20
    assert config['POINT_CLOUD_RADIUS'] == 2.5
    assert config['VERBOSE_DEBUG'] is True


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == default_config()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


@pytest.mark.parametrize("key,value", [
    ('FILTER_WINDOW', 1),
    ('FILTER_WINDOW', 2.5),
    ('RECOVERY_BUFFER', 0),
    ('ALPHA_BLENDING', 1.5),
    ('ALPHA_WEIGHT', -0.1),
    ('REDUCTION_FACTOR', -1.0),
    ('POINT_CLOUD_RADIUS', 0.0),
])
def test_out_of_range_values_rejected(key, value):
    config = default_config()
    config[key] = value
    with pytest.raises(ValueError):
        validate_config(config)
