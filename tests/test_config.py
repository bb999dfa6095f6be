"""Tests for configuration loading and validation."""

import pytest

from terrain_displacement.utils.config import AppConfig, load_config


def test_defaults_without_file():
    """AppConfig defaults match the documented command line defaults."""
    cfg = AppConfig()

    assert cfg.grid.cell_size == 100.0
    assert cfg.registration.method == "cpd"
    assert cfg.registration.min_points == 250
    assert cfg.registration.debug is False
    assert cfg.transform == []
    assert cfg.output.path == "vector.tif"
    assert cfg.output.crs is None


def test_default_yaml_matches_model_defaults():
    """The shipped config/default.yaml loads and agrees with the model."""
    cfg = load_config(None)

    assert cfg.grid.cell_size == 100.0
    assert cfg.registration.min_points == 250
    assert cfg.registration.cpd.max_iterations == 100
    assert cfg.registration.icp.max_correspondence_distance == 5.0
    assert cfg.preprocessing.ground_only is False
    assert cfg.logging.level == "INFO"


def test_partial_yaml_keeps_other_defaults(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "grid:\n"
        "  cell_size: 25\n"
        "registration:\n"
        "  method: icp\n"
        "  min_points: 50\n"
        "transform:\n"
        "  - '1 0 0 0 0 1 0 0 0 0 1 0 0 0 0 1'\n"
    )
    cfg = load_config(path)

    assert cfg.grid.cell_size == 25.0
    assert cfg.registration.method == "icp"
    assert cfg.registration.min_points == 50
    assert cfg.registration.cpd.w == 0.0
    assert len(cfg.transform) == 1
    assert cfg.output.path == "vector.tif"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == AppConfig()


@pytest.mark.parametrize(
    "body",
    [
        "grid:\n  cell_size: 0\n",
        "registration:\n  min_points: -1\n",
        "registration:\n  method: ndt\n",
        "registration:\n  cpd:\n    w: 1.0\n",
    ],
)
def test_invalid_values_rejected(tmp_path, body):
    path = tmp_path / "bad.yaml"
    path.write_text(body)
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_explicit_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize("body", ["grid: [unclosed\n", "registration:\n  method: cpd\n   min_points: 5\n"])
def test_malformed_yaml_rejected(tmp_path, body):
    path = tmp_path / "broken.yaml"
    path.write_text(body)
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)
