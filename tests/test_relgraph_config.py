"""Tests for loading and validating the engine configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from relgraph.config import (
    ConfigError,
    DragReleasePolicy,
    EngineConfig,
    InteractionConfig,
    ViewportConfig,
    load_config,
)

_OVERRIDE_KEYS = (
    "RELGRAPH_CANVAS_WIDTH",
    "RELGRAPH_CANVAS_HEIGHT",
    "RELGRAPH_THROTTLE_FACTOR",
    "RELGRAPH_DRAG_RELEASE_POLICY",
    "RELGRAPH_REPULSION",
    "RELGRAPH_ENV_FILE",
)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    for key in _OVERRIDE_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("relgraph.config.DEFAULT_ENV_FILE", Path("/nonexistent/.env"))
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def _write_config(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_repository_config_matches_defaults() -> None:
    config = load_config()
    assert isinstance(config, EngineConfig)
    assert config.canvas.width == 400.0
    assert config.canvas.padding == 40.0
    assert config.simulation.repulsion == "pairwise"
    assert config.viewport.min_scale == 0.5
    assert config.viewport.max_scale == 3.0
    assert config.interaction.tap_threshold == 10.0
    assert config.interaction.tap_time_threshold_ms == 200.0
    assert config.interaction.hit_radius_factor == 4.0
    assert config.interaction.edge_touch_width == 20.0
    assert config.interaction.drag_release_policy is DragReleasePolicy.RELEASE
    assert config.render.throttle_factor == 2
    assert config.render.dimmed_opacity == pytest.approx(0.2)


def test_engine_config_defaults_without_file() -> None:
    config = EngineConfig()
    assert config.interaction.node_radius == 4.0
    assert config.interaction.group_radius_factor == pytest.approx(1.2)
    assert config.canvas.center == (200.0, 300.0)


def test_partial_yaml_keeps_remaining_defaults(tmp_path: Path) -> None:
    path = _write_config(tmp_path, {"render": {"throttle_factor": 3}})
    config = load_config(path)
    assert config.render.throttle_factor == 3
    assert config.simulation.damping == pytest.approx(0.9)


def test_empty_yaml_is_accepted(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == EngineConfig()


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("canvas: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_mapping_root_raises_config_error(tmp_path: Path) -> None:
    path = _write_config(tmp_path, ["not", "a", "mapping"])
    with pytest.raises(ConfigError):
        load_config(path)


def test_validation_failure_raises_config_error(tmp_path: Path) -> None:
    path = _write_config(tmp_path, {"viewport": {"min_scale": 2.0, "max_scale": 1.0, "initial_scale": 1.5}})
    with pytest.raises(ConfigError):
        load_config(path)


def test_environment_overrides_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_config(tmp_path, {"canvas": {"width": 300}})
    monkeypatch.setenv("RELGRAPH_CANVAS_WIDTH", "640")
    monkeypatch.setenv("RELGRAPH_DRAG_RELEASE_POLICY", "PIN")
    monkeypatch.setenv("RELGRAPH_REPULSION", "grid")
    config = load_config(path)
    assert config.canvas.width == 640.0
    assert config.interaction.drag_release_policy is DragReleasePolicy.PIN
    assert config.simulation.repulsion == "grid"


def test_invalid_environment_override_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_config(tmp_path, {})
    monkeypatch.setenv("RELGRAPH_THROTTLE_FACTOR", "often")
    with pytest.raises(ConfigError):
        load_config(path)


def test_env_file_populates_missing_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "engine.env"
    env_file.write_text("# overrides\nexport RELGRAPH_THROTTLE_FACTOR='4'\n", encoding="utf-8")
    monkeypatch.setenv("RELGRAPH_ENV_FILE", str(env_file))
    path = _write_config(tmp_path, {})
    try:
        config = load_config(path)
    finally:
        os.environ.pop("RELGRAPH_THROTTLE_FACTOR", None)
    assert config.render.throttle_factor == 4


def test_config_sections_are_frozen() -> None:
    config = InteractionConfig()
    with pytest.raises(ValidationError):
        config.tap_threshold = 5.0  # type: ignore[misc]


def test_viewport_initial_scale_must_be_in_range() -> None:
    with pytest.raises(ValueError):
        ViewportConfig(min_scale=0.5, max_scale=3.0, initial_scale=4.0)
