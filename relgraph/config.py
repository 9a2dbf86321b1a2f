"""Configuration loader for the relgraph layout and interaction engine."""
from __future__ import annotations

import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from typing_extensions import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

NODE_RADIUS = 4.0
GROUP_NODE_RADIUS_FACTOR = 1.2
NODE_HIT_RADIUS_FACTOR = 4.0
RENDER_THROTTLE_FACTOR = 2
TAP_THRESHOLD = 10.0
TAP_TIME_THRESHOLD = 200.0
EDGE_TOUCH_WIDTH = 20.0
DIMMED_OPACITY = 0.2
CANVAS_PADDING = 40.0
MIN_SCALE = 0.5
MAX_SCALE = 3.0
INITIAL_SCALE = 1.0


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class DragReleasePolicy(str, Enum):
    """What happens to a dragged node once the pointer is lifted."""

    RELEASE = "release"
    PIN = "pin"


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class CanvasConfig(_FrozenModel):
    """Model-space canvas dimensions used for centring and containment."""

    width: float = Field(400.0, gt=0)
    height: float = Field(600.0, gt=0)
    padding: float = Field(CANVAS_PADDING, ge=0)

    @model_validator(mode="after")
    def _validate_padding(self) -> "CanvasConfig":
        if self.padding * 2 >= min(self.width, self.height):
            msg = "canvas.padding must leave a non-empty interior"
            raise ValueError(msg)
        return self

    @property
    def center(self) -> Tuple[float, float]:
        """Return the canvas centre in model space."""

        return (self.width / 2.0, self.height / 2.0)


class SimulationConfig(_FrozenModel):
    """Force coefficients and integration parameters."""

    repulsion_strength: float = Field(100.0, ge=0)
    min_distance: float = Field(1.0, gt=0)
    link_distance: float = Field(100.0, gt=0)
    link_stiffness: float = Field(0.3, ge=0)
    gravity: float = Field(0.05, ge=0)
    boundary_stiffness: float = Field(0.5, ge=0)
    damping: float = Field(0.9, gt=0.0, lt=1.0)
    time_step: float = Field(1.0, gt=0)
    max_velocity: float = Field(50.0, gt=0)
    energy_epsilon: float = Field(0.05, gt=0)
    jitter: float = Field(1e-3, gt=0)
    seed_radius: float = Field(30.0, ge=0)
    random_seed: int = 7
    repulsion: Literal["pairwise", "grid"] = Field("pairwise")
    grid_cell_size: float = Field(150.0, gt=0)


class ViewportConfig(_FrozenModel):
    """Pan/zoom bounds and reset animation parameters."""

    min_scale: float = Field(MIN_SCALE, gt=0)
    max_scale: float = Field(MAX_SCALE, gt=0)
    initial_scale: float = Field(INITIAL_SCALE, gt=0)
    spring_stiffness: float = Field(170.0, gt=0)
    spring_damping: float = Field(26.0, gt=0)
    rest_threshold: float = Field(1e-3, gt=0)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ViewportConfig":
        if self.min_scale > self.max_scale:
            msg = "viewport.min_scale cannot exceed viewport.max_scale"
            raise ValueError(msg)
        if not self.min_scale <= self.initial_scale <= self.max_scale:
            msg = "viewport.initial_scale must lie within [min_scale, max_scale]"
            raise ValueError(msg)
        return self


class InteractionConfig(_FrozenModel):
    """Gesture thresholds and touch target sizes."""

    tap_threshold: float = Field(TAP_THRESHOLD, gt=0)
    tap_time_threshold_ms: float = Field(TAP_TIME_THRESHOLD, gt=0)
    node_radius: float = Field(NODE_RADIUS, gt=0)
    group_radius_factor: float = Field(GROUP_NODE_RADIUS_FACTOR, gt=0)
    hit_radius_factor: float = Field(NODE_HIT_RADIUS_FACTOR, ge=1.0)
    edge_touch_width: float = Field(EDGE_TOUCH_WIDTH, gt=0)
    drag_release_policy: DragReleasePolicy = DragReleasePolicy.RELEASE


class RenderConfig(_FrozenModel):
    """Paint cadence and selection styling."""

    throttle_factor: int = Field(RENDER_THROTTLE_FACTOR, ge=1)
    dimmed_opacity: float = Field(DIMMED_OPACITY, ge=0.0, le=1.0)


class EngineConfig(_FrozenModel):
    """Top-level engine configuration composed from config.yaml."""

    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return REPO_ROOT / "config.yaml"


_ENV_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "RELGRAPH_CANVAS_WIDTH": ("canvas", "width", float),
    "RELGRAPH_CANVAS_HEIGHT": ("canvas", "height", float),
    "RELGRAPH_THROTTLE_FACTOR": ("render", "throttle_factor", int),
    "RELGRAPH_DRAG_RELEASE_POLICY": ("interaction", "drag_release_policy", str.lower),
    "RELGRAPH_REPULSION": ("simulation", "repulsion", str.lower),
}


def _determine_env_file_path() -> Optional[Path]:
    """Return the path to the environment file if one should be loaded."""

    override = os.getenv("RELGRAPH_ENV_FILE")
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate
        LOGGER.warning("Configured environment file override does not exist: %s", candidate)
        return None
    if DEFAULT_ENV_FILE.exists():
        return DEFAULT_ENV_FILE
    return None


def _load_env_file(path: Path) -> None:
    """Populate ``os.environ`` with values read from a ``.env`` file."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.lower().startswith("export "):
                    line = line[7:].lstrip()
                if "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                key = key.strip()
                if not key:
                    continue
                existing_value = os.environ.get(key)
                if existing_value is not None and existing_value.strip() != "":
                    continue
                value = raw_value.strip()
                if value and value[0] in {'"', "'"} and value[-1] == value[0]:
                    value = value[1:-1]
                os.environ[key] = value
    except OSError:
        LOGGER.warning("Unable to read environment file at %s", path)


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``RELGRAPH_*`` environment overrides into the raw configuration mapping.

    Args:
        raw_content: Parsed YAML configuration prior to Pydantic validation.

    Returns:
        Dict[str, Any]: Configuration mapping with environment overrides applied.

    Raises:
        ConfigError: If an override cannot be converted to the expected type.
    """

    env_file_path = _determine_env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)

    for env_key, (section, field, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_key)
        if raw is None or not raw.strip():
            continue
        try:
            value = convert(raw.strip())
        except ValueError as exc:
            LOGGER.error("Invalid value for %s: %r", env_key, raw)
            raise ConfigError(f"Invalid environment override {env_key}") from exc
        raw_content.setdefault(section, {})[field] = value
        LOGGER.info("Configuration %s.%s overridden from environment", section, field)
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load engine configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        EngineConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or EngineConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return EngineConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc
