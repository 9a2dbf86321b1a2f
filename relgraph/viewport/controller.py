"""Pan/zoom transform between model space and screen space."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from relgraph.config import ViewportConfig

LOGGER = logging.getLogger(__name__)

_MAX_SUBSTEP = 1.0 / 240.0
_MAX_ADVANCE = 1.0


@dataclass(frozen=True)
class ViewportState:
    """Snapshot of the viewport transform."""

    scale: float
    translate_x: float
    translate_y: float
    focal_x: float = 0.0
    focal_y: float = 0.0


class _Spring:
    """Damped spring driving one scalar toward a target."""

    def __init__(self, value: float, target: float, stiffness: float, damping: float) -> None:
        self.value = value
        self.target = target
        self.velocity = 0.0
        self._stiffness = stiffness
        self._damping = damping

    def step(self, dt: float) -> None:
        acceleration = -self._stiffness * (self.value - self.target) - self._damping * self.velocity
        self.velocity += acceleration * dt
        self.value += self.velocity * dt

    def at_rest(self, threshold: float) -> bool:
        return abs(self.value - self.target) < threshold and abs(self.velocity) < threshold


@dataclass
class _PinchAnchor:
    scale: float
    translate_x: float
    translate_y: float
    focal_x: float
    focal_y: float


class ViewportController:
    """Owns the viewport state; the only writer of scale and translation.

    The transform is ``screen = model * scale + translate``; pointer
    coordinates reported relative to the window are first shifted by the
    canvas offset.
    """

    def __init__(self, config: Optional[ViewportConfig] = None) -> None:
        self._config = config or ViewportConfig()
        self._scale = self._config.initial_scale
        self._translate_x = 0.0
        self._translate_y = 0.0
        self._focal_x = 0.0
        self._focal_y = 0.0
        self._offset_x = 0.0
        self._offset_y = 0.0
        self._animation: Optional[Tuple[_Spring, _Spring, _Spring]] = None
        self._pan_anchor: Optional[Tuple[float, float]] = None
        self._pinch_anchor: Optional[_PinchAnchor] = None

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def translate(self) -> Tuple[float, float]:
        return (self._translate_x, self._translate_y)

    @property
    def focal(self) -> Tuple[float, float]:
        return (self._focal_x, self._focal_y)

    @property
    def min_scale(self) -> float:
        return self._config.min_scale

    @property
    def max_scale(self) -> float:
        return self._config.max_scale

    @property
    def animating(self) -> bool:
        return self._animation is not None

    def state(self) -> ViewportState:
        return ViewportState(
            scale=self._scale,
            translate_x=self._translate_x,
            translate_y=self._translate_y,
            focal_x=self._focal_x,
            focal_y=self._focal_y,
        )

    def clamp_scale(self, value: float) -> float:
        if value != value:
            return self._scale
        return max(self._config.min_scale, min(self._config.max_scale, float(value)))

    def set_canvas_offset(self, x: float, y: float) -> None:
        """Record where the canvas sits inside the window, in screen pixels."""

        self._offset_x = float(x)
        self._offset_y = float(y)

    def set_focal(self, x: float, y: float) -> None:
        self._focal_x = float(x)
        self._focal_y = float(y)

    def set_scale(self, new_scale: float, focal: Optional[Tuple[float, float]] = None) -> float:
        """Clamp ``new_scale`` into range and apply it around the focal point.

        The model point under the focal point stays under it after scaling.
        Out-of-range values are clamped silently.

        Returns:
            float: The scale actually applied.
        """

        if focal is not None:
            self.set_focal(*focal)
        clamped = self.clamp_scale(new_scale)
        model_x = (self._focal_x - self._translate_x) / self._scale
        model_y = (self._focal_y - self._translate_y) / self._scale
        self._scale = clamped
        self._translate_x = self._focal_x - model_x * clamped
        self._translate_y = self._focal_y - model_y * clamped
        return clamped

    def set_translate(self, x: float, y: float) -> None:
        self._translate_x = float(x)
        self._translate_y = float(y)

    def to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self._scale + self._translate_x, y * self._scale + self._translate_y)

    def to_model(self, x: float, y: float) -> Tuple[float, float]:
        return ((x - self._translate_x) / self._scale, (y - self._translate_y) / self._scale)

    def to_local(self, absolute_x: float, absolute_y: float) -> Tuple[float, float]:
        """Convert window coordinates into canvas-local screen coordinates."""

        return (absolute_x - self._offset_x, absolute_y - self._offset_y)

    def absolute_to_model(self, absolute_x: float, absolute_y: float) -> Tuple[float, float]:
        return self.to_model(*self.to_local(absolute_x, absolute_y))

    # ========== Gestures ==========

    def begin_pan(self) -> None:
        self.cancel_animation()
        self._pan_anchor = (self._translate_x, self._translate_y)

    def update_pan(self, dx: float, dy: float) -> None:
        """Translate by the cumulative pointer offset since :meth:`begin_pan`."""

        anchor = self._pan_anchor
        if anchor is None:
            self.begin_pan()
            anchor = (self._translate_x, self._translate_y)
        self.set_translate(anchor[0] + dx, anchor[1] + dy)

    def end_pan(self) -> None:
        self._pan_anchor = None

    def begin_pinch(self, focal_x: float, focal_y: float) -> None:
        """Anchor a pinch at canvas-local ``(focal_x, focal_y)``."""

        self.cancel_animation()
        self._pan_anchor = None
        self.set_focal(focal_x, focal_y)
        self._pinch_anchor = _PinchAnchor(
            scale=self._scale,
            translate_x=self._translate_x,
            translate_y=self._translate_y,
            focal_x=float(focal_x),
            focal_y=float(focal_y),
        )

    def update_pinch(self, factor: float) -> float:
        """Apply a pinch ``factor`` relative to the scale at pinch start.

        The scale is computed absolutely from the anchor so jitter in the
        reported factor never accumulates.
        """

        anchor = self._pinch_anchor
        if anchor is None:
            return self.set_scale(self._scale * factor)
        new_scale = self.clamp_scale(anchor.scale * factor)
        model_x = (anchor.focal_x - anchor.translate_x) / anchor.scale
        model_y = (anchor.focal_y - anchor.translate_y) / anchor.scale
        self._scale = new_scale
        self._translate_x = anchor.focal_x - model_x * new_scale
        self._translate_y = anchor.focal_y - model_y * new_scale
        return new_scale

    def end_pinch(self) -> None:
        self._pinch_anchor = None

    # ========== Reset animation ==========

    def reset_zoom(self) -> None:
        """Start a spring animation back to the initial scale and zero translation."""

        stiffness = self._config.spring_stiffness
        damping = self._config.spring_damping
        self._animation = (
            _Spring(self._scale, self._config.initial_scale, stiffness, damping),
            _Spring(self._translate_x, 0.0, stiffness, damping),
            _Spring(self._translate_y, 0.0, stiffness, damping),
        )
        LOGGER.debug("Viewport reset animation started from scale %.3f", self._scale)

    def cancel_animation(self) -> bool:
        """Stop an in-flight reset, leaving the transform at its current frame."""

        if self._animation is None:
            return False
        self._animation = None
        LOGGER.debug("Viewport animation cancelled at scale %.3f", self._scale)
        return True

    def advance(self, dt: float) -> bool:
        """Advance the reset animation by ``dt`` seconds.

        Steps longer than one second (including infinity) are capped; NaN and
        non-positive steps leave the animation untouched.

        Returns:
            bool: ``True`` while the animation is still running.
        """

        if self._animation is None or not dt > 0:
            return self._animation is not None
        springs = self._animation
        remaining = min(float(dt), _MAX_ADVANCE)
        while remaining > 0:
            step = min(remaining, _MAX_SUBSTEP)
            for spring in springs:
                spring.step(step)
            remaining -= step
        scale_spring, x_spring, y_spring = springs
        self._scale = self.clamp_scale(scale_spring.value)
        self._translate_x = x_spring.value
        self._translate_y = y_spring.value
        if all(spring.at_rest(self._config.rest_threshold) for spring in springs):
            self._scale = scale_spring.target
            self._translate_x = x_spring.target
            self._translate_y = y_spring.target
            self._animation = None
            return False
        return True
