"""Tests for the viewport pan/zoom controller."""

from __future__ import annotations

import pytest

from relgraph.config import ViewportConfig
from relgraph.viewport.controller import ViewportController


def _settle(viewport: ViewportController, frames: int = 600) -> int:
    for frame in range(frames):
        if not viewport.advance(1.0 / 60.0):
            return frame
    return frames


def test_scale_is_clamped_to_bounds() -> None:
    viewport = ViewportController()
    assert viewport.set_scale(10.0) == 3.0
    assert viewport.scale == 3.0
    assert viewport.set_scale(0.01) == 0.5
    assert viewport.scale == 0.5


def test_nan_scale_keeps_current_scale() -> None:
    viewport = ViewportController()
    viewport.set_scale(2.0)
    assert viewport.set_scale(float("nan")) == 2.0


def test_round_trip_between_model_and_screen() -> None:
    viewport = ViewportController()
    viewport.set_scale(2.0)
    viewport.set_translate(15.0, -5.0)
    assert viewport.to_screen(10.0, 20.0) == (35.0, 35.0)
    assert viewport.to_model(35.0, 35.0) == pytest.approx((10.0, 20.0))


def test_scale_keeps_focal_point_fixed() -> None:
    viewport = ViewportController()
    viewport.set_translate(30.0, 40.0)
    focal = (120.0, 80.0)
    before = viewport.to_model(*focal)
    viewport.set_scale(2.5, focal=focal)
    assert viewport.to_model(*focal) == pytest.approx(before)
    assert viewport.focal == focal


def test_canvas_offset_applies_to_absolute_coordinates() -> None:
    viewport = ViewportController()
    viewport.set_canvas_offset(0.0, 100.0)
    viewport.set_scale(2.0)
    assert viewport.to_local(50.0, 150.0) == (50.0, 50.0)
    assert viewport.absolute_to_model(50.0, 150.0) == pytest.approx((25.0, 25.0))


def test_pinch_is_absolute_from_anchor() -> None:
    viewport = ViewportController()
    viewport.begin_pinch(100.0, 100.0)
    anchor = viewport.to_model(100.0, 100.0)
    viewport.update_pinch(1.5)
    viewport.update_pinch(1.1)
    viewport.update_pinch(2.0)
    assert viewport.scale == pytest.approx(2.0)
    assert viewport.to_model(100.0, 100.0) == pytest.approx(anchor)
    assert viewport.update_pinch(50.0) == 3.0
    viewport.end_pinch()


def test_pan_uses_cumulative_offset() -> None:
    viewport = ViewportController()
    viewport.set_translate(10.0, 10.0)
    viewport.begin_pan()
    viewport.update_pan(5.0, 5.0)
    viewport.update_pan(20.0, -10.0)
    viewport.end_pan()
    assert viewport.translate == (30.0, 0.0)


def test_reset_zoom_springs_back_to_identity() -> None:
    viewport = ViewportController()
    viewport.set_scale(2.5)
    viewport.set_translate(-80.0, 40.0)
    viewport.reset_zoom()
    assert viewport.animating
    frames = _settle(viewport)
    assert frames < 600
    assert not viewport.animating
    assert viewport.scale == 1.0
    assert viewport.translate == (0.0, 0.0)


def test_reset_zoom_scale_stays_within_bounds_while_animating() -> None:
    viewport = ViewportController(ViewportConfig(spring_damping=2.0))
    viewport.set_scale(3.0)
    viewport.reset_zoom()
    for _ in range(120):
        viewport.advance(1.0 / 60.0)
        assert viewport.min_scale <= viewport.scale <= viewport.max_scale


def test_cancel_animation_stops_at_current_frame() -> None:
    viewport = ViewportController()
    viewport.set_scale(3.0)
    viewport.reset_zoom()
    viewport.advance(1.0 / 60.0)
    frozen = viewport.state()
    assert viewport.cancel_animation()
    assert not viewport.advance(1.0 / 60.0)
    assert viewport.state() == frozen
    assert frozen.scale != 1.0
    assert viewport.cancel_animation() is False


def test_begin_pinch_cancels_reset_animation() -> None:
    viewport = ViewportController()
    viewport.set_scale(2.0)
    viewport.reset_zoom()
    viewport.begin_pinch(0.0, 0.0)
    assert not viewport.animating


def test_advance_with_infinite_or_nan_step_terminates() -> None:
    viewport = ViewportController()
    viewport.set_scale(2.0)
    viewport.reset_zoom()
    viewport.advance(float("nan"))
    assert viewport.scale == 2.0
    viewport.advance(float("inf"))
    assert viewport.min_scale <= viewport.scale <= viewport.max_scale
    assert viewport.scale != 2.0
