"""Touch interaction: hit-testing, gesture disambiguation and pin handoff."""

from relgraph.interaction.gestures import (
    DragCancelled,
    DragEnded,
    DragStarted,
    EdgeSelected,
    GesturePhase,
    GestureResolution,
    InteractionController,
    InteractionEvent,
    InteractionSession,
    NodeSelected,
    SelectionCleared,
)
from relgraph.interaction.handoff import PinCommand, PinHandoff, PinTarget
from relgraph.interaction.hit_testing import HitTarget, HitTester, point_segment_distance

__all__ = [
    "DragCancelled",
    "DragEnded",
    "DragStarted",
    "EdgeSelected",
    "GesturePhase",
    "GestureResolution",
    "HitTarget",
    "HitTester",
    "InteractionController",
    "InteractionEvent",
    "InteractionSession",
    "NodeSelected",
    "PinCommand",
    "PinHandoff",
    "PinTarget",
    "SelectionCleared",
    "point_segment_distance",
]
