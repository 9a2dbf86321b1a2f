"""Pointer gesture state machine: tap, drag, pan and pinch disambiguation."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from relgraph.config import DragReleasePolicy, InteractionConfig
from relgraph.graph.model import GraphModel
from relgraph.interaction.handoff import PinHandoff
from relgraph.interaction.hit_testing import HitTester
from relgraph.viewport.controller import ViewportController

LOGGER = logging.getLogger(__name__)


class GesturePhase(str, Enum):
    """Lifecycle of the active pointer session."""

    IDLE = "idle"
    PRESSED = "pressed"
    DRAG = "drag"
    PAN = "pan"
    PINCH = "pinch"


class GestureResolution(str, Enum):
    """How the most recent session ended."""

    TAP = "tap"
    LONG_PRESS = "long_press"
    DRAG = "drag"
    PAN = "pan"
    PINCH = "pinch"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class NodeSelected:
    node_id: str


@dataclass(frozen=True)
class EdgeSelected:
    edge_id: str


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class DragStarted:
    node_id: str


@dataclass(frozen=True)
class DragEnded:
    node_id: str
    pinned: bool


@dataclass(frozen=True)
class DragCancelled:
    node_id: str


InteractionEvent = Union[NodeSelected, EdgeSelected, SelectionCleared, DragStarted, DragEnded, DragCancelled]


@dataclass
class InteractionSession:
    """State of one gesture, from first pointer-down to last pointer-up."""

    pointer_id: int
    start_x: float
    start_y: float
    start_time_ms: float
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    distance: float = 0.0
    phase: GesturePhase = GesturePhase.PRESSED
    pointers: Dict[int, Tuple[float, float]] = field(default_factory=dict)
    pinch_ids: Tuple[int, int] = (0, 0)
    pinch_start_distance: float = 0.0


class InteractionController:
    """Turns raw pointer events into selections, node drags and viewport changes.

    Pointer coordinates are window coordinates; the viewport converts them to
    canvas-local screen space and then to model space. Node drags never touch
    node state directly: pin updates go through the :class:`PinHandoff` and
    are applied by the tick loop.
    """

    def __init__(
        self,
        model: GraphModel,
        viewport: ViewportController,
        handoff: PinHandoff,
        config: Optional[InteractionConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._model = model
        self._viewport = viewport
        self._handoff = handoff
        self._config = config or InteractionConfig()
        self._hit_tester = HitTester(self._config)
        self._clock = clock
        self._session: Optional[InteractionSession] = None
        self.last_resolution: Optional[GestureResolution] = None

    @property
    def session(self) -> Optional[InteractionSession]:
        return self._session

    @property
    def phase(self) -> GesturePhase:
        return self._session.phase if self._session else GesturePhase.IDLE

    @property
    def hit_tester(self) -> HitTester:
        return self._hit_tester

    @property
    def drag_release_policy(self) -> DragReleasePolicy:
        return self._config.drag_release_policy

    def _now_ms(self, timestamp_ms: Optional[float]) -> float:
        return self._clock() * 1000.0 if timestamp_ms is None else float(timestamp_ms)

    def pointer_down(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        """Handle a pointer touching the canvas."""

        local_x, local_y = self._viewport.to_local(x, y)
        session = self._session
        if session is not None:
            if pointer_id in session.pointers:
                return []
            session.pointers[pointer_id] = (local_x, local_y)
            if len(session.pointers) != 2:
                return []
            # Also re-anchors a pinch after one of its fingers was replaced.
            return self._start_pinch(session)

        self._viewport.cancel_animation()
        session = InteractionSession(
            pointer_id=pointer_id,
            start_x=local_x,
            start_y=local_y,
            start_time_ms=self._now_ms(timestamp_ms),
        )
        session.pointers[pointer_id] = (local_x, local_y)
        target = self._hit_tester.hit(self._model, self._viewport, local_x, local_y)
        if target is not None and target.kind == "node":
            session.node_id = target.id
        elif target is not None:
            session.edge_id = target.id
        self._session = session
        return []

    def pointer_move(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        """Handle pointer motion; classifies the gesture once movement exceeds the tap threshold.

        A node press only turns into a drag while the tap time window is still
        open. Moving a node that has been held longer leaves the gesture
        unresolved until release, which then counts as a long press.
        """

        session = self._session
        if session is None or pointer_id not in session.pointers:
            return []
        local_x, local_y = self._viewport.to_local(x, y)
        session.pointers[pointer_id] = (local_x, local_y)

        if session.phase is GesturePhase.PINCH:
            self._update_pinch(session)
            return []
        if pointer_id != session.pointer_id:
            return []

        dx = local_x - session.start_x
        dy = local_y - session.start_y
        session.distance = max(session.distance, math.hypot(dx, dy))
        events: List[InteractionEvent] = []

        if session.phase is GesturePhase.PRESSED and session.distance > self._config.tap_threshold:
            if session.node_id is not None and session.node_id in self._model:
                elapsed = self._now_ms(timestamp_ms) - session.start_time_ms
                if elapsed >= self._config.tap_time_threshold_ms:
                    return events
                session.phase = GesturePhase.DRAG
                model_x, model_y = self._viewport.to_model(local_x, local_y)
                self._handoff.pin(session.node_id, model_x, model_y)
                events.append(DragStarted(node_id=session.node_id))
                return events
            session.phase = GesturePhase.PAN
            self._viewport.begin_pan()

        if session.phase is GesturePhase.DRAG and session.node_id is not None:
            model_x, model_y = self._viewport.to_model(local_x, local_y)
            self._handoff.move(session.node_id, model_x, model_y)
        elif session.phase is GesturePhase.PAN:
            self._viewport.update_pan(dx, dy)
        return events

    def pointer_up(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        """Handle a pointer leaving the canvas and resolve the gesture."""

        session = self._session
        if session is None or pointer_id not in session.pointers:
            return []

        if session.phase is GesturePhase.PINCH:
            del session.pointers[pointer_id]
            if pointer_id in session.pinch_ids:
                self._viewport.end_pinch()
            if not session.pointers:
                self._finish(GestureResolution.PINCH)
            return []
        if pointer_id != session.pointer_id:
            del session.pointers[pointer_id]
            return []

        local_x, local_y = self._viewport.to_local(x, y)
        session.distance = max(
            session.distance, math.hypot(local_x - session.start_x, local_y - session.start_y)
        )
        elapsed = self._now_ms(timestamp_ms) - session.start_time_ms
        events: List[InteractionEvent] = []

        if session.phase is GesturePhase.DRAG and session.node_id is not None:
            model_x, model_y = self._viewport.to_model(local_x, local_y)
            self._handoff.move(session.node_id, model_x, model_y)
            keep_pinned = self._config.drag_release_policy is DragReleasePolicy.PIN
            if not keep_pinned:
                self._handoff.release(session.node_id)
            events.append(DragEnded(node_id=session.node_id, pinned=keep_pinned))
            self._finish(GestureResolution.DRAG)
            return events

        if session.phase is GesturePhase.PAN:
            self._viewport.update_pan(local_x - session.start_x, local_y - session.start_y)
            self._viewport.end_pan()
            self._finish(GestureResolution.PAN)
            return events

        if elapsed < self._config.tap_time_threshold_ms and session.distance < self._config.tap_threshold:
            if session.node_id is not None:
                events.append(NodeSelected(node_id=session.node_id))
            elif session.edge_id is not None:
                events.append(EdgeSelected(edge_id=session.edge_id))
            else:
                events.append(SelectionCleared())
            self._finish(GestureResolution.TAP)
            return events

        self._finish(GestureResolution.LONG_PRESS)
        return events

    def pointer_cancel(self, pointer_id: Optional[int] = None) -> List[InteractionEvent]:
        """Abort the gesture (e.g. OS interruption); never resolves to a tap."""

        session = self._session
        if session is None:
            return []
        if pointer_id is not None and pointer_id not in session.pointers:
            return []
        events: List[InteractionEvent] = []
        if session.phase is GesturePhase.DRAG and session.node_id is not None:
            self._handoff.release(session.node_id)
            events.append(DragCancelled(node_id=session.node_id))
        elif session.phase is GesturePhase.PAN:
            self._viewport.end_pan()
        elif session.phase is GesturePhase.PINCH:
            self._viewport.end_pinch()
        self._finish(GestureResolution.CANCELLED)
        return events

    def _start_pinch(self, session: InteractionSession) -> List[InteractionEvent]:
        events: List[InteractionEvent] = []
        if session.phase is GesturePhase.DRAG and session.node_id is not None:
            LOGGER.debug("Second pointer cancels drag of node %s", session.node_id)
            self._handoff.release(session.node_id)
            events.append(DragCancelled(node_id=session.node_id))
        elif session.phase is GesturePhase.PAN:
            self._viewport.end_pan()
        first, second = list(session.pointers)[:2]
        (ax, ay), (bx, by) = session.pointers[first], session.pointers[second]
        session.phase = GesturePhase.PINCH
        session.node_id = None
        session.edge_id = None
        session.pinch_ids = (first, second)
        session.pinch_start_distance = math.hypot(bx - ax, by - ay)
        self._viewport.begin_pinch((ax + bx) / 2.0, (ay + by) / 2.0)
        return events

    def _update_pinch(self, session: InteractionSession) -> None:
        first, second = session.pinch_ids
        if first not in session.pointers or second not in session.pointers:
            return
        if session.pinch_start_distance <= 0:
            return
        (ax, ay), (bx, by) = session.pointers[first], session.pointers[second]
        factor = math.hypot(bx - ax, by - ay) / session.pinch_start_distance
        self._viewport.update_pinch(factor)

    def _finish(self, resolution: GestureResolution) -> None:
        self.last_resolution = resolution
        self._session = None
