"""Host-facing orchestration of model, simulation, viewport, gestures and frames."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from relgraph.config import EngineConfig
from relgraph.contracts import Person, Relation
from relgraph.graph.mapping import GraphFilter, apply_filter
from relgraph.graph.model import Edge, GraphModel, Node, SyncResult
from relgraph.graph.selection import EMPTY_SELECTION, SelectionState, kinship_depths, select_edge, select_node
from relgraph.interaction.gestures import (
    DragCancelled,
    DragEnded,
    DragStarted,
    EdgeSelected,
    InteractionController,
    InteractionEvent,
    NodeSelected,
    SelectionCleared,
)
from relgraph.interaction.handoff import PinHandoff
from relgraph.layout.engine import ForceSimulation
from relgraph.layout.forces import RepulsionStrategy
from relgraph.render.throttle import Frame, RenderThrottler, build_frame
from relgraph.viewport.controller import ViewportController

LOGGER = logging.getLogger(__name__)

NodeTapCallback = Callable[[Node], None]
BackgroundTapCallback = Callable[[], None]


class GraphSession:
    """Single cooperative timeline driving one interactive graph canvas.

    Each :meth:`tick` drains the pin handoff, steps the simulation, advances
    any viewport animation and offers a frame to the throttler. Pointer
    methods may be called between ticks; the node state they affect is only
    mutated when the next tick applies the queued pin commands.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        on_node_tap: Optional[NodeTapCallback] = None,
        on_background_tap: Optional[BackgroundTapCallback] = None,
        repulsion: Optional[RepulsionStrategy] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or EngineConfig()
        self.model = GraphModel()
        self.simulation = ForceSimulation(
            self.model, self._config.simulation, self._config.canvas, repulsion=repulsion
        )
        self.viewport = ViewportController(self._config.viewport)
        self.handoff = PinHandoff()
        self.interaction = InteractionController(
            self.model, self.viewport, self.handoff, self._config.interaction, clock=clock
        )
        self.throttler = RenderThrottler(self._config.render.throttle_factor)
        self.on_node_tap = on_node_tap
        self.on_background_tap = on_background_tap
        self._selection: SelectionState = EMPTY_SELECTION
        self._show_kinship = False
        self._people: List[Person] = []
        self._relations: List[Relation] = []
        self._filter: Optional[GraphFilter] = None

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def selection(self) -> SelectionState:
        return self._selection

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selection.node_id

    @property
    def graph_filter(self) -> Optional[GraphFilter]:
        return self._filter

    @property
    def latest_frame(self) -> Optional[Frame]:
        return self.throttler.latest_frame

    @property
    def show_kinship(self) -> bool:
        return self._show_kinship

    # ========== Dataset ==========

    def load_dataset(
        self,
        people: Sequence[Person],
        relations: Sequence[Relation],
        graph_filter: Optional[GraphFilter] = None,
    ) -> SyncResult:
        """Map people and relations into the graph and publish a fresh frame."""

        self._people = list(people)
        self._relations = list(relations)
        self._filter = graph_filter
        nodes, edges = apply_filter(self._people, self._relations, graph_filter)
        return self.sync(nodes, edges)

    def set_filter(self, graph_filter: Optional[GraphFilter]) -> SyncResult:
        """Switch the group/tag filter over the last loaded dataset."""

        return self.load_dataset(self._people, self._relations, graph_filter)

    def sync(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> SyncResult:
        result = self.simulation.sync(nodes, edges)
        self._refresh_selection()
        self.throttler.force_publish(self._build_frame)
        return result

    # ========== Timeline ==========

    def apply_pending(self) -> int:
        """Apply queued pin commands to the simulation."""

        return self.handoff.apply(self.simulation)

    def tick(self, dt: float = 1.0 / 60.0) -> Optional[Frame]:
        """Run one frame of the timeline.

        Args:
            dt: Wall-clock seconds since the previous frame, used for the
                viewport animation. The simulation uses its configured step.

        Returns:
            Optional[Frame]: The frame published on this tick, if any.
        """

        self.apply_pending()
        if not self.simulation.settled:
            self.simulation.tick()
        self.viewport.advance(dt)
        return self.throttler.on_tick(self._build_frame)

    def reset_zoom(self) -> None:
        self.viewport.reset_zoom()

    # ========== Pointer input ==========

    def pointer_down(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        return self._dispatch(self.interaction.pointer_down(pointer_id, x, y, timestamp_ms))

    def pointer_move(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        return self._dispatch(self.interaction.pointer_move(pointer_id, x, y, timestamp_ms))

    def pointer_up(
        self, pointer_id: int, x: float, y: float, timestamp_ms: Optional[float] = None
    ) -> List[InteractionEvent]:
        return self._dispatch(self.interaction.pointer_up(pointer_id, x, y, timestamp_ms))

    def pointer_cancel(self, pointer_id: Optional[int] = None) -> List[InteractionEvent]:
        return self._dispatch(self.interaction.pointer_cancel(pointer_id))

    # ========== Selection ==========

    def select_node(self, node_id: Optional[str]) -> SelectionState:
        if node_id is not None and node_id not in self.model:
            LOGGER.debug("Ignoring selection of unknown node %s", node_id)
            node_id = None
        self._selection = select_node(node_id, self.model.edges)
        return self._selection

    def select_edge(self, edge_id: Optional[str]) -> SelectionState:
        edge = self.model.edge(edge_id) if edge_id is not None else None
        self._selection = select_edge(edge)
        return self._selection

    def clear_selection(self) -> None:
        self._selection = EMPTY_SELECTION

    def set_show_kinship(self, enabled: bool) -> None:
        """Toggle hop-count annotation; selection dimming is suspended while it is on."""

        self._show_kinship = bool(enabled)

    def kinship_origin(self) -> Optional[str]:
        """Return the node hop counts are measured from.

        The selected node wins; otherwise the user's own person (``is_self``),
        falling back to the first person of the dataset.
        """

        if self._selection.node_id is not None:
            return self._selection.node_id
        own = next((person for person in self._people if person.is_self), None)
        if own is None and self._people:
            own = self._people[0]
        if own is None or own.id not in self.model:
            return None
        return own.id

    def kinship_depths(self) -> Dict[str, int]:
        if not self._show_kinship:
            return {}
        return kinship_depths(self.kinship_origin(), self.model.edges)

    # ========== Internals ==========

    def _dispatch(self, events: List[InteractionEvent]) -> List[InteractionEvent]:
        for event in events:
            if isinstance(event, NodeSelected):
                self.select_node(event.node_id)
                node = self.model.get(event.node_id)
                if node is not None and node.person_id is not None and self.on_node_tap is not None:
                    self.on_node_tap(node)
            elif isinstance(event, EdgeSelected):
                self.select_edge(event.edge_id)
            elif isinstance(event, SelectionCleared):
                self.clear_selection()
                if self.on_background_tap is not None:
                    self.on_background_tap()
            elif isinstance(event, (DragStarted, DragEnded, DragCancelled)):
                LOGGER.debug("Drag event %s for node %s", type(event).__name__, event.node_id)
        return events

    def _refresh_selection(self) -> None:
        if self._selection.node_id is not None:
            self.select_node(self._selection.node_id)
        elif self._selection.edge_id is not None:
            self.select_edge(self._selection.edge_id)

    def _build_frame(self, sequence: int) -> Frame:
        return build_frame(
            sequence,
            self.model,
            self.viewport,
            interaction=self._config.interaction,
            render=self._config.render,
            selection=EMPTY_SELECTION if self._show_kinship else self._selection,
            depths=self.kinship_depths(),
        )
