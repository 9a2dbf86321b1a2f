"""Render frames and the throttler that decides which ticks are published."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple

from relgraph.config import InteractionConfig, RenderConfig
from relgraph.graph.model import GraphModel, node_radius
from relgraph.graph.selection import EMPTY_SELECTION, SelectionState
from relgraph.viewport.controller import ViewportController

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeFrame:
    """Drawable node in model coordinates."""

    id: str
    x: float
    y: float
    kind: str
    radius: float
    opacity: float
    depth: Optional[int] = None


@dataclass(frozen=True)
class EdgeFrame:
    """Drawable edge segment in model coordinates."""

    id: str
    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    highlighted: bool
    dimmed: bool
    arrow: str


@dataclass(frozen=True)
class ViewportFrame:
    scale: float
    translate_x: float
    translate_y: float


@dataclass(frozen=True)
class Frame:
    """Immutable snapshot handed to the drawing layer."""

    sequence: int
    nodes: Tuple[NodeFrame, ...]
    edges: Tuple[EdgeFrame, ...]
    viewport: ViewportFrame

    def node(self, node_id: str) -> Optional[NodeFrame]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


FrameBuilder = Callable[[int], Frame]


def build_frame(
    sequence: int,
    model: GraphModel,
    viewport: ViewportController,
    *,
    interaction: InteractionConfig,
    render: RenderConfig,
    selection: SelectionState = EMPTY_SELECTION,
    depths: Optional[Mapping[str, int]] = None,
) -> Frame:
    """Snapshot node positions, selection styling and the viewport transform.

    Nodes outside the current selection get ``dimmed_opacity``; edges incident
    to the selection are flagged as highlighted and all others as dimmed.
    """

    depth_lookup = depths or {}
    nodes = []
    for node in model:
        x, y = node.position
        nodes.append(
            NodeFrame(
                id=node.id,
                x=x,
                y=y,
                kind=node.kind.value,
                radius=node_radius(node.kind, interaction.node_radius, interaction.group_radius_factor),
                opacity=render.dimmed_opacity if selection.is_node_dimmed(node.id) else 1.0,
                depth=depth_lookup.get(node.id),
            )
        )
    edges = []
    for edge in model.edges:
        source = model.get(edge.source)
        target = model.get(edge.target)
        if source is None or target is None:
            continue
        (x1, y1), (x2, y2) = source.position, target.position
        edges.append(
            EdgeFrame(
                id=edge.id,
                source_id=edge.source,
                target_id=edge.target,
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                highlighted=selection.is_edge_highlighted(edge.id),
                dimmed=selection.is_edge_dimmed(edge.id),
                arrow=edge.arrow,
            )
        )
    translate_x, translate_y = viewport.translate
    return Frame(
        sequence=sequence,
        nodes=tuple(nodes),
        edges=tuple(edges),
        viewport=ViewportFrame(scale=viewport.scale, translate_x=translate_x, translate_y=translate_y),
    )


class RenderThrottler:
    """Publishes one frame every ``factor`` simulation ticks.

    Skipped ticks cost nothing: the frame builder is only invoked when a
    frame is actually published. Hit-testing reads the live model, so it is
    unaffected by throttling.
    """

    def __init__(self, factor: int = 2) -> None:
        if factor < 1:
            raise ValueError("Render throttle factor must be at least 1")
        self._factor = factor
        self._ticks = 0
        self._sequence = 0
        self._latest: Optional[Frame] = None

    @property
    def factor(self) -> int:
        return self._factor

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def latest_frame(self) -> Optional[Frame]:
        return self._latest

    def should_publish(self) -> bool:
        """Whether the next tick lands on the publishing cadence."""

        return (self._ticks + 1) % self._factor == 0

    def on_tick(self, build: FrameBuilder) -> Optional[Frame]:
        """Count one tick; build and publish a frame on every Nth tick.

        Returns:
            Optional[Frame]: The published frame, or ``None`` for a skipped tick.
        """

        publish = self.should_publish()
        self._ticks += 1
        if not publish:
            return None
        return self._publish(build)

    def force_publish(self, build: FrameBuilder) -> Frame:
        """Publish immediately regardless of cadence."""

        return self._publish(build)

    def _publish(self, build: FrameBuilder) -> Frame:
        self._sequence += 1
        frame = build(self._sequence)
        self._latest = frame
        LOGGER.debug("Published frame %d after tick %d", frame.sequence, self._ticks)
        return frame
