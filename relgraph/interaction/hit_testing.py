"""Spatial hit-testing of touch points against nodes and edges."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from typing_extensions import Literal

from relgraph.config import InteractionConfig
from relgraph.graph.model import GraphModel, Node, node_radius
from relgraph.viewport.controller import ViewportController


@dataclass(frozen=True)
class HitTarget:
    """Element found under a touch point."""

    kind: Literal["node", "edge"]
    id: str


def point_segment_distance(
    px: float, py: float, ax: float, ay: float, bx: float, by: float
) -> float:
    """Return the distance from ``(px, py)`` to the segment ``a``-``b``."""

    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * dx + (py - ay) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * dx), py - (ay + t * dy))


class HitTester:
    """Resolves touches using enlarged hit regions.

    Nodes are tested in model space with ``visual radius * hit_radius_factor``;
    edges are tested in screen space with a band ``edge_touch_width`` pixels
    wide centred on the segment. Nodes always take priority over edges.
    """

    def __init__(self, config: InteractionConfig) -> None:
        self._config = config

    def hit_radius(self, node: Node) -> float:
        radius = node_radius(node.kind, self._config.node_radius, self._config.group_radius_factor)
        return radius * self._config.hit_radius_factor

    def node_at(self, model: GraphModel, x: float, y: float) -> Optional[str]:
        """Return the closest node whose hit circle contains model point ``(x, y)``."""

        best: Optional[Tuple[float, str]] = None
        for node in model:
            nx, ny = node.position
            distance = math.hypot(x - nx, y - ny)
            if distance <= self.hit_radius(node) and (best is None or distance < best[0]):
                best = (distance, node.id)
        return best[1] if best else None

    def edge_at(
        self, model: GraphModel, viewport: ViewportController, screen_x: float, screen_y: float
    ) -> Optional[str]:
        """Return the closest edge whose touch band contains the screen point."""

        half_width = self._config.edge_touch_width / 2.0
        best: Optional[Tuple[float, str]] = None
        for edge in model.edges:
            source = model.get(edge.source)
            target = model.get(edge.target)
            if source is None or target is None:
                continue
            ax, ay = viewport.to_screen(*source.position)
            bx, by = viewport.to_screen(*target.position)
            distance = point_segment_distance(screen_x, screen_y, ax, ay, bx, by)
            if distance <= half_width and (best is None or distance < best[0]):
                best = (distance, edge.id)
        return best[1] if best else None

    def hit(
        self, model: GraphModel, viewport: ViewportController, screen_x: float, screen_y: float
    ) -> Optional[HitTarget]:
        """Hit-test a canvas-local screen point, nodes first, then edges."""

        model_x, model_y = viewport.to_model(screen_x, screen_y)
        node_id = self.node_at(model, model_x, model_y)
        if node_id is not None:
            return HitTarget(kind="node", id=node_id)
        edge_id = self.edge_at(model, viewport, screen_x, screen_y)
        if edge_id is not None:
            return HitTarget(kind="edge", id=edge_id)
        return None
