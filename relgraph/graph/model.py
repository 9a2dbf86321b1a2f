"""Normalized node/edge registry carrying physics state for the layout engine."""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

LOGGER = logging.getLogger(__name__)


class GraphTopologyError(ValueError):
    """Raised when an edge references a missing node or forms a self-loop."""


class NodeKind(str, Enum):
    """Kinds of visual vertices drawn on the canvas."""

    PERSON = "person"
    GROUP = "group"
    TAG = "tag"


@dataclass
class Node:
    """Graph vertex together with its simulation state.

    ``fx``/``fy`` hold the pinned position. While both are set the node is
    held by the user (or fixed explicitly) and its ``x``/``y`` mirror the pin.
    """

    id: str
    kind: NodeKind = NodeKind.PERSON
    name: str = ""
    person_id: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    @property
    def position(self) -> Tuple[float, float]:
        if self.fx is not None and self.fy is not None:
            return (self.fx, self.fy)
        return (self.x, self.y)

    def pin(self, x: float, y: float) -> None:
        """Fix the node at ``(x, y)`` and drop any residual velocity."""

        self.fx = float(x)
        self.fy = float(y)
        self.x = self.fx
        self.y = self.fy
        self.vx = 0.0
        self.vy = 0.0

    def unpin(self) -> None:
        """Return the node to free simulation from its last held position."""

        if self.fx is not None and self.fy is not None:
            self.x = self.fx
            self.y = self.fy
        self.fx = None
        self.fy = None
        self.vx = 0.0
        self.vy = 0.0


@dataclass(frozen=True)
class Edge:
    """Spring between two nodes, referencing endpoints by id."""

    id: str
    source: str
    target: str
    type: str = "relation"
    strength: float = 1.0
    arrow: str = "none"

    def __post_init__(self) -> None:
        if self.source == self.target:
            raise GraphTopologyError(f"edge {self.id!r} is a self-loop on {self.source!r}")
        if not math.isfinite(self.strength) or self.strength <= 0:
            raise GraphTopologyError(f"edge {self.id!r} has non-positive strength {self.strength!r}")

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def other(self, node_id: str) -> str:
        return self.target if self.source == node_id else self.source


@dataclass(frozen=True)
class SyncResult:
    """Summary of a dataset synchronisation."""

    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()
    dropped_edges: Tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.dropped_edges)


def node_radius(kind: NodeKind, base_radius: float, group_factor: float) -> float:
    """Return the visual radius for a node kind; groups and tags are drawn larger."""

    if kind in (NodeKind.GROUP, NodeKind.TAG):
        return base_radius * group_factor
    return base_radius


class GraphModel:
    """Sole owner of nodes and edges.

    Edges only hold node ids, so removing a node here is enough to guarantee
    that no edge outlives its endpoints.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self.version = 0

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    def node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError as exc:
            raise KeyError(f"unknown node {node_id!r}") from exc

    def edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def add_node(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise ValueError(f"duplicate node id {node.id!r}")
        self._nodes[node.id] = node
        self.version += 1
        return node

    def add_edge(self, edge: Edge) -> Edge:
        """Register ``edge``; both endpoints must already exist."""

        missing = [endpoint for endpoint in (edge.source, edge.target) if endpoint not in self._nodes]
        if missing:
            raise GraphTopologyError(f"edge {edge.id!r} references unknown nodes {missing}")
        self._edges[edge.id] = edge
        self.version += 1
        return edge

    def remove_node(self, node_id: str) -> Optional[Node]:
        node = self._nodes.pop(node_id, None)
        if node is None:
            return None
        for edge_id in [edge.id for edge in self._edges.values() if edge.touches(node_id)]:
            del self._edges[edge_id]
        self.version += 1
        return node

    def sync(
        self,
        nodes: Sequence[Node],
        edges: Iterable[Edge],
        *,
        center: Tuple[float, float],
        seed_radius: float = 30.0,
        rng: Optional[random.Random] = None,
    ) -> SyncResult:
        """Replace the dataset while preserving physics state of surviving nodes.

        New nodes are seeded near an already-placed neighbour when one exists,
        otherwise around ``center``. Edges whose endpoints are unknown are
        dropped with a warning rather than failing the whole update.

        Args:
            nodes: Node descriptors for the new dataset. Only identity fields
                are read; positions of new nodes are seeded here.
            edges: Edge descriptors referencing node ids.
            center: Fallback seed location in model space.
            seed_radius: Maximum distance of a seeded node from its anchor.
            rng: Random source for seed offsets.

        Returns:
            SyncResult: Identifiers that were added, removed or dropped.
        """

        rng = rng or random.Random()
        incoming: Dict[str, Node] = {}
        for node in nodes:
            if node.id in incoming:
                LOGGER.warning("Duplicate node id %s in dataset; keeping first occurrence", node.id)
                continue
            incoming[node.id] = node

        removed = tuple(node_id for node_id in self._nodes if node_id not in incoming)
        for node_id in removed:
            del self._nodes[node_id]

        valid_edges: Dict[str, Edge] = {}
        dropped: List[str] = []
        for edge in edges:
            if edge.source not in incoming or edge.target not in incoming:
                LOGGER.warning(
                    "Dropping edge %s: endpoint missing (source=%s, target=%s)",
                    edge.id,
                    edge.source,
                    edge.target,
                )
                dropped.append(edge.id)
                continue
            if edge.id in valid_edges:
                LOGGER.warning("Duplicate edge id %s in dataset; keeping first occurrence", edge.id)
                continue
            valid_edges[edge.id] = edge

        adjacency: Dict[str, List[str]] = {node_id: [] for node_id in incoming}
        for edge in valid_edges.values():
            adjacency[edge.source].append(edge.target)
            adjacency[edge.target].append(edge.source)

        added: List[str] = []
        merged: Dict[str, Node] = {}
        for node_id, incoming_node in incoming.items():
            existing = self._nodes.get(node_id)
            if existing is not None:
                existing.kind = incoming_node.kind
                existing.name = incoming_node.name
                existing.person_id = incoming_node.person_id
                merged[node_id] = existing
                continue
            merged[node_id] = Node(
                id=node_id, kind=incoming_node.kind, name=incoming_node.name, person_id=incoming_node.person_id
            )
            added.append(node_id)

        placed: Set[str] = set(merged) - set(added)
        for node_id in added:
            anchor = next((merged[n] for n in adjacency[node_id] if n in placed), None)
            ax, ay = anchor.position if anchor is not None else center
            angle = rng.uniform(0.0, 2.0 * math.pi)
            distance = rng.uniform(0.5, 1.0) * seed_radius
            node = merged[node_id]
            node.x = ax + distance * math.cos(angle)
            node.y = ay + distance * math.sin(angle)
            placed.add(node_id)

        self._nodes = merged
        self._edges = valid_edges
        self.version += 1
        result = SyncResult(added=tuple(added), removed=removed, dropped_edges=tuple(dropped))
        LOGGER.info(
            "Graph synced: %d nodes (%d added, %d removed), %d edges (%d dropped)",
            len(self._nodes),
            len(result.added),
            len(result.removed),
            len(self._edges),
            len(result.dropped_edges),
        )
        return result
