"""Selection highlighting and kinship-depth helpers."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

from relgraph.graph.model import Edge


@dataclass(frozen=True)
class SelectionState:
    """Nodes and edges emphasised by the current selection."""

    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    connected_node_ids: FrozenSet[str] = field(default_factory=frozenset)
    connected_edge_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def active(self) -> bool:
        return self.node_id is not None or self.edge_id is not None

    def is_node_dimmed(self, node_id: str) -> bool:
        return self.active and node_id not in self.connected_node_ids

    def is_edge_highlighted(self, edge_id: str) -> bool:
        return edge_id in self.connected_edge_ids

    def is_edge_dimmed(self, edge_id: str) -> bool:
        return self.active and edge_id not in self.connected_edge_ids


EMPTY_SELECTION = SelectionState()


def select_node(node_id: Optional[str], edges: Sequence[Edge]) -> SelectionState:
    """Return the selection for ``node_id``: itself, its neighbours and incident edges."""

    if node_id is None:
        return EMPTY_SELECTION
    nodes = {node_id}
    edge_ids = set()
    for edge in edges:
        if edge.touches(node_id):
            edge_ids.add(edge.id)
            nodes.add(edge.other(node_id))
    return SelectionState(
        node_id=node_id,
        connected_node_ids=frozenset(nodes),
        connected_edge_ids=frozenset(edge_ids),
    )


def select_edge(edge: Optional[Edge]) -> SelectionState:
    """Return the selection for a tapped edge: the edge and both endpoints."""

    if edge is None:
        return EMPTY_SELECTION
    return SelectionState(
        edge_id=edge.id,
        connected_node_ids=frozenset({edge.source, edge.target}),
        connected_edge_ids=frozenset({edge.id}),
    )


def kinship_depths(origin_id: Optional[str], edges: Sequence[Edge]) -> Dict[str, int]:
    """Breadth-first hop counts from ``origin_id`` over undirected edges.

    The origin has depth 0; unreachable nodes are absent from the result.
    """

    if origin_id is None:
        return {}
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
        adjacency.setdefault(edge.target, []).append(edge.source)

    depths: Dict[str, int] = {origin_id: 0}
    queue: deque[str] = deque([origin_id])
    while queue:
        current = queue.popleft()
        next_depth = depths[current] + 1
        for neighbour in adjacency.get(current, ()):
            if neighbour not in depths:
                depths[neighbour] = next_depth
                queue.append(neighbour)
    return depths
