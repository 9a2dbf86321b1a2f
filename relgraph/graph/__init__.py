"""Graph model, dataset mapping and selection helpers."""

from relgraph.graph.mapping import (
    GROUP_ALL_VALUE,
    TAG_ALL_VALUE,
    GraphFilter,
    apply_filter,
    build_graph,
    build_group_view,
    build_tag_view,
)
from relgraph.graph.model import Edge, GraphModel, GraphTopologyError, Node, NodeKind, SyncResult
from relgraph.graph.selection import EMPTY_SELECTION, SelectionState, kinship_depths, select_edge, select_node

__all__ = [
    "EMPTY_SELECTION",
    "Edge",
    "GROUP_ALL_VALUE",
    "GraphFilter",
    "GraphModel",
    "GraphTopologyError",
    "Node",
    "NodeKind",
    "SelectionState",
    "SyncResult",
    "TAG_ALL_VALUE",
    "apply_filter",
    "build_graph",
    "build_group_view",
    "build_tag_view",
    "kinship_depths",
    "select_edge",
    "select_node",
]
