"""Pure mapping from people/relations records to graph nodes and edges."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Collection, Dict, List, Optional, Sequence, Tuple

from typing_extensions import Literal

from relgraph.contracts import Person, Relation
from relgraph.graph.model import Edge, Node, NodeKind

LOGGER = logging.getLogger(__name__)

MIN_CLOSENESS = 1.0
MAX_CLOSENESS = 5.0
MEMBERSHIP_STRENGTH = 1.0
GROUP_ALL_VALUE = "__GROUP_ALL__"
TAG_ALL_VALUE = "__TAG_ALL__"

GraphData = Tuple[List[Node], List[Edge]]


@dataclass(frozen=True)
class GraphFilter:
    """Group or tag view selected by the user; ``value`` may be an *all* sentinel."""

    type: Literal["group", "tag"]
    value: str


def clamp_closeness(value: float, *, relation_id: str = "") -> float:
    """Clamp a relation closeness score to the 1-5 domain, warning when out of range."""

    if value != value:  # NaN
        LOGGER.warning("Relation %s has NaN strength; using %.1f", relation_id, MIN_CLOSENESS)
        return MIN_CLOSENESS
    clamped = min(max(float(value), MIN_CLOSENESS), MAX_CLOSENESS)
    if clamped != value:
        LOGGER.warning(
            "Relation %s strength %s outside [%.0f, %.0f]; clamped to %.1f",
            relation_id,
            value,
            MIN_CLOSENESS,
            MAX_CLOSENESS,
            clamped,
        )
    return clamped


def closeness_to_strength(closeness: float) -> float:
    """Map a 1-5 closeness score onto a spring coefficient.

    The simulation keeps linked nodes ``link_distance / strength`` apart, so a
    closeness of 5 yields the shortest rest length and 1 the longest.
    """

    return 0.5 + 0.25 * closeness


def group_node_id(name: str) -> str:
    return f"node-group-{name}"


def tag_node_id(name: str) -> str:
    return f"node-tag-{name}"


def person_to_node(person: Person) -> Node:
    return Node(id=person.id, kind=NodeKind.PERSON, name=person.name, person_id=person.id)


def relation_to_edge(relation: Relation, known_ids: Optional[Collection[str]] = None) -> Optional[Edge]:
    """Convert a relation into an edge, or ``None`` if an endpoint is unknown."""

    if known_ids is not None:
        missing = [pid for pid in (relation.source_person_id, relation.target_person_id) if pid not in known_ids]
        if missing:
            LOGGER.warning("Dropping relation %s: unknown people %s", relation.id, missing)
            return None
    closeness = clamp_closeness(relation.strength, relation_id=relation.id)
    return Edge(
        id=relation.id,
        source=relation.source_person_id,
        target=relation.target_person_id,
        type=relation.description or "relation",
        strength=closeness_to_strength(closeness),
        arrow=relation.arrow_direction,
    )


def build_graph(people: Sequence[Person], relations: Sequence[Relation]) -> GraphData:
    """Map the people/relations dataset onto person nodes and relation edges.

    The mapping is deterministic: mapping an unchanged dataset twice yields
    structurally equal collections. Relations pointing at unknown people are
    dropped and their strength is clamped to the 1-5 domain.

    Args:
        people: Person records from the data layer.
        relations: Relation records between those people.

    Returns:
        GraphData: ``(nodes, edges)`` in input order.
    """

    nodes: List[Node] = []
    seen: Dict[str, Node] = {}
    for person in people:
        if person.id in seen:
            LOGGER.warning("Duplicate person %s in dataset; keeping first occurrence", person.id)
            continue
        node = person_to_node(person)
        seen[person.id] = node
        nodes.append(node)

    edges: List[Edge] = []
    for relation in relations:
        edge = relation_to_edge(relation, seen.keys())
        if edge is not None:
            edges.append(edge)
    return nodes, edges


def _collect(people: Sequence[Person], kind: str) -> List[str]:
    values = set()
    for person in people:
        values.update(person.property_values(kind))
    return sorted(values)


def all_groups(people: Sequence[Person]) -> List[str]:
    """Return every organization name, sorted."""

    return _collect(people, "organizations")


def all_tags(people: Sequence[Person]) -> List[str]:
    """Return every tag name, sorted."""

    return _collect(people, "tags")


def _build_membership_view(
    people: Sequence[Person],
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    names: Sequence[str],
    *,
    kind: NodeKind,
    property_kind: str,
) -> GraphData:
    if not names:
        return [], []

    make_id = group_node_id if kind is NodeKind.GROUP else tag_node_id
    link_prefix = "group-link" if kind is NodeKind.GROUP else "tag-link"
    hubs: Dict[str, Node] = {}
    for name in dict.fromkeys(names):
        hubs[name] = Node(id=make_id(name), kind=kind, name=name)

    people_by_id = {person.id: person for person in people}
    visible: List[Node] = []
    visible_ids = set()
    membership_edges: List[Edge] = []
    for node in nodes:
        if node.person_id is None:
            continue
        person = people_by_id.get(node.person_id)
        if person is None:
            continue
        matched = [name for name in person.property_values(property_kind) if name in hubs]
        if not matched:
            continue
        visible.append(node)
        visible_ids.add(node.id)
        for name in matched:
            hub = hubs[name]
            membership_edges.append(
                Edge(
                    id=f"{link_prefix}-{node.id}-{hub.id}",
                    source=node.id,
                    target=hub.id,
                    type=kind.value,
                    strength=MEMBERSHIP_STRENGTH,
                )
            )

    relation_edges = [edge for edge in edges if edge.source in visible_ids and edge.target in visible_ids]
    return visible + list(hubs.values()), relation_edges + membership_edges


def build_group_view(
    people: Sequence[Person], nodes: Sequence[Node], edges: Sequence[Edge], groups: Sequence[str]
) -> GraphData:
    """Return people belonging to ``groups`` plus one hub node per group."""

    return _build_membership_view(
        people, nodes, edges, groups, kind=NodeKind.GROUP, property_kind="organizations"
    )


def build_tag_view(
    people: Sequence[Person], nodes: Sequence[Node], edges: Sequence[Edge], tags: Sequence[str]
) -> GraphData:
    """Return people carrying ``tags`` plus one hub node per tag."""

    return _build_membership_view(people, nodes, edges, tags, kind=NodeKind.TAG, property_kind="tags")


def apply_filter(
    people: Sequence[Person],
    relations: Sequence[Relation],
    selected: Optional[GraphFilter] = None,
) -> GraphData:
    """Build the graph for the currently selected group/tag filter.

    With no filter the plain person/relation graph is returned.
    """

    nodes, edges = build_graph(people, relations)
    if selected is None:
        return nodes, edges
    if selected.type == "group":
        targets = all_groups(people) if selected.value == GROUP_ALL_VALUE else [selected.value]
        return build_group_view(people, nodes, edges, [name for name in targets if name])
    targets = all_tags(people) if selected.value == TAG_ALL_VALUE else [selected.value]
    return build_tag_view(people, nodes, edges, [name for name in targets if name])
