"""Integration tests for the host-facing graph session."""

from __future__ import annotations

import math
from typing import List

import pytest

from relgraph.config import EngineConfig, InteractionConfig
from relgraph.contracts import Person, PersonProperty, Relation
from relgraph.graph.mapping import GraphFilter, group_node_id
from relgraph.graph.model import Node
from relgraph.session import GraphSession


def _people() -> List[Person]:
    return [
        Person(
            id="ann",
            name="Ann",
            is_self=True,
            properties=[PersonProperty(id="o1", type="organizations", values=["Acme"])],
        ),
        Person(id="bob", name="Bob"),
        Person(id="cat", name="Cat"),
    ]


def _relations() -> List[Relation]:
    return [
        Relation(id="r1", source_person_id="ann", target_person_id="bob", strength=4),
        Relation(id="r2", source_person_id="bob", target_person_id="cat"),
        Relation(id="r3", source_person_id="cat", target_person_id="nobody"),
    ]


def _session(**kwargs) -> GraphSession:
    session = GraphSession(EngineConfig(), clock=lambda: 0.0, **kwargs)
    session.load_dataset(_people(), _relations())
    return session


def _screen_of(session: GraphSession, node_id: str):
    return session.viewport.to_screen(*session.model.node(node_id).position)


def test_load_dataset_publishes_initial_frame() -> None:
    session = _session()
    frame = session.latest_frame
    assert frame is not None
    assert {node.id for node in frame.nodes} == {"ann", "bob", "cat"}
    assert {edge.id for edge in frame.edges} == {"r1", "r2"}


def test_ticks_publish_at_throttled_cadence() -> None:
    session = _session()
    frames = [session.tick() for _ in range(4)]
    assert [frame is not None for frame in frames] == [False, True, False, True]
    assert all(math.isfinite(node.x) and math.isfinite(node.y) for node in frames[-1].nodes)


def test_tap_selects_node_and_fires_callback() -> None:
    tapped: List[Node] = []
    session = _session(on_node_tap=tapped.append)
    x, y = _screen_of(session, "ann")
    session.pointer_down(1, x, y, timestamp_ms=0)
    session.pointer_up(1, x, y, timestamp_ms=50)
    assert session.selected_node_id == "ann"
    assert [node.id for node in tapped] == ["ann"]
    frame = session.tick()
    frame = frame or session.tick()
    opacity = {node.id: node.opacity for node in frame.nodes}
    assert opacity["ann"] == 1.0
    assert opacity["cat"] == pytest.approx(0.2)


def test_background_tap_clears_selection() -> None:
    cleared: List[bool] = []
    session = _session(on_background_tap=lambda: cleared.append(True))
    session.select_node("bob")
    session.pointer_down(1, 5.0, 5.0, timestamp_ms=0)
    session.pointer_up(1, 5.0, 5.0, timestamp_ms=20)
    assert session.selected_node_id is None
    assert cleared == [True]


def test_drag_is_applied_on_next_tick() -> None:
    session = _session()
    x, y = _screen_of(session, "bob")
    session.pointer_down(1, x, y, timestamp_ms=0)
    session.pointer_move(1, 150.0, 150.0, timestamp_ms=30)
    assert not session.model.node("bob").pinned
    session.tick()
    assert session.model.node("bob").position == pytest.approx((150.0, 150.0))
    session.pointer_up(1, 150.0, 150.0, timestamp_ms=60)
    session.tick()
    assert not session.model.node("bob").pinned


def test_group_filter_switches_view() -> None:
    session = _session()
    session.set_filter(GraphFilter(type="group", value="Acme"))
    assert set(session.model.node_ids()) == {"ann", group_node_id("Acme")}
    session.set_filter(None)
    assert set(session.model.node_ids()) == {"ann", "bob", "cat"}


def test_selection_is_cleared_when_node_disappears() -> None:
    session = _session()
    session.select_node("cat")
    session.set_filter(GraphFilter(type="group", value="Acme"))
    assert session.selected_node_id is None


def test_kinship_depths_follow_selection() -> None:
    session = _session()
    session.select_node("ann")
    assert session.kinship_depths() == {}
    session.set_show_kinship(True)
    assert session.kinship_depths() == {"ann": 0, "bob": 1, "cat": 2}


def test_reset_zoom_animates_during_ticks() -> None:
    session = _session()
    session.viewport.set_scale(2.0)
    session.reset_zoom()
    for _ in range(240):
        session.tick(1.0 / 60.0)
    assert session.viewport.scale == 1.0
    assert not session.viewport.animating


def test_pin_policy_from_config_is_honoured() -> None:
    config = EngineConfig(interaction=InteractionConfig(drag_release_policy="pin"))
    session = GraphSession(config, clock=lambda: 0.0)
    session.load_dataset(_people(), _relations())
    x, y = _screen_of(session, "cat")
    session.pointer_down(1, x, y, timestamp_ms=0)
    session.pointer_move(1, 50.0, 500.0, timestamp_ms=30)
    session.pointer_up(1, 50.0, 500.0, timestamp_ms=60)
    session.tick()
    assert session.model.node("cat").pinned


def test_kinship_without_selection_counts_from_own_person() -> None:
    session = GraphSession(EngineConfig(), clock=lambda: 0.0)
    session.load_dataset(
        [Person(id="bob", name="Bob"), Person(id="me", name="Me", is_self=True)],
        [Relation(id="r1", source_person_id="me", target_person_id="bob")],
    )
    session.set_show_kinship(True)
    assert session.kinship_origin() == "me"
    assert session.kinship_depths() == {"me": 0, "bob": 1}


def test_kinship_without_own_person_counts_from_first_person() -> None:
    session = GraphSession(EngineConfig(), clock=lambda: 0.0)
    session.load_dataset(
        [Person(id="bob", name="Bob"), Person(id="cat", name="Cat")],
        [Relation(id="r1", source_person_id="bob", target_person_id="cat")],
    )
    session.set_show_kinship(True)
    assert session.kinship_depths() == {"bob": 0, "cat": 1}


def test_kinship_mode_suspends_selection_dimming() -> None:
    session = _session()
    session.select_node("ann")
    session.set_show_kinship(True)
    session.tick()
    session.tick()
    frame = session.latest_frame
    assert all(node.opacity == 1.0 for node in frame.nodes)
    assert not any(edge.dimmed or edge.highlighted for edge in frame.edges)
    assert {node.id: node.depth for node in frame.nodes} == {"ann": 0, "bob": 1, "cat": 2}


def test_hub_tap_selects_without_node_callback() -> None:
    tapped: List[Node] = []
    session = _session(on_node_tap=tapped.append)
    session.set_filter(GraphFilter(type="group", value="Acme"))
    hub = session.model.node(group_node_id("Acme"))
    hub.x, hub.y = 100.0, 100.0
    ann = session.model.node("ann")
    ann.x, ann.y = 300.0, 500.0
    x, y = _screen_of(session, hub.id)
    session.pointer_down(1, x, y, timestamp_ms=0)
    session.pointer_up(1, x, y, timestamp_ms=50)
    assert session.selected_node_id == hub.id
    assert tapped == []
