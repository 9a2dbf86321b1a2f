"""Tests for the pin command handoff queue."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from relgraph.interaction.handoff import PinCommand, PinHandoff


@dataclass
class _RecordingTarget:
    calls: List[Tuple[str, str]] = field(default_factory=list)

    def pin(self, node_id: str, x: float, y: float) -> bool:
        self.calls.append(("pin", node_id))
        return True

    def unpin(self, node_id: str) -> bool:
        self.calls.append(("unpin", node_id))
        return True


def test_commands_are_applied_in_order() -> None:
    handoff = PinHandoff()
    handoff.pin("a", 1.0, 2.0)
    handoff.move("a", 3.0, 4.0)
    handoff.release("a")
    target = _RecordingTarget()

    assert handoff.pending()
    assert handoff.apply(target) == 3
    assert target.calls == [("pin", "a"), ("pin", "a"), ("unpin", "a")]
    assert not handoff.pending()
    assert handoff.apply(target) == 0


def test_drain_returns_commands() -> None:
    handoff = PinHandoff()
    handoff.move("b", 5.0, 6.0)
    assert handoff.drain() == [PinCommand(action="move", node_id="b", x=5.0, y=6.0)]
    assert handoff.drain() == []


def test_second_producer_thread_is_rejected() -> None:
    handoff = PinHandoff()
    handoff.pin("a", 0.0, 0.0)
    errors: List[Optional[BaseException]] = []

    def produce() -> None:
        try:
            handoff.pin("a", 1.0, 1.0)
        except RuntimeError as exc:
            errors.append(exc)

    worker = threading.Thread(target=produce)
    worker.start()
    worker.join()
    assert len(errors) == 1
    assert len(handoff.drain()) == 1


def test_consumer_may_live_on_another_thread() -> None:
    handoff = PinHandoff()
    handoff.pin("a", 0.0, 0.0)
    target = _RecordingTarget()
    worker = threading.Thread(target=handoff.apply, args=(target,))
    worker.start()
    worker.join()
    assert target.calls == [("pin", "a")]
