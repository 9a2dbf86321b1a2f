"""Single-producer handoff of pinned-position updates to the simulation owner."""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from typing_extensions import Literal, Protocol

LOGGER = logging.getLogger(__name__)

PinAction = Literal["pin", "move", "release"]


@dataclass(frozen=True)
class PinCommand:
    """Request to hold, move or release a node."""

    action: PinAction
    node_id: str
    x: float = 0.0
    y: float = 0.0


class PinTarget(Protocol):
    """Anything that can apply pin commands, typically the simulation."""

    def pin(self, node_id: str, x: float, y: float) -> bool:
        """Pin ``node_id`` at ``(x, y)``."""

    def unpin(self, node_id: str) -> bool:
        """Release ``node_id`` back to free simulation."""


class PinHandoff:
    """Queue carrying pin commands from the gesture context to the tick loop.

    Exactly one thread may submit commands; the first submitting thread
    becomes the producer. Commands are applied between ticks, so the
    simulation step never observes a half-applied gesture.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[PinCommand]" = queue.SimpleQueue()
        self._producer: Optional[int] = None
        self._lock = threading.Lock()

    def submit(self, command: PinCommand) -> None:
        ident = threading.get_ident()
        with self._lock:
            if self._producer is None:
                self._producer = ident
            elif self._producer != ident:
                raise RuntimeError("PinHandoff accepts commands from a single producer thread")
        self._queue.put(command)

    def pin(self, node_id: str, x: float, y: float) -> None:
        self.submit(PinCommand(action="pin", node_id=node_id, x=x, y=y))

    def move(self, node_id: str, x: float, y: float) -> None:
        self.submit(PinCommand(action="move", node_id=node_id, x=x, y=y))

    def release(self, node_id: str) -> None:
        self.submit(PinCommand(action="release", node_id=node_id))

    def pending(self) -> bool:
        return not self._queue.empty()

    def drain(self) -> List[PinCommand]:
        """Remove and return every queued command in submission order."""

        commands: List[PinCommand] = []
        while True:
            try:
                commands.append(self._queue.get_nowait())
            except queue.Empty:
                return commands

    def apply(self, target: PinTarget) -> int:
        """Apply every queued command to ``target``; return how many were applied."""

        commands = self.drain()
        for command in commands:
            if command.action == "release":
                target.unpin(command.node_id)
            else:
                target.pin(command.node_id, command.x, command.y)
        if commands:
            LOGGER.debug("Applied %d pin command(s)", len(commands))
        return len(commands)
