"""Force-directed simulation stepping node positions in the graph model."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from relgraph.config import CanvasConfig, SimulationConfig
from relgraph.graph.model import Edge, GraphModel, Node, SyncResult
from relgraph.layout.forces import (
    GridRepulsion,
    PairwiseRepulsion,
    RepulsionStrategy,
    boundary_forces,
    centering_forces,
    spring_forces,
)

LOGGER = logging.getLogger(__name__)

_COINCIDENT_EPSILON = 1e-9


@dataclass(frozen=True)
class _Topology:
    """Edge endpoint indices cached per graph version."""

    version: int
    sources: np.ndarray
    targets: np.ndarray
    rest_lengths: np.ndarray


def build_repulsion(config: SimulationConfig) -> RepulsionStrategy:
    """Return the repulsion strategy named in ``config``."""

    if config.repulsion == "grid":
        return GridRepulsion(config.repulsion_strength, config.min_distance, config.grid_cell_size)
    return PairwiseRepulsion(config.repulsion_strength, config.min_distance)


class ForceSimulation:
    """Iterative physics stepper over a :class:`GraphModel`.

    Each :meth:`tick` applies repulsion, link springs, centering and soft
    boundary containment, then integrates velocity (with damping) and
    position for every free node. Pinned nodes keep their pinned coordinates
    and zero velocity but still push and pull on the others.
    """

    def __init__(
        self,
        model: GraphModel,
        config: SimulationConfig,
        canvas: CanvasConfig,
        *,
        repulsion: Optional[RepulsionStrategy] = None,
    ) -> None:
        self._model = model
        self._config = config
        self._canvas = canvas
        self._repulsion = repulsion or build_repulsion(config)
        self._rng = np.random.default_rng(config.random_seed)
        self._seed_rng = random.Random(config.random_seed)
        self._topology: Optional[_Topology] = None
        self._settled = False
        self._energy = float("inf")
        self.tick_count = 0

    @property
    def model(self) -> GraphModel:
        return self._model

    @property
    def settled(self) -> bool:
        """Whether total kinetic energy fell below ``energy_epsilon`` on the last tick."""

        return self._settled

    @property
    def energy(self) -> float:
        return self._energy

    def set_repulsion(self, strategy: RepulsionStrategy) -> None:
        self._repulsion = strategy
        self.reheat()

    def reheat(self) -> None:
        """Mark the layout as unsettled so the host resumes ticking."""

        self._settled = False
        self._energy = float("inf")

    def sync(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> SyncResult:
        """Replace the dataset, seeding positions of new nodes."""

        result = self._model.sync(
            nodes,
            edges,
            center=self._canvas.center,
            seed_radius=self._config.seed_radius,
            rng=self._seed_rng,
        )
        self.reheat()
        return result

    def pin(self, node_id: str, x: float, y: float) -> bool:
        node = self._model.get(node_id)
        if node is None:
            LOGGER.debug("Ignoring pin for unknown node %s", node_id)
            return False
        node.pin(x, y)
        self.reheat()
        return True

    def unpin(self, node_id: str) -> bool:
        node = self._model.get(node_id)
        if node is None:
            LOGGER.debug("Ignoring unpin for unknown node %s", node_id)
            return False
        node.unpin()
        self.reheat()
        return True

    def kinetic_energy(self) -> float:
        return float(sum(0.5 * (node.vx * node.vx + node.vy * node.vy) for node in self._model if not node.pinned))

    def tick(self, dt: Optional[float] = None) -> float:
        """Advance the simulation by one step.

        Args:
            dt: Step duration; defaults to ``time_step`` from the configuration.

        Returns:
            float: Total kinetic energy of free nodes after the step.
        """

        step = self._config.time_step if dt is None else float(dt)
        nodes = self._model.nodes
        self.tick_count += 1
        if not nodes or step <= 0:
            self._energy = 0.0
            self._settled = True
            return 0.0

        positions = np.array([node.position for node in nodes], dtype=np.float64)
        velocities = np.array([(node.vx, node.vy) for node in nodes], dtype=np.float64)
        pinned = np.array([node.pinned for node in nodes], dtype=bool)
        previous = positions.copy()

        self._separate_coincident(positions, pinned)
        forces = np.zeros_like(positions)
        self._repulsion.accumulate(positions, forces)
        topology = self._current_topology(nodes)
        spring_forces(
            positions,
            topology.sources,
            topology.targets,
            topology.rest_lengths,
            self._config.link_stiffness,
            self._config.min_distance,
            forces,
        )
        centering_forces(positions, self._canvas.center, self._config.gravity, forces)
        padding = self._canvas.padding
        boundary_forces(
            positions,
            (padding, padding),
            (self._canvas.width - padding, self._canvas.height - padding),
            self._config.boundary_stiffness,
            forces,
        )

        free = ~pinned
        velocities[free] += forces[free] * step
        velocities[free] *= self._config.damping
        speed = np.hypot(velocities[:, 0], velocities[:, 1])
        too_fast = speed > self._config.max_velocity
        if np.any(too_fast):
            velocities[too_fast] *= (self._config.max_velocity / speed[too_fast])[:, None]
        velocities[pinned] = 0.0
        positions[free] += velocities[free] * step

        broken = ~np.all(np.isfinite(positions), axis=1) | ~np.all(np.isfinite(velocities), axis=1)
        if np.any(broken):
            LOGGER.warning("Resetting %d node(s) with non-finite state", int(broken.sum()))
            positions[broken] = previous[broken]
            velocities[broken] = 0.0

        for index, node in enumerate(nodes):
            if node.pinned:
                node.x, node.y = node.position
                node.vx = node.vy = 0.0
                continue
            node.x = float(positions[index, 0])
            node.y = float(positions[index, 1])
            node.vx = float(velocities[index, 0])
            node.vy = float(velocities[index, 1])

        energy = float(0.5 * np.sum(velocities[free] ** 2))
        self._energy = energy
        was_settled = self._settled
        self._settled = energy < self._config.energy_epsilon
        if self._settled and not was_settled:
            LOGGER.debug("Simulation settled after %d ticks (energy=%.4f)", self.tick_count, energy)
        return energy

    def run_until_settled(self, max_ticks: int = 300, dt: Optional[float] = None) -> int:
        """Tick until settled or ``max_ticks`` is reached; return the ticks spent."""

        ticks = 0
        while ticks < max_ticks:
            self.tick(dt)
            ticks += 1
            if self._settled:
                break
        return ticks

    def _current_topology(self, nodes: List[Node]) -> _Topology:
        if self._topology is not None and self._topology.version == self._model.version:
            return self._topology
        index: Dict[str, int] = {node.id: position for position, node in enumerate(nodes)}
        sources: List[int] = []
        targets: List[int] = []
        rest: List[float] = []
        for edge in self._model.edges:
            if edge.source not in index or edge.target not in index:
                continue
            sources.append(index[edge.source])
            targets.append(index[edge.target])
            rest.append(self._config.link_distance / edge.strength)
        self._topology = _Topology(
            version=self._model.version,
            sources=np.asarray(sources, dtype=np.int64),
            targets=np.asarray(targets, dtype=np.int64),
            rest_lengths=np.asarray(rest, dtype=np.float64),
        )
        return self._topology

    def _separate_coincident(self, positions: np.ndarray, pinned: np.ndarray) -> None:
        """Nudge free nodes that sit exactly on top of another node."""

        count = positions.shape[0]
        if count < 2:
            return
        delta = positions[:, None, :] - positions[None, :, :]
        close = np.hypot(delta[..., 0], delta[..., 1]) < _COINCIDENT_EPSILON
        close = np.triu(close, k=1)
        if not close.any():
            return
        for first, second in zip(*np.nonzero(close)):
            mover = second if not pinned[second] else first
            if pinned[mover]:
                continue
            positions[mover] += self._rng.normal(0.0, self._config.jitter, size=2)
