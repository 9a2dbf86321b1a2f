"""Vectorised force kernels used by the simulation engine.

Every kernel accumulates into a caller-provided ``(n, 2)`` float64 array so the
engine can combine them without caring how each one is computed.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import DefaultDict, List, Tuple

import numpy as np
from typing_extensions import Protocol

LOGGER = logging.getLogger(__name__)

_HALF_NEIGHBOURHOOD: Tuple[Tuple[int, int], ...] = ((0, 0), (1, 0), (1, 1), (0, 1), (-1, 1))


class RepulsionStrategy(Protocol):
    """Computes node-node repulsion for the current positions."""

    def accumulate(self, positions: np.ndarray, forces: np.ndarray) -> None:
        """Add repulsive forces for ``positions`` into ``forces`` in place."""


def _pair_forces(delta: np.ndarray, strength: float, min_distance: float) -> np.ndarray:
    """Return inverse-distance repulsion for pair offsets ``delta`` (shape ``(..., 2)``)."""

    distance = np.maximum(np.hypot(delta[..., 0], delta[..., 1]), min_distance)
    coefficient = strength / (distance * distance)
    return delta * coefficient[..., None]


class PairwiseRepulsion:
    """Exact all-pairs repulsion, quadratic in node count."""

    def __init__(self, strength: float, min_distance: float) -> None:
        self._strength = float(strength)
        self._min_distance = float(min_distance)

    def accumulate(self, positions: np.ndarray, forces: np.ndarray) -> None:
        count = positions.shape[0]
        if count < 2 or self._strength == 0:
            return
        delta = positions[:, None, :] - positions[None, :, :]
        pair = _pair_forces(delta, self._strength, self._min_distance)
        pair[np.arange(count), np.arange(count)] = 0.0
        forces += pair.sum(axis=1)


class GridRepulsion:
    """Repulsion restricted to pairs closer than ``cell_size`` using a uniform grid.

    Only neighbouring cells are visited, so the cost grows with local density
    rather than with the square of the node count. Pairs within the cut-off
    receive exactly the same force as :class:`PairwiseRepulsion` would apply.
    """

    def __init__(self, strength: float, min_distance: float, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self._strength = float(strength)
        self._min_distance = float(min_distance)
        self._cell_size = float(cell_size)

    def accumulate(self, positions: np.ndarray, forces: np.ndarray) -> None:
        count = positions.shape[0]
        if count < 2 or self._strength == 0:
            return
        cells = np.floor(positions / self._cell_size).astype(np.int64)
        buckets: DefaultDict[Tuple[int, int], List[int]] = defaultdict(list)
        for index, (cx, cy) in enumerate(cells.tolist()):
            buckets[(cx, cy)].append(index)

        for (cx, cy), members in buckets.items():
            left = np.asarray(members, dtype=np.int64)
            for dx, dy in _HALF_NEIGHBOURHOOD:
                neighbours = buckets.get((cx + dx, cy + dy))
                if not neighbours:
                    continue
                right = np.asarray(neighbours, dtype=np.int64)
                delta = positions[left][:, None, :] - positions[right][None, :, :]
                distance = np.hypot(delta[..., 0], delta[..., 1])
                mask = distance <= self._cell_size
                if dx == 0 and dy == 0:
                    mask &= np.triu(np.ones_like(mask, dtype=bool), k=1)
                pair = _pair_forces(delta, self._strength, self._min_distance)
                pair[~mask] = 0.0
                forces[left] += pair.sum(axis=1)
                forces[right] -= pair.sum(axis=0)


def spring_forces(
    positions: np.ndarray,
    sources: np.ndarray,
    targets: np.ndarray,
    rest_lengths: np.ndarray,
    stiffness: float,
    min_distance: float,
    forces: np.ndarray,
) -> None:
    """Pull each linked pair toward its rest length, linearly in the deviation."""

    if sources.size == 0 or stiffness == 0:
        return
    delta = positions[targets] - positions[sources]
    distance = np.maximum(np.hypot(delta[:, 0], delta[:, 1]), min_distance)
    stretch = (distance - rest_lengths) * stiffness
    pull = delta / distance[:, None] * stretch[:, None]
    np.add.at(forces, sources, pull)
    np.add.at(forces, targets, -pull)


def centering_forces(positions: np.ndarray, center: Tuple[float, float], gravity: float, forces: np.ndarray) -> None:
    """Weak linear pull of every node toward ``center``."""

    if gravity == 0:
        return
    forces += gravity * (np.asarray(center, dtype=np.float64) - positions)


def boundary_forces(
    positions: np.ndarray,
    lower: Tuple[float, float],
    upper: Tuple[float, float],
    stiffness: float,
    forces: np.ndarray,
) -> None:
    """Push nodes outside ``[lower, upper]`` back inward, proportionally to penetration."""

    if stiffness == 0:
        return
    low = np.asarray(lower, dtype=np.float64)
    high = np.asarray(upper, dtype=np.float64)
    below = np.maximum(low - positions, 0.0)
    above = np.maximum(positions - high, 0.0)
    forces += stiffness * (below - above)
