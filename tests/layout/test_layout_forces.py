"""Tests for the vectorised force kernels."""

from __future__ import annotations

import numpy as np
import pytest

from relgraph.layout.forces import (
    GridRepulsion,
    PairwiseRepulsion,
    boundary_forces,
    centering_forces,
    spring_forces,
)


def _random_positions(count: int, seed: int = 3) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.uniform(0.0, 400.0, size=(count, 2))


def test_pairwise_repulsion_is_inverse_distance_and_symmetric() -> None:
    positions = np.array([[0.0, 0.0], [10.0, 0.0]])
    forces = np.zeros_like(positions)
    PairwiseRepulsion(strength=100.0, min_distance=1.0).accumulate(positions, forces)
    assert forces[0] == pytest.approx([-10.0, 0.0])
    assert forces[1] == pytest.approx([10.0, 0.0])


def test_pairwise_repulsion_floors_distance() -> None:
    positions = np.array([[0.0, 0.0], [0.001, 0.0]])
    forces = np.zeros_like(positions)
    PairwiseRepulsion(strength=100.0, min_distance=1.0).accumulate(positions, forces)
    assert np.all(np.isfinite(forces))
    assert abs(forces[0, 0]) <= 100.0


def test_grid_matches_pairwise_when_cutoff_covers_every_pair() -> None:
    positions = _random_positions(40)
    expected = np.zeros_like(positions)
    actual = np.zeros_like(positions)
    PairwiseRepulsion(100.0, 1.0).accumulate(positions, expected)
    GridRepulsion(100.0, 1.0, cell_size=1000.0).accumulate(positions, actual)
    np.testing.assert_allclose(actual, expected, rtol=1e-9, atol=1e-12)


def test_grid_matches_pairwise_across_neighbouring_cells() -> None:
    positions = np.array([[95.0, 95.0], [105.0, 105.0], [105.0, 95.0], [95.0, 105.0]])
    expected = np.zeros_like(positions)
    actual = np.zeros_like(positions)
    PairwiseRepulsion(50.0, 1.0).accumulate(positions, expected)
    GridRepulsion(50.0, 1.0, cell_size=100.0).accumulate(positions, actual)
    np.testing.assert_allclose(actual, expected, rtol=1e-9)


def test_grid_ignores_pairs_beyond_cutoff() -> None:
    positions = np.array([[0.0, 0.0], [500.0, 0.0]])
    forces = np.zeros_like(positions)
    GridRepulsion(100.0, 1.0, cell_size=50.0).accumulate(positions, forces)
    assert np.all(forces == 0.0)


def test_spring_pulls_stretched_link_together() -> None:
    positions = np.array([[0.0, 0.0], [200.0, 0.0]])
    forces = np.zeros_like(positions)
    spring_forces(
        positions,
        np.array([0]),
        np.array([1]),
        np.array([100.0]),
        stiffness=0.5,
        min_distance=1.0,
        forces=forces,
    )
    assert forces[0] == pytest.approx([50.0, 0.0])
    assert forces[1] == pytest.approx([-50.0, 0.0])


def test_centering_and_boundary_push_inward() -> None:
    positions = np.array([[-10.0, 300.0]])
    forces = np.zeros_like(positions)
    centering_forces(positions, (200.0, 300.0), 0.1, forces)
    assert forces[0] == pytest.approx([21.0, 0.0])

    forces = np.zeros_like(positions)
    boundary_forces(positions, (40.0, 40.0), (360.0, 560.0), 0.5, forces)
    assert forces[0] == pytest.approx([25.0, 0.0])


@pytest.mark.parametrize(
    "strategy",
    [PairwiseRepulsion(100.0, 1.0), GridRepulsion(100.0, 1.0, cell_size=120.0)],
    ids=["pairwise", "grid"],
)
def test_repulsion_does_not_depend_on_node_order(strategy) -> None:
    positions = _random_positions(30, seed=11)
    order = np.random.default_rng(5).permutation(len(positions))
    forces = np.zeros_like(positions)
    permuted = np.zeros_like(positions)
    strategy.accumulate(positions, forces)
    strategy.accumulate(positions[order], permuted)
    np.testing.assert_allclose(permuted, forces[order], rtol=1e-9, atol=1e-12)
