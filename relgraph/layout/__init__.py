"""Force-directed layout engine."""

from relgraph.layout.engine import ForceSimulation, build_repulsion
from relgraph.layout.forces import GridRepulsion, PairwiseRepulsion, RepulsionStrategy

__all__ = [
    "ForceSimulation",
    "GridRepulsion",
    "PairwiseRepulsion",
    "RepulsionStrategy",
    "build_repulsion",
]
