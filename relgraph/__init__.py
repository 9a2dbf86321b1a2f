"""Force-directed relationship graph layout and touch interaction engine."""

from relgraph.config import ConfigError, DragReleasePolicy, EngineConfig, load_config
from relgraph.contracts import Person, PersonProperty, Relation
from relgraph.session import GraphSession

__all__ = [
    "ConfigError",
    "DragReleasePolicy",
    "EngineConfig",
    "GraphSession",
    "Person",
    "PersonProperty",
    "Relation",
    "load_config",
]
