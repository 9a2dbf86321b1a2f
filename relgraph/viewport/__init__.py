"""Viewport pan/zoom controller."""

from relgraph.viewport.controller import ViewportController, ViewportState

__all__ = ["ViewportController", "ViewportState"]
