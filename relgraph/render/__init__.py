"""Frame snapshots and render throttling."""

from relgraph.render.throttle import (
    EdgeFrame,
    Frame,
    FrameBuilder,
    NodeFrame,
    RenderThrottler,
    ViewportFrame,
    build_frame,
)

__all__ = [
    "EdgeFrame",
    "Frame",
    "FrameBuilder",
    "NodeFrame",
    "RenderThrottler",
    "ViewportFrame",
    "build_frame",
]
