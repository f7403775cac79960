"""Centered-spine layout engine for process maps."""
from flowmap.layout.dimensions import NODE_DIMENSIONS, node_size
from flowmap.layout.engine import LayoutParams, layout
from flowmap.layout.loopback import forward_edges

__all__ = [
    "NODE_DIMENSIONS",
    "node_size",
    "LayoutParams",
    "layout",
    "forward_edges",
]
