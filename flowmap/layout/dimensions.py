"""Rendered node sizes by shape.

These must match the sizes the canvas draws, otherwise centered nodes
drift off the spine.
"""
from typing import NamedTuple, Optional


class Size(NamedTuple):
    width: float
    height: float


NODE_DIMENSIONS: dict[str, Size] = {
    "default": Size(150, 50),
    "oval": Size(160, 45),
    "diamond": Size(160, 160),
}

FALLBACK_SIZE = Size(180, 50)


def node_size(node_type: Optional[str]) -> Size:
    """Size for a node type; untyped nodes are process steps."""
    return NODE_DIMENSIONS.get(node_type or "default", FALLBACK_SIZE)


def node_width(node_type: Optional[str]) -> float:
    return node_size(node_type).width


def node_height(node_type: Optional[str]) -> float:
    return node_size(node_type).height
