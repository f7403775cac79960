"""Coordinate planner - turns levels into x/y positions for one island.

Vertical placement is height-aware: each level starts below the tallest
node of the previous level plus the vertical gap. Horizontal placement
keeps single nodes on the spine (or in their parent's lane) and spreads
multi-node levels symmetrically around it.
"""
from typing import Callable, Optional

from flowmap.layout.dimensions import node_height, node_width
from flowmap.layout.levels import IslandGraph
from flowmap.models.graph import Position

# Parent centers closer than this to the spine count as on-spine
SPINE_TOLERANCE = 1.0

MIN_ISLAND_WIDTH = 400
ISLAND_PADDING = 200

TraceSink = Callable[[str, dict], None]


class IslandPlan:
    """Placement plan for a single island."""

    def __init__(
        self,
        graph: IslandGraph,
        levels: dict[str, int],
        node_types: dict[str, Optional[str]],
        vertical_gap: float,
        branch_offset: float,
    ):
        self.graph = graph
        self.levels = levels
        self.node_types = node_types
        self.vertical_gap = vertical_gap
        self.branch_offset = branch_offset

        self.groups: dict[int, list[str]] = {}
        for node_id in graph.node_ids:
            self.groups.setdefault(levels[node_id], []).append(node_id)

    @property
    def width(self) -> float:
        widest = max((len(group) for group in self.groups.values()), default=1)
        return max(MIN_ISLAND_WIDTH, (widest - 1) * self.branch_offset + ISLAND_PADDING)

    def level_tops(self) -> dict[int, float]:
        """Top y of every level, accumulated from the tallest node per level."""
        tops: dict[int, float] = {}
        y = 0.0
        for level in sorted(self.groups):
            tops[level] = y
            tallest = max(node_height(self.node_types[n]) for n in self.groups[level])
            y += tallest + self.vertical_gap
        return tops

    def _single_center(self, node_id: str, centers: dict[str, float], spine: float) -> float:
        parents = [p for p in self.graph.parents[node_id] if p in centers]
        if len(parents) >= 2:
            # Merge point sits between the branches it joins
            return sum(centers[p] for p in parents) / len(parents)
        if len(parents) == 1 and abs(centers[parents[0]] - spine) > SPINE_TOLERANCE:
            return centers[parents[0]]
        return spine

    def place(self, spine: float, trace: Optional[TraceSink] = None) -> dict[str, Position]:
        """Positions for every node, with the island centered on ``spine``."""
        tops = self.level_tops()
        centers: dict[str, float] = {}
        positions: dict[str, Position] = {}

        for level in sorted(self.groups):
            group = self.groups[level]
            count = len(group)

            if count == 1:
                centers[group[0]] = self._single_center(group[0], centers, spine)
            elif count == 2:
                centers[group[0]] = spine - self.branch_offset
                centers[group[1]] = spine + self.branch_offset
            else:
                start = spine - (count - 1) * self.branch_offset / 2
                for index, node_id in enumerate(group):
                    centers[node_id] = start + index * self.branch_offset

            for node_id in group:
                width = node_width(self.node_types[node_id])
                positions[node_id] = Position(x=centers[node_id] - width / 2, y=tops[level])
                if trace:
                    trace(
                        "node_placed",
                        {
                            "node_id": node_id,
                            "type": self.node_types[node_id],
                            "level": level,
                            "width": width,
                            "center_x": centers[node_id],
                            "x": positions[node_id].x,
                            "y": positions[node_id].y,
                        },
                    )

        return positions
