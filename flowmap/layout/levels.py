"""Level assigner - vertical depth of each node inside one island."""
from collections import deque
from typing import Literal

LevelingStrategy = Literal["longest_path", "first_visit"]


class IslandGraph:
    """Parent/child adjacency for one island, deduplicated, input ordered."""

    def __init__(self, node_ids: list[str], edges: list[tuple[str, str]]):
        self.node_ids = node_ids
        self.children: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
        self.parents: dict[str, list[str]] = {node_id: [] for node_id in node_ids}

        for source, target in edges:
            if target not in self.children[source]:
                self.children[source].append(target)
                self.parents[target].append(source)

    def roots(self) -> list[str]:
        """Nodes with no parent inside the island, falling back to the first node."""
        roots = [node_id for node_id in self.node_ids if not self.parents[node_id]]
        if not roots and self.node_ids:
            roots = [self.node_ids[0]]
        return roots


def first_visit_levels(graph: IslandGraph) -> dict[str, int]:
    """Breadth-first depth; a node keeps the level of its first visit.

    Merge points reached through parents at different depths land one
    below whichever parent the traversal reached first.
    """
    levels: dict[str, int] = {}
    seeds = graph.roots()

    while len(levels) < len(graph.node_ids):
        queue = deque()
        for seed in seeds:
            if seed not in levels:
                levels[seed] = 0
                queue.append(seed)

        while queue:
            node_id = queue.popleft()
            for child in graph.children[node_id]:
                if child not in levels:
                    levels[child] = levels[node_id] + 1
                    queue.append(child)

        # Nodes unreachable from the roots start a fresh traversal
        seeds = [node_id for node_id in graph.node_ids if node_id not in levels][:1]

    return levels


def _cycle_entry(graph: IslandGraph, pending: set[str], levels: dict[str, int]) -> str:
    """Pending node to release when every pending node still waits on a parent."""
    entry = None
    entry_depth = -1
    for node_id in graph.node_ids:
        if node_id not in pending:
            continue
        depth = max((levels[p] for p in graph.parents[node_id] if p in levels), default=-1)
        if depth > entry_depth:
            entry, entry_depth = node_id, depth
    if entry is None:
        entry = next(node_id for node_id in graph.node_ids if node_id in pending)
    return entry


def longest_path_levels(graph: IslandGraph) -> dict[str, int]:
    """Topological depth: one below the deepest parent.

    Processes nodes in Kahn order. If the remaining nodes form a cycle, the
    pending node entered from the deepest levelled parent is released first
    (earliest in input order on ties), using only the parents already
    levelled. A cycle with no levelled entry releases its earliest node.
    """
    remaining = {node_id: len(graph.parents[node_id]) for node_id in graph.node_ids}
    pending = set(graph.node_ids)
    ready = deque(node_id for node_id in graph.node_ids if remaining[node_id] == 0)
    levels: dict[str, int] = {}

    while pending:
        if not ready:
            ready.append(_cycle_entry(graph, pending, levels))

        node_id = ready.popleft()
        if node_id not in pending:
            continue
        pending.discard(node_id)

        levels[node_id] = max(
            (levels[parent] + 1 for parent in graph.parents[node_id] if parent in levels),
            default=0,
        )

        for child in graph.children[node_id]:
            remaining[child] -= 1
            if remaining[child] == 0 and child in pending:
                ready.append(child)

    return levels


def assign_levels(
    node_ids: list[str],
    edges: list[tuple[str, str]],
    strategy: LevelingStrategy = "longest_path",
) -> tuple[dict[str, int], IslandGraph]:
    """Assign an integer level to every node of an island.

    Returns the levels together with the island adjacency so the planner
    can reuse parent lookups.
    """
    graph = IslandGraph(node_ids, edges)
    if strategy == "first_visit":
        return first_visit_levels(graph), graph
    return longest_path_levels(graph), graph
