"""Component finder - splits a graph into independently drawn islands."""
from typing import Iterable


class UnionFind:
    """Disjoint-set over string ids with iterative path compression."""

    def __init__(self, ids: Iterable[str]):
        self.parent: dict[str, str] = {node_id: node_id for node_id in ids}

    def find(self, node_id: str) -> str:
        root = node_id
        while self.parent[root] != root:
            root = self.parent[root]

        # Second pass points every node on the path straight at the root
        while self.parent[node_id] != root:
            next_id = self.parent[node_id]
            self.parent[node_id] = root
            node_id = next_id

        return root

    def union(self, a: str, b: str) -> None:
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a != root_b:
            self.parent[root_a] = root_b


def find_islands(
    node_ids: list[str],
    edges: Iterable[tuple[str, str]],
) -> list[list[str]]:
    """Group node ids into islands connected by the given edges.

    Edges must only reference ids in ``node_ids``. Islands are ordered by
    the position of their first member in ``node_ids`` and keep input order
    internally.
    """
    sets = UnionFind(node_ids)
    for source, target in edges:
        sets.union(source, target)

    groups: dict[str, list[str]] = {}
    for node_id in node_ids:
        groups.setdefault(sets.find(node_id), []).append(node_id)

    return list(groups.values())
