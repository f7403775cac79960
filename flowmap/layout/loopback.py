"""Loop-back edge classification.

Loop-back edges point backward in flow order (e.g. "rework" returning to
an earlier step). They stay in the graph but are ignored when islands and
levels are computed, so a loop never pulls its target downward.
"""
from typing import Literal

from flowmap.models.graph import Edge, Node

LoopBackPolicy = Literal["positional", "topological"]

SELF_CONNECTING_EDGE = "selfConnecting"


def usable_edges(nodes: list[Node], edges: list[Edge]) -> list[Edge]:
    """Edges that can take part in leveling at all.

    Drops edges with a dangling endpoint, self-loops and edges rendered as
    self-connecting loops.
    """
    node_ids = {node.id for node in nodes}
    return [
        edge for edge in edges
        if edge.source in node_ids
        and edge.target in node_ids
        and edge.source != edge.target
        and edge.type != SELF_CONNECTING_EDGE
    ]


def is_positional_loop_back(edge: Edge, nodes_by_id: dict[str, Node]) -> bool:
    """Target drawn above source in the prior layout."""
    source = nodes_by_id[edge.source]
    target = nodes_by_id[edge.target]
    return target.position.y < source.position.y


def topological_loop_backs(nodes: list[Node], edges: list[Edge]) -> set[int]:
    """Indices of edges that close a cycle in a depth-first walk.

    The walk starts from nodes without incoming edges (input order), then
    from any node still unvisited, so every cycle is broken exactly where
    the traversal first re-enters its own active path.
    """
    outgoing: dict[str, list[int]] = {node.id: [] for node in nodes}
    has_parent: set[str] = set()
    for index, edge in enumerate(edges):
        outgoing[edge.source].append(index)
        has_parent.add(edge.target)

    starts = [node.id for node in nodes if node.id not in has_parent]
    starts.extend(node.id for node in nodes)

    on_path: set[str] = set()
    done: set[str] = set()
    back_edges: set[int] = set()

    for start in starts:
        if start in done:
            continue
        on_path.add(start)
        stack = [(start, iter(outgoing[start]))]
        while stack:
            node_id, pending = stack[-1]
            index = next(pending, None)
            if index is None:
                stack.pop()
                on_path.discard(node_id)
                done.add(node_id)
                continue
            target = edges[index].target
            if target in on_path:
                back_edges.add(index)
            elif target not in done:
                on_path.add(target)
                stack.append((target, iter(outgoing[target])))

    return back_edges


def forward_edges(
    nodes: list[Node],
    edges: list[Edge],
    policy: LoopBackPolicy = "positional",
) -> list[Edge]:
    """Edges used for island and level assignment, in input order."""
    candidates = usable_edges(nodes, edges)

    if policy == "topological":
        back = topological_loop_backs(nodes, candidates)
        return [edge for index, edge in enumerate(candidates) if index not in back]

    nodes_by_id = {node.id: node for node in nodes}
    return [
        edge for edge in candidates
        if not is_positional_loop_back(edge, nodes_by_id)
    ]
