"""Merge function for update-mode reconciliation."""
from typing import Iterable

from flowmap.models.graph import Node


def merge_nodes(
    existing: list[Node],
    updated: Iterable[Node],
    removed_ids: Iterable[str],
) -> list[Node]:
    """Patch ``existing`` with ``updated`` nodes.

    - Existing nodes keep their order; an updated node with the same id
      replaces it in place
    - Updated nodes with new ids are appended in arrival order
    - Nodes whose id is in ``removed_ids`` are dropped, whichever list
      they came from

    Neither input is mutated.
    """
    removed = set(removed_ids)
    pending = {node.id: node for node in updated}
    merged: list[Node] = []

    for node in existing:
        if node.id in removed:
            continue
        replacement = pending.pop(node.id, None)
        merged.append(replacement if replacement is not None else node)

    for node_id, node in pending.items():
        if node_id not in removed:
            merged.append(node)

    return merged
