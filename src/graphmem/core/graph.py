"""Breadth-first traversal over outgoing edges"""

from collections import deque
from typing import Callable, Collection, List, Optional

from graphmem.core.models import Node, canonical_id


def traverse_edges(
    start_id,
    relationships: Collection[str],
    get_node: Callable[[str], Optional[Node]],
    max_depth: int = 2,
) -> List[Node]:
    """
    Walk outgoing edges breadth-first, following only the given relationships.

    Each node id is expanded at most once regardless of the path that
    reached it. Edge weights are ignored.

    Args:
        start_id: Identity of the starting node (excluded from the result)
        relationships: Relationship labels to follow
        get_node: Lookup by canonical id; None for unknown ids
        max_depth: Nodes further than this many hops are not visited

    Returns:
        Reached nodes in breadth-first order
    """
    allowed = set(relationships)
    visited = set()
    results: List[Node] = []
    queue = deque([(canonical_id(start_id), 0)])

    while queue:
        node_id, depth = queue.popleft()
        if node_id in visited or depth > max_depth:
            continue
        visited.add(node_id)

        node = get_node(node_id)
        if node is None:
            continue  # Dangling edge target

        if depth > 0:
            results.append(node)

        for edge in node.edges:
            if edge.relationship in allowed:
                queue.append((edge.target_key, depth + 1))

    return results
