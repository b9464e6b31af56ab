"""Data models for graphmem"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union

NodeId = Union[str, int]
PropertyValue = Union[bool, int, float, str, date]


def canonical_id(node_id: Any) -> str:
    """
    Normalize a node identity to its canonical string key.

    Integral floats collapse to their integer form so that ``1`` and ``1.0``
    address the same node.

    Examples:
        >>> canonical_id(1)
        '1'
        >>> canonical_id(1.0)
        '1'
        >>> canonical_id("user:1")
        'user:1'
    """
    if isinstance(node_id, float) and node_id.is_integer():
        node_id = int(node_id)
    return str(node_id)


@dataclass
class Edge:
    """Outgoing relationship owned by its source node"""

    relationship: str
    target: NodeId
    weight: Optional[float] = None

    @property
    def target_key(self) -> str:
        return canonical_id(self.target)


@dataclass
class Node:
    """Typed graph node with properties, outgoing edges and an optional embedding"""

    id: NodeId
    type: str  # Collection name
    properties: Dict[str, PropertyValue] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    embedding: Optional[List[float]] = None

    @property
    def key(self) -> str:
        """Canonical string key used by every index"""
        return canonical_id(self.id)

    def to_row(self) -> Dict[str, Any]:
        """
        Snapshot the node as a result row.

        Returns:
            Dict with id, type and a copy of properties
        """
        return {
            "id": self.id,
            "type": self.type,
            "properties": dict(self.properties),
        }


def values_equal(a: Any, b: Any) -> bool:
    """Raw equality that keeps booleans distinct from the numbers 0 and 1"""
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b
