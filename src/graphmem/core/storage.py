"""In-memory graph storage engine with secondary indexes and a result cache"""

import copy
import functools
import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from graphmem.core.cache import ResultCache
from graphmem.core.config import EngineConfig
from graphmem.core.errors import (
    ComputeFieldError,
    ExecutionError,
    MissingParameterError,
    UnsupportedOperationError,
)
from graphmem.core.graph import traverse_edges
from graphmem.core.models import Node, canonical_id, values_equal
from graphmem.core.query import (
    AggregateFunction,
    Comparison,
    ComputeExpression,
    Operation,
    Query,
    SortExpression,
    SortOrder,
)
from graphmem.core.retrieval import rank_by_similarity

logger = logging.getLogger(__name__)

# Ordered set of canonical node ids (dict keys keep insertion order)
IdSet = Dict[str, None]


def _value_key(value: Any) -> Tuple[bool, Any]:
    # Keep True and 1 apart in the property index
    return (isinstance(value, bool), value)


class GraphStorage:
    """
    Node store with type, property and edge indexes.

    Indexes are updated on every insert. Not thread-safe: callers serialize
    access (one logical writer stream).
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize an empty store.

        Args:
            config: Engine settings (defaults if None)
            clock: Monotonic seconds source for cache expiry
        """
        self.config = config or EngineConfig()
        self._nodes: Dict[str, Node] = {}
        self._type_index: Dict[str, IdSet] = {}
        self._property_index: Dict[str, Dict[Tuple[bool, Any], IdSet]] = {}
        self._edge_index: Dict[str, IdSet] = {}  # "source:relationship" -> targets
        self._cache = ResultCache(
            ttl=self.config.cache_ttl_seconds,
            clock=clock,
            enabled=self.config.cache_enabled,
        )

    # =========================================================================
    # Node operations
    # =========================================================================

    def add_node(self, node: Node) -> None:
        """
        Insert or overwrite a node and index it.

        With ``replace_index_entries`` the previous record's index footprint
        is removed first; otherwise stale entries for the old record remain.
        """
        node = copy.deepcopy(node)
        node_id = node.key

        for key, value in node.properties.items():
            try:
                hash(value)
            except TypeError:
                raise ValueError(f"Property {key!r} of node {node_id} is not a scalar: {value!r}")

        previous = self._nodes.get(node_id)
        if previous is not None and self.config.replace_index_entries:
            self._unindex(previous)

        self._nodes[node_id] = node

        self._type_index.setdefault(node.type, {})[node_id] = None

        for key, value in node.properties.items():
            values = self._property_index.setdefault(key, {})
            values.setdefault(_value_key(value), {})[node_id] = None

        for edge in node.edges:
            edge_key = f"{node_id}:{edge.relationship}"
            self._edge_index.setdefault(edge_key, {})[edge.target_key] = None

        logger.debug(
            "Indexed node %s (type=%s, %d properties, %d edges)",
            node_id, node.type, len(node.properties), len(node.edges),
        )

    def add_nodes(self, nodes: Iterable[Node]) -> int:
        count = 0
        for node in nodes:
            self.add_node(node)
            count += 1
        return count

    def _unindex(self, node: Node) -> None:
        node_id = node.key

        ids = self._type_index.get(node.type)
        if ids is not None:
            ids.pop(node_id, None)
            if not ids:
                del self._type_index[node.type]

        for key, value in node.properties.items():
            values = self._property_index.get(key)
            if values is None:
                continue
            ids = values.get(_value_key(value))
            if ids is not None:
                ids.pop(node_id, None)
                if not ids:
                    del values[_value_key(value)]
            if not values:
                del self._property_index[key]

        for edge in node.edges:
            edge_key = f"{node_id}:{edge.relationship}"
            targets = self._edge_index.get(edge_key)
            if targets is not None:
                targets.pop(edge.target_key, None)
                if not targets:
                    del self._edge_index[edge_key]

    def get_node(self, node_id) -> Optional[Node]:
        """Retrieve a copy of a node by id (str or int)"""
        node = self._nodes.get(canonical_id(node_id))
        return copy.deepcopy(node) if node is not None else None

    def _resolve(self, ids: Iterable[str]) -> List[Node]:
        # Callers only ever see copies; stored nodes change through add_node
        return [copy.deepcopy(self._nodes[node_id]) for node_id in ids if node_id in self._nodes]

    def get_nodes_by_type(self, node_type: str) -> List[Node]:
        """All nodes of a type, in insertion order of their ids"""
        ids = self._type_index.get(node_type)
        if not ids:
            return []
        return self._resolve(ids)

    def find_by_property(self, key: str, value: Any) -> List[Node]:
        """Exact-match lookup through the property index"""
        values = self._property_index.get(key)
        if values is None:
            return []
        try:
            ids = values.get(_value_key(value))
        except TypeError:
            return []  # Unhashable values are never stored
        if not ids:
            return []
        return self._resolve(ids)

    def traverse(
        self,
        start_id,
        relationships: Sequence[str],
        max_depth: Optional[int] = None,
    ) -> List[Node]:
        """
        Breadth-first walk from start_id along the given relationships.

        Args:
            start_id: Starting node identity (not included in the result)
            relationships: Relationship labels to follow
            max_depth: Hop limit (default from config, 2)

        Returns:
            Nodes reached at depth >= 1, breadth-first order
        """
        if max_depth is None:
            max_depth = self.config.max_depth
        nodes = traverse_edges(start_id, relationships, self._nodes.get, max_depth=max_depth)
        logger.debug("Traversal from %s reached %d nodes", canonical_id(start_id), len(nodes))
        return copy.deepcopy(nodes)

    def vector_search(
        self,
        query_embedding: Sequence[float],
        node_type: Optional[str] = None,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[Node]:
        """
        Nodes whose embedding is cosine-similar to the query vector.

        Args:
            query_embedding: Query vector
            node_type: Restrict candidates to one type
            limit: Maximum results (default from config, 10)
            threshold: Minimum similarity (default from config, 0.7)

        Returns:
            Nodes sorted by similarity descending
        """
        if limit is None:
            limit = self.config.vector_limit
        if threshold is None:
            threshold = self.config.vector_threshold

        if node_type is not None:
            candidates = self.get_nodes_by_type(node_type)
        else:
            candidates = list(self._nodes.values())

        ranked = rank_by_similarity(query_embedding, candidates, limit=limit, threshold=threshold)
        return [copy.deepcopy(node) for node, _ in ranked]

    # =========================================================================
    # Query execution
    # =========================================================================

    def execute_query(self, query: Query) -> List[Dict[str, Any]]:
        """
        Execute a compiled query.

        Pipeline: cache check -> FETCH/GRAPH_TRAVERSE -> FILTER -> SORT ->
        LIMIT -> COMPUTE -> cache store.

        Returns:
            Rows of {id, type, properties}, or a single aggregate row when
            the query has a COMPUTE clause

        Raises:
            MissingParameterError: GRAPH_TRAVERSE without a start node
            UnsupportedOperationError: Any other operation kind
            ComputeFieldError: Aggregate over values it cannot combine
        """
        cache_key = query.cache_key()
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for query %r", query.name)
            return cached

        if query.operation == Operation.FETCH.value:
            nodes = self._execute_fetch(query)
        elif query.operation == Operation.GRAPH_TRAVERSE.value:
            nodes = self._execute_traverse(query)
        else:
            raise UnsupportedOperationError(query.operation)

        if query.filter is not None:
            nodes = [node for node in nodes if _matches_filter(node, query.filter)]

        if query.sort is not None:
            nodes = _apply_sort(nodes, query.sort)

        if query.limit is not None:
            nodes = nodes[: query.limit]

        if query.compute is not None:
            rows = [_apply_compute(nodes, query.compute)]
        else:
            rows = [node.to_row() for node in nodes]

        self._cache.set(cache_key, rows)
        logger.debug("Executed query %r: %d rows", query.name, len(rows))
        return rows

    def _execute_fetch(self, query: Query) -> List[Node]:
        nodes = self.get_nodes_by_type(query.target)
        if query.where is None:
            return nodes
        return [node for node in nodes if _matches_where(node, query.where)]

    def _execute_traverse(self, query: Query) -> List[Node]:
        where = query.where or {}
        start = where.get("start")
        if start is None or start == "":
            raise MissingParameterError("GRAPH_TRAVERSE requires start node")

        path = where.get("path", ())
        if isinstance(path, str):
            relationships = [part.strip() for part in path.split(",") if part.strip()]
        elif isinstance(path, (tuple, list)):
            relationships = [str(part) for part in path]
        else:
            raise ExecutionError(
                f"GRAPH_TRAVERSE path must be a relationship list or comma-separated string, got {path!r}"
            )

        depth = where.get("depth", self.config.max_depth)
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
            raise ExecutionError(f"GRAPH_TRAVERSE depth must be a non-negative integer, got {depth!r}")

        return self.traverse(start, relationships, max_depth=depth)

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def stats(self) -> Dict[str, Any]:
        """Node counts, cache size and index cardinalities"""
        return {
            "total_nodes": len(self._nodes),
            "nodes_by_type": [
                {"type": node_type, "count": len(ids)}
                for node_type, ids in self._type_index.items()
            ],
            "cache_size": len(self._cache),
            "cache_hits": self._cache.hits,
            "cache_misses": self._cache.misses,
            "indexes": {
                "types": len(self._type_index),
                "properties": len(self._property_index),
                "edges": len(self._edge_index),
            },
        }

    def clear(self) -> None:
        """Drop every node, index entry and cached result"""
        count = len(self._nodes)
        self._nodes.clear()
        self._type_index.clear()
        self._property_index.clear()
        self._edge_index.clear()
        self._cache.clear()
        logger.info("Cleared graph storage (%d nodes)", count)

    def __len__(self) -> int:
        return len(self._nodes)


# =============================================================================
# Query pipeline helpers
# =============================================================================

def _matches_where(node: Node, where: Mapping[str, Any]) -> bool:
    for key, value in where.items():
        if key not in node.properties:
            return False
        if not values_equal(node.properties[key], value):
            return False
    return True


def _matches_filter(node: Node, conditions: Mapping[str, Comparison]) -> bool:
    for key, condition in conditions.items():
        present = key in node.properties
        if not condition.matches(node.properties.get(key), present=present):
            return False
    return True


def _compare(a: Any, b: Any) -> int:
    # Missing or mutually unordered values compare as ties
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        pass
    return 0


def _apply_sort(nodes: List[Node], sort: SortExpression) -> List[Node]:
    """Stable sort; DESC flips each comparison so ties keep input order"""
    sign = -1 if sort.order is SortOrder.DESC else 1

    def compare(a: Node, b: Node) -> int:
        return sign * _compare(a.properties.get(sort.field), b.properties.get(sort.field))

    return sorted(nodes, key=functools.cmp_to_key(compare))


def _numeric_sum(nodes: List[Node], field: Optional[str], function: str) -> float:
    total = 0
    for node in nodes:
        value = node.properties.get(field)
        if value is None:
            continue  # Missing counts as zero
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ComputeFieldError(
                f"{function}({field}) needs numeric values, node {node.key} has {value!r}"
            )
        total += value
    return total


def _apply_compute(nodes: List[Node], compute: Mapping[str, ComputeExpression]) -> Dict[str, Any]:
    """
    Collapse nodes into one aggregate row.

    Empty input: COUNT and SUM give 0, AVG gives NaN, MIN gives +inf and
    MAX gives -inf.
    """
    row: Dict[str, Any] = {}
    for key, expr in compute.items():
        function = expr.function
        if function is AggregateFunction.COUNT:
            row[key] = len(nodes)
        elif function is AggregateFunction.SUM:
            row[key] = _numeric_sum(nodes, expr.field, function.value)
        elif function is AggregateFunction.AVG:
            total = _numeric_sum(nodes, expr.field, function.value)
            row[key] = total / len(nodes) if nodes else math.nan
        else:
            values = [
                node.properties[expr.field]
                for node in nodes
                if node.properties.get(expr.field) is not None
            ]
            if not values:
                row[key] = math.inf if function is AggregateFunction.MIN else -math.inf
                continue
            try:
                row[key] = min(values) if function is AggregateFunction.MIN else max(values)
            except TypeError as e:
                raise ComputeFieldError(
                    f"{function.value}({expr.field}) over incomparable values: {e}"
                ) from e
    return row
