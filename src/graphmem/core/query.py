"""Compiled query values consumed by the storage engine"""

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from graphmem.core.models import PropertyValue, values_equal

# WHERE values: a scalar literal or a bracketed list of literals
Literal = Union[PropertyValue, Tuple[PropertyValue, ...]]


class Operation(str, Enum):
    """Operation kinds the compiler knows about (the engine runs FETCH and GRAPH_TRAVERSE)"""

    FETCH = "FETCH"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    GRAPH_TRAVERSE = "GRAPH_TRAVERSE"


# Synonyms accepted on the operation line
OPERATION_ALIASES = {"GRAPH_QUERY": Operation.GRAPH_TRAVERSE.value}


def normalize_operation(name: str) -> str:
    """Map an operation keyword to its canonical tag; unknown names pass through unchanged"""
    upper = name.upper()
    return OPERATION_ALIASES.get(upper, upper)


class ComparisonOp(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    @property
    def marker(self) -> Optional[str]:
        """Mongo-style marker ($gt, ...) or None for plain equality"""
        if self is ComparisonOp.EQ:
            return None
        return f"${self.value}"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


# Longest operators first so that ">=" is never read as ">"
FILTER_OPERATORS: Tuple[Tuple[str, ComparisonOp], ...] = (
    (">=", ComparisonOp.GTE),
    ("<=", ComparisonOp.LTE),
    (">", ComparisonOp.GT),
    ("<", ComparisonOp.LT),
    ("!=", ComparisonOp.NE),
    ("=", ComparisonOp.EQ),
)
_SYMBOLS = {op: text for text, op in FILTER_OPERATORS}


@dataclass(frozen=True)
class Comparison:
    """Single FILTER condition against one property"""

    op: ComparisonOp
    value: PropertyValue

    def matches(self, actual: Any, present: bool = True) -> bool:
        """
        Evaluate the condition against a node's property value.

        A missing property satisfies only ``ne``. Values that cannot be
        ordered against each other (e.g. str vs int) do not satisfy an
        ordering comparison.
        """
        if not present:
            return self.op is ComparisonOp.NE
        if self.op is ComparisonOp.EQ:
            return values_equal(actual, self.value)
        if self.op is ComparisonOp.NE:
            return not values_equal(actual, self.value)
        try:
            if self.op is ComparisonOp.GT:
                return actual > self.value
            if self.op is ComparisonOp.GTE:
                return actual >= self.value
            if self.op is ComparisonOp.LT:
                return actual < self.value
            return actual <= self.value
        except TypeError:
            return False


class AggregateFunction(str, Enum):
    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


@dataclass(frozen=True)
class ComputeExpression:
    function: AggregateFunction
    field: Optional[str] = None  # Ignored for COUNT


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class SortExpression:
    field: str
    order: SortOrder = SortOrder.ASC


def _freeze(clause: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    # Empty clauses are represented as absent
    if not clause:
        return None
    return MappingProxyType(dict(clause))


@dataclass(frozen=True)
class Query:
    """
    Compiled, immutable query.

    Clause fields are either None or a non-empty read-only mapping, so
    "field is not None" always means "clause active".
    """

    name: str = ""
    intent: str = ""
    operation: str = Operation.FETCH.value
    target: str = ""
    where: Optional[Mapping[str, Any]] = None
    compute: Optional[Mapping[str, ComputeExpression]] = None
    filter: Optional[Mapping[str, Comparison]] = None
    sort: Optional[SortExpression] = None
    limit: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "operation", normalize_operation(self.operation))
        object.__setattr__(self, "where", _freeze(self.where))
        object.__setattr__(self, "compute", _freeze(self.compute))
        object.__setattr__(self, "filter", _freeze(self.filter))

    def to_dict(self) -> dict:
        """Plain-data view of the query (JSON-friendly apart from dates)"""
        data: dict = {
            "name": self.name,
            "intent": self.intent,
            "operation": self.operation,
            "target": self.target,
        }
        if self.where is not None:
            data["where"] = dict(self.where)
        if self.compute is not None:
            data["compute"] = {
                key: {"function": expr.function.value, "field": expr.field}
                for key, expr in self.compute.items()
            }
        if self.filter is not None:
            data["filter"] = {
                key: {"op": cond.op.value, "value": cond.value}
                for key, cond in self.filter.items()
            }
        if self.sort is not None:
            data["sort"] = {"field": self.sort.field, "order": self.sort.order.value}
        if self.limit is not None:
            data["limit"] = self.limit
        return data

    def cache_key(self) -> str:
        """Canonical serialization; equal queries always produce equal keys"""
        return json.dumps(self.to_dict(), sort_keys=True, default=_encode_literal)

    def __hash__(self) -> int:
        # Clause values may be unhashable, so only clause keys take part
        return hash((
            self.name,
            self.intent,
            self.operation,
            self.target,
            tuple(sorted(self.where or ())),
            tuple(sorted(self.compute or ())),
            tuple(sorted(self.filter or ())),
            self.sort,
            self.limit,
        ))


def _encode_literal(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return {"$date": value.isoformat()}
    raise TypeError(f"Cannot serialize {type(value).__name__} in query")

