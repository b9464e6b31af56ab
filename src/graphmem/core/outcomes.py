"""Structured query outcomes for collaborators that must not see raw exceptions"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from graphmem.core.compiler import QueryCompiler
from graphmem.core.errors import GraphMemError
from graphmem.core.storage import GraphStorage


@dataclass
class QueryOutcome:
    """
    Result of running query text end to end.

    On failure ``rows`` is empty and ``error_type`` names the GraphMemError
    subclass (ParseError, MissingParameterError, ...).
    """

    success: bool
    message: str
    rows: List[Dict[str, Any]] = field(default_factory=list)
    duration_ms: float = 0.0
    query_name: str = ""
    error_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "message": self.message,
            "rows": self.rows,
            "duration_ms": self.duration_ms,
            "query_name": self.query_name,
        }
        if self.error_type is not None:
            data["error_type"] = self.error_type
        return data


def run_query(
    storage: GraphStorage,
    text: str,
    compiler: Optional[QueryCompiler] = None,
) -> QueryOutcome:
    """
    Compile and execute query text, reporting failures as an outcome.

    Only GraphMemError is converted; anything else is a bug and propagates.
    """
    compiler = compiler or QueryCompiler()
    started = time.perf_counter()

    def elapsed() -> float:
        return (time.perf_counter() - started) * 1000

    try:
        query = compiler.parse(text)
        rows = storage.execute_query(query)
    except GraphMemError as e:
        return QueryOutcome(
            success=False,
            message=str(e),
            duration_ms=elapsed(),
            error_type=type(e).__name__,
        )

    return QueryOutcome(
        success=True,
        message=f"{len(rows)} row(s)",
        rows=rows,
        duration_ms=elapsed(),
        query_name=query.name,
    )
