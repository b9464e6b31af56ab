#!/usr/bin/env python3
"""
Demo: compile and run queries against the sample shop graph

Loads demos/data/shop_nodes.yaml, then walks through a fetch, an aggregate,
a traversal, a similarity search and a failing query.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from graphmem.core.compiler import QueryCompiler
from graphmem.core.outcomes import run_query
from graphmem.core.schemas import load_nodes
from graphmem.core.storage import GraphStorage

DATA = Path(__file__).parent / "data" / "shop_nodes.yaml"

ACTIVE_USERS = """
@QUERY active_users
@INTENT "Users who are currently active"

FETCH user {
  WHERE {
    status: active
  }
}
"""

ORDER_TOTALS = """
@QUERY order_totals
@INTENT "Revenue summary"

FETCH order {
  COMPUTE {
    revenue: SUM(total)
    orders: COUNT()
    average: AVG(total)
  }
}
"""

ALICE_GRAPH = """
@QUERY alice_graph
GRAPH_QUERY user {
  WHERE {
    start: user:1
    path: [HAS_ORDER, CONTAINS]
  }
  SORT BY total DESC
}
"""


def main():
    print("=== graphmem Query Demo ===\n")

    storage = GraphStorage()
    compiler = QueryCompiler()
    count = storage.add_nodes(load_nodes(str(DATA)))
    print(f"Loaded {count} nodes\n")

    for text in (ACTIVE_USERS, ORDER_TOTALS, ALICE_GRAPH):
        query = compiler.parse(text)
        print(compiler.explain(query))
        plan = compiler.compile(query)
        print(f"Estimated: {plan.estimated_time:.1f}ms ({'; '.join(plan.optimizations) or 'none'})")
        for row in storage.execute_query(query):
            print(f"  {row}")
        print()

    print("Similar to [1, 0, 0]:")
    for node in storage.vector_search([1.0, 0.0, 0.0], node_type="user"):
        print(f"  {node.id} {node.properties}")
    print()

    print("Failing query (no start node):")
    outcome = run_query(storage, "GRAPH_TRAVERSE user { WHERE { path: [HAS_ORDER] } }", compiler)
    print(f"  success={outcome.success} error={outcome.error_type}: {outcome.message}")
    print()

    print("Natural-language stand-in:")
    print(compiler.from_natural_language("count all orders placed this week"))
    print()

    print(f"Stats: {storage.stats()}")


if __name__ == "__main__":
    main()
