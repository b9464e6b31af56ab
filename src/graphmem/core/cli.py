"""CLI entry point for graphmem"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any

from graphmem.core.compiler import QueryCompiler
from graphmem.core.config import EngineConfig, load_config
from graphmem.core.errors import GraphMemError
from graphmem.core.logging_setup import setup_logging
from graphmem.core.models import Node
from graphmem.core.schemas import load_nodes
from graphmem.core.storage import GraphStorage

DEFAULT_CONFIG_PATH = "config.yaml"


def build_runtime(config: dict[str, Any], nodes_path: str | None = None) -> tuple[GraphStorage, QueryCompiler]:
    """
    Build storage and compiler from config, optionally loading a node file.

    Args:
        config: Configuration dictionary
        nodes_path: YAML/JSON file of node records

    Returns:
        Tuple of (storage, compiler)
    """
    storage = GraphStorage(EngineConfig.from_config(config))
    if nodes_path:
        count = storage.add_nodes(load_nodes(nodes_path))
        print(f"Loaded {count} nodes from {nodes_path}", file=sys.stderr)
    return storage, QueryCompiler()


def read_query_text(path: str) -> str:
    """Query text from a file, or stdin for '-'"""
    if path == "-":
        return sys.stdin.read()
    query_path = Path(path)
    if not query_path.exists():
        raise FileNotFoundError(f"Query file not found: {path}")
    return query_path.read_text()


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=_json_default))


def node_rows(nodes: list[Node]) -> list[dict[str, Any]]:
    return [node.to_row() for node in nodes]


def cmd_query(args):
    """Handle 'graphmem query' command"""
    storage, compiler = build_runtime(args.config_dict, args.nodes)
    query = compiler.parse(read_query_text(args.file))
    print_json(storage.execute_query(query))


def cmd_explain(args):
    """Handle 'graphmem explain' command"""
    compiler = QueryCompiler()
    query = compiler.parse(read_query_text(args.file))
    print(compiler.explain(query), end="")


def cmd_plan(args):
    """Handle 'graphmem plan' command"""
    compiler = QueryCompiler()
    plan = compiler.compile(compiler.parse(read_query_text(args.file)))
    print_json(
        {
            "query": plan.query.to_dict(),
            "optimizations": plan.optimizations,
            "estimated_time_ms": plan.estimated_time,
        }
    )


def cmd_nl(args):
    """Handle 'graphmem nl' command"""
    print(QueryCompiler().from_natural_language(args.text))


def cmd_stats(args):
    """Handle 'graphmem stats' command"""
    storage, _ = build_runtime(args.config_dict, args.nodes)
    print_json(storage.stats())


def cmd_similar(args):
    """Handle 'graphmem similar' command"""
    storage, _ = build_runtime(args.config_dict, args.nodes)
    try:
        vector = [float(part) for part in args.vector.split(",")]
    except ValueError:
        raise ValueError(f"--vector must be comma-separated numbers, got: {args.vector}")

    nodes = storage.vector_search(
        vector,
        node_type=args.type,
        limit=args.limit,
        threshold=args.threshold,
    )
    print_json(node_rows(nodes))


def cmd_traverse(args):
    """Handle 'graphmem traverse' command"""
    storage, _ = build_runtime(args.config_dict, args.nodes)
    nodes = storage.traverse(args.start, args.rel, max_depth=args.depth)
    print_json(node_rows(nodes))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphmem",
        description="graphmem: in-memory graph store with a declarative query language",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH} if present)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # graphmem query
    parser_query = subparsers.add_parser("query", help="Compile and execute a query file")
    parser_query.add_argument("file", help="Query file ('-' for stdin)")
    parser_query.add_argument("--nodes", help="YAML/JSON file of node records to load first")
    parser_query.set_defaults(func=cmd_query)

    # graphmem explain
    parser_explain = subparsers.add_parser("explain", help="Describe a query's execution steps")
    parser_explain.add_argument("file", help="Query file ('-' for stdin)")
    parser_explain.set_defaults(func=cmd_explain)

    # graphmem plan
    parser_plan = subparsers.add_parser("plan", help="Show the compiled plan with cost estimate")
    parser_plan.add_argument("file", help="Query file ('-' for stdin)")
    parser_plan.set_defaults(func=cmd_plan)

    # graphmem nl
    parser_nl = subparsers.add_parser("nl", help="Draft query text from a plain-language request")
    parser_nl.add_argument("text", help="Request text")
    parser_nl.set_defaults(func=cmd_nl)

    # graphmem stats
    parser_stats = subparsers.add_parser("stats", help="Show node and index statistics")
    parser_stats.add_argument("--nodes", help="YAML/JSON file of node records")
    parser_stats.set_defaults(func=cmd_stats)

    # graphmem similar
    parser_similar = subparsers.add_parser("similar", help="Vector similarity search")
    parser_similar.add_argument("--nodes", required=True, help="YAML/JSON file of node records")
    parser_similar.add_argument("--vector", required=True, help="Comma-separated query vector")
    parser_similar.add_argument("--type", help="Restrict to one node type")
    parser_similar.add_argument("--limit", type=int, help="Number of results (default from config)")
    parser_similar.add_argument("--threshold", type=float, help="Minimum similarity (default from config)")
    parser_similar.set_defaults(func=cmd_similar)

    # graphmem traverse
    parser_traverse = subparsers.add_parser("traverse", help="Breadth-first walk from a node")
    parser_traverse.add_argument("start", help="Start node id")
    parser_traverse.add_argument("--nodes", required=True, help="YAML/JSON file of node records")
    parser_traverse.add_argument(
        "--rel", action="append", default=[], help="Relationship to follow (repeatable)"
    )
    parser_traverse.add_argument("--depth", type=int, help="Maximum depth (default from config)")
    parser_traverse.set_defaults(func=cmd_traverse)

    return parser


def resolve_config(path: str | None) -> dict[str, Any]:
    """Explicit --config must exist; the default path is optional"""
    if path is not None:
        return load_config(path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return {}


def main(argv: list[str] | None = None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = resolve_config(args.config)
        settings = EngineConfig.from_config(config)
        args.config_dict = config
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level)

    try:
        args.func(args)
    except (GraphMemError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
