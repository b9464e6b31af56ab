#!/usr/bin/env python3
"""Tests for plan annotation, explanation and the keyword template stand-in"""

import sys
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from graphmem.core.compiler import QueryCompiler, explain
from graphmem.core.query import Query, SortExpression, SortOrder
from graphmem.core.templates import KeywordTemplates, QueryTemplate


def test_compile_base_estimate(compiler):
    plan = compiler.compile(Query(operation="FETCH", target="user"))
    assert plan.estimated_time == 10.0
    assert plan.optimizations == []


def test_compile_adjusts_for_clauses(compiler):
    query = compiler.parse(
        "FETCH order {\n WHERE { status: shipped }\n COMPUTE { n: COUNT() }\n FILTER { n > 1 }\n}"
    )
    plan = compiler.compile(query)

    # 10 - 5 (where) + 2 (compute) + 1 (filter)
    assert plan.estimated_time == 8.0
    assert plan.optimizations == [
        "Using property indexes for WHERE clause",
        "Aggregations computed in single pass",
        "Applying filters after aggregation",
    ]
    assert plan.query is query


def test_compile_limit_caps_estimate(compiler):
    plan = compiler.compile(compiler.parse("FETCH user { LIMIT 50 }"))
    assert plan.estimated_time == 5.0
    assert plan.optimizations == ["Limit applied early to reduce processing"]

    # Never below 1ms
    plan = compiler.compile(compiler.parse("FETCH user { LIMIT 2 }"))
    assert plan.estimated_time == 1.0


def test_explain_numbers_present_steps(compiler):
    query = compiler.parse(
        '@QUERY top\n@INTENT "Top products"\n'
        "FETCH product {\n FILTER { price > 100 }\n SORT BY price DESC\n LIMIT 3\n}"
    )
    text = compiler.explain(query)

    assert text.startswith("Query: top\nIntent: Top products\n\nExecution Plan:\n")
    assert "1. FETCH from product\n" in text
    assert "2. Apply filter: price > 100\n" in text
    assert "3. Sort by price DESC\n" in text
    assert "4. Limit to 3 results\n" in text
    assert "Compute" not in text


def test_explain_renders_where_and_compute():
    query = Query(
        name="q",
        operation="GRAPH_TRAVERSE",
        target="user",
        where={"start": "user:1", "path": ("HAS_ORDER",), "active": True},
        sort=SortExpression("total", SortOrder.ASC),
    )
    text = explain(query)
    assert "1. GRAPH_TRAVERSE from user" in text
    assert "2. Filter by: start = user:1, path = [HAS_ORDER], active = true" in text
    assert "3. Sort by total ASC" in text


def test_natural_language_find_users(compiler):
    text = compiler.from_natural_language("Find the active users please")
    assert "@QUERY find_users" in text
    assert '@INTENT "Find the active users please"' in text

    query = compiler.parse(text)
    assert query.target == "users"
    assert dict(query.where) == {"status": "active"}
    assert query.limit == 10
    assert query.intent == "Find the active users please"


def test_natural_language_count_orders(compiler):
    query = compiler.parse(compiler.from_natural_language("How many orders? Count them"))
    assert query.name == "count_orders"
    assert query.target == "orders"
    assert query.compute["total"].function.value == "COUNT"


def test_natural_language_fallback(compiler):
    query = compiler.parse(compiler.from_natural_language('Show "something" else'))
    assert query.name == "custom_query"
    assert query.target == "data"
    assert query.intent == "Show 'something' else"


def test_templates_are_swappable():
    templates = KeywordTemplates(
        templates=[QueryTemplate("cheap", ("cheap",), "FETCH product { FILTER { price < 10 } }")]
    )
    compiler = QueryCompiler(templates=templates)
    query = compiler.parse(compiler.from_natural_language("cheap stuff"))
    assert query.name == "cheap"
    assert query.filter["price"].value == 10


def test_default_templates_share_frozen_fallback():
    first, second = KeywordTemplates(), KeywordTemplates()
    assert first.fallback is second.fallback
    assert first.templates is not second.templates
    with pytest.raises(FrozenInstanceError):
        first.fallback.name = "changed"
