#!/usr/bin/env python3
"""Tests for cosine similarity and vector search"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from graphmem.core.models import Node
from graphmem.core.retrieval import cosine_similarity, rank_by_similarity


def test_cosine_similarity_properties():
    a = [1.0, 2.0, 3.0]
    b = [-2.0, 0.5, 4.0]

    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
    assert cosine_similarity(a, a) == pytest.approx(1.0)
    assert cosine_similarity(a, [-x for x in a]) == pytest.approx(-1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
    assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0
    assert cosine_similarity([1, 2], [1, 2, 3]) == 0.0


@pytest.fixture
def embedded(storage):
    storage.add_node(Node(id="u1", type="user", embedding=[1.0, 0.0]))
    storage.add_node(Node(id="u2", type="user", embedding=[0.9, 0.1]))
    storage.add_node(Node(id="u3", type="user", embedding=[0.0, 1.0]))
    storage.add_node(Node(id="u4", type="user"))  # No embedding
    storage.add_node(Node(id="p1", type="product", embedding=[1.0, 0.05]))
    return storage


def test_vector_search_sorted_and_thresholded(embedded):
    result = embedded.vector_search([1.0, 0.0])
    # u3 is orthogonal (0.0 < 0.7), u4 has no embedding
    assert [n.id for n in result] == ["u1", "p1", "u2"]


def test_vector_search_type_and_limit(embedded):
    result = embedded.vector_search([1.0, 0.0], node_type="user", limit=1)
    assert [n.id for n in result] == ["u1"]
    assert embedded.vector_search([1.0, 0.0], node_type="missing") == []


def test_vector_search_threshold(embedded):
    result = embedded.vector_search([1.0, 0.0], node_type="user", threshold=-1.0)
    assert [n.id for n in result] == ["u1", "u2", "u3"]


def test_vector_search_mismatched_dimension(embedded):
    assert embedded.vector_search([1.0, 0.0, 0.0], threshold=0.0) == [
        embedded.get_node(i) for i in ("u1", "u2", "u3", "p1")
    ]
    assert embedded.vector_search([1.0, 0.0, 0.0]) == []


def test_rank_by_similarity_returns_scores():
    nodes = [Node(id="a", type="t", embedding=[1.0, 0.0]), Node(id="b", type="t", embedding=[1.0, 1.0])]
    ranked = rank_by_similarity([1.0, 0.0], nodes, limit=5, threshold=0.5)
    assert [n.id for n, _ in ranked] == ["a", "b"]
    assert ranked[0][1] == pytest.approx(1.0)
    assert ranked[1][1] == pytest.approx(0.7071, abs=1e-4)


def test_vector_search_results_are_copies(embedded):
    found = embedded.vector_search([1.0, 0.0], node_type="user", limit=1)
    found[0].embedding[0] = -1.0
    assert embedded.get_node("u1").embedding == [1.0, 0.0]


def test_negative_limit_rejected(embedded):
    with pytest.raises(ValueError):
        embedded.vector_search([1.0, 0.0], limit=-1)
    with pytest.raises(ValueError):
        rank_by_similarity([1.0, 0.0], [], limit=-2)
    assert embedded.vector_search([1.0, 0.0], limit=0) == []
