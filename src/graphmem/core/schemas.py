"""Pydantic schemas validating node records handed over by collaborators"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field

from graphmem.core.models import Edge, Node

ScalarValue = Union[bool, int, float, str, datetime, date]


class EdgeSchema(BaseModel):
    """Schema for an outgoing edge"""

    relationship: str = Field(min_length=1, description="Relationship label, e.g. HAS_ORDER")
    target: Union[str, int] = Field(description="Identity of the target node")
    weight: float | None = Field(default=None, description="Optional edge weight")


class NodeRecordSchema(BaseModel):
    """Schema for a node record"""

    id: Union[str, int] = Field(description="Node identity")
    type: str = Field(min_length=1, description="Collection name")
    properties: dict[str, ScalarValue] = Field(default_factory=dict)
    edges: list[EdgeSchema] = Field(default_factory=list)
    embedding: list[float] | None = Field(default=None, description="Dense vector for similarity search")

    def to_node(self) -> Node:
        return Node(
            id=self.id,
            type=self.type,
            properties=dict(self.properties),
            edges=[
                Edge(relationship=edge.relationship, target=edge.target, weight=edge.weight)
                for edge in self.edges
            ],
            embedding=list(self.embedding) if self.embedding is not None else None,
        )


def parse_node(record: dict[str, Any]) -> Node:
    """
    Validate a raw record into a Node.

    Raises:
        pydantic.ValidationError: If the record does not match NodeRecordSchema
    """
    return NodeRecordSchema.model_validate(record).to_node()


def load_nodes(path: str) -> list[Node]:
    """
    Load node records from a YAML or JSON file.

    The document is either a list of records or a mapping with a ``nodes``
    list.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the document shape or a record is invalid
    """
    node_path = Path(path)
    if not node_path.exists():
        raise FileNotFoundError(f"Node file not found: {path}")

    with open(node_path) as f:
        try:
            document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid node file {path}: {e}") from e

    if isinstance(document, dict):
        document = document.get("nodes")
    if document is None:
        return []
    if not isinstance(document, list):
        raise ValueError(f"Node file {path} must contain a list of node records")

    return [parse_node(record) for record in document]
