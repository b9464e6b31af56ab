"""Keyword templates standing in for natural-language query generation.

This is a placeholder: a fixed set of substring triggers mapped to canned
query skeletons. Anything with the same ``to_query(text) -> str`` method can
replace it on QueryCompiler (e.g. a client for a real language service).
"""

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class QueryTemplate:
    """Canned query text fired when every trigger keyword appears"""

    name: str
    triggers: Tuple[str, ...]
    body: str

    def matches(self, lowered: str) -> bool:
        return all(trigger in lowered for trigger in self.triggers)

    def render(self, text: str) -> str:
        # Intent is read back between double quotes on a single line
        intent = " ".join(text.replace('"', "'").split())
        return f'@QUERY {self.name}\n@INTENT "{intent}"\n\n{self.body}'


DEFAULT_TEMPLATES = [
    QueryTemplate(
        name="find_users",
        triggers=("find", "user"),
        body="FETCH users {\n  WHERE {\n    status: active\n  }\n  LIMIT 10\n}",
    ),
    QueryTemplate(
        name="count_orders",
        triggers=("count", "order"),
        body="FETCH orders {\n  COMPUTE {\n    total: COUNT()\n  }\n}",
    ),
]

FALLBACK_TEMPLATE = QueryTemplate(
    name="custom_query",
    triggers=(),
    body="FETCH data {\n  LIMIT 10\n}",
)


@dataclass
class KeywordTemplates:
    """First matching template wins; otherwise the generic fallback"""

    templates: List[QueryTemplate] = field(default_factory=lambda: list(DEFAULT_TEMPLATES))
    fallback: QueryTemplate = FALLBACK_TEMPLATE

    def to_query(self, text: str) -> str:
        lowered = text.lower()
        for template in self.templates:
            if template.matches(lowered):
                return template.render(text)
        return self.fallback.render(text)
