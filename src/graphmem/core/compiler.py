"""Query compiler: query text -> Query value, plus plan annotation and explanation.

Query text example::

    @QUERY get_top_customers
    @INTENT "Find high-value active customers"

    FETCH users {
      WHERE {
        status: active
        created_after: 2024-01-01
      }
      COMPUTE {
        total_spent: SUM(total)
      }
      FILTER {
        total > 100
      }
      SORT BY total DESC
      LIMIT 10
    }

The outer operation block is optional; braces may share a line with their
contents (``FETCH product { FILTER { price > 100 } }``).
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from graphmem.core.errors import ParseError
from graphmem.core.query import (
    FILTER_OPERATORS,
    AggregateFunction,
    Comparison,
    ComparisonOp,
    ComputeExpression,
    Literal,
    Operation,
    Query,
    SortExpression,
    SortOrder,
    normalize_operation,
)
from graphmem.core.templates import KeywordTemplates

logger = logging.getLogger(__name__)

SECTIONS = ("WHERE", "COMPUTE", "FILTER")

_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_COMPUTE_RE = re.compile(r"^(\w+)\s*\(([^)]*)\)$")
_OPERATION_RE = re.compile(r"^([A-Za-z_]\w*)(?:\s+([\w.:-]+))?$")
_SORT_RE = re.compile(r"^SORT\s+BY\s+([\w.]+)(?:\s+(ASC|DESC))?$", re.IGNORECASE)
_LIMIT_RE = re.compile(r"^LIMIT\s+(\d+)$")
_FIELD_RE = re.compile(r"^[\w.]+$")


# =============================================================================
# Tokenizer
# =============================================================================

class TokenKind(str, Enum):
    TEXT = "TEXT"
    OPEN = "{"
    CLOSE = "}"


@dataclass
class Token:
    kind: TokenKind
    value: str
    line: int


def tokenize(text: str) -> List[Token]:
    """
    Split query text into braces and stripped text chunks.

    A chunk ends at a newline or a brace. Braces inside double quotes are
    plain text; a double quote left open at the end of a line is an error.
    """
    tokens: List[Token] = []
    buffer: List[str] = []
    line = 1
    in_quote = False

    def flush():
        chunk = "".join(buffer).strip()
        buffer.clear()
        if chunk:
            tokens.append(Token(TokenKind.TEXT, chunk, line))

    for char in text:
        if char == "\n":
            if in_quote:
                raise ParseError("unterminated string", line)
            flush()
            line += 1
            continue
        if char == '"':
            in_quote = not in_quote
            buffer.append(char)
            continue
        if not in_quote and char in "{}":
            flush()
            kind = TokenKind.OPEN if char == "{" else TokenKind.CLOSE
            tokens.append(Token(kind, char, line))
            continue
        buffer.append(char)

    if in_quote:
        raise ParseError("unterminated string", line)
    flush()
    return tokens


# =============================================================================
# Value parsers
# =============================================================================

def parse_literal(value: str, line: Optional[int] = None) -> Literal:
    """
    Parse a literal: bool, number, date/datetime, bracketed list or string.

    Examples:
        >>> parse_literal("true")
        True
        >>> parse_literal("42")
        42
        >>> parse_literal("2024-01-01")
        datetime.date(2024, 1, 1)
        >>> parse_literal('"active"')
        'active'
    """
    value = re.sub(r",?\s*$", "", value.strip())

    if value.startswith("[") and value.endswith("]"):
        items = [item for item in value[1:-1].split(",") if item.strip()]
        return tuple(parse_literal(item, line) for item in items)

    if value == "true":
        return True
    if value == "false":
        return False

    if _NUMBER_RE.match(value):
        return float(value) if "." in value else int(value)

    if _DATE_RE.match(value):
        try:
            if len(value) == 10:
                return date.fromisoformat(value)
            return datetime.fromisoformat(value)
        except ValueError:
            raise ParseError(f"invalid date literal: {value}", line)

    return re.sub(r"^[\"']|[\"']$", "", value)


def parse_compute_expression(expr: str, line: Optional[int] = None) -> ComputeExpression:
    """Parse ``FUNC(field)``; the field may be empty only for COUNT"""
    match = _COMPUTE_RE.match(expr.strip())
    if not match:
        raise ParseError(f"Invalid compute expression: {expr}", line)

    name = match.group(1).upper()
    try:
        function = AggregateFunction(name)
    except ValueError:
        raise ParseError(f"Unknown aggregate function: {match.group(1)}", line)

    field_name = match.group(2).strip() or None
    if field_name is None and function is not AggregateFunction.COUNT:
        raise ParseError(f"{name} requires a field: {expr}", line)

    return ComputeExpression(function=function, field=field_name)


def parse_filter_expression(expr: str, line: Optional[int] = None) -> Comparison:
    """
    Parse a comparison such as ``> 100``; no operator means equality.

    Operators are matched as substrings, longest first, and the literal is
    whatever follows the first occurrence.
    """
    for text, op in FILTER_OPERATORS:
        if text in expr:
            _, value = expr.split(text, 1)
            return Comparison(op=op, value=parse_literal(value, line))
    return Comparison(op=ComparisonOp.EQ, value=parse_literal(expr, line))


def _split_entry(token: Token, section: str) -> Tuple[str, str]:
    key, sep, value = token.value.partition(":")
    key = key.strip()
    if not sep or not _FIELD_RE.match(key):
        raise ParseError(f"{section} entry must be 'key: value', got: {token.value}", token.line)
    return key, value.strip()


def _split_filter_entry(token: Token) -> Tuple[str, str]:
    # "field: > 5" or "field > 5"
    key, sep, value = token.value.partition(":")
    if sep and _FIELD_RE.match(key.strip()):
        return key.strip(), value.strip()

    for text, _ in FILTER_OPERATORS:
        index = token.value.find(text)
        if index > 0:
            field_name = token.value[:index].strip()
            if _FIELD_RE.match(field_name):
                return field_name, token.value[index:]
            break
    raise ParseError(f"FILTER entry must be 'field OP value', got: {token.value}", token.line)


# =============================================================================
# Parser
# =============================================================================

class _State(Enum):
    HEADER = "header"
    BODY = "body"
    DONE = "done"


class _QueryParser:
    """Single-use parser walking the token stream through header -> body -> done"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.state = _State.HEADER
        self.block_open = False

        self.name = ""
        self.intent = ""
        self.operation = Operation.FETCH.value
        self.target = ""
        self.where: Dict[str, Any] = {}
        self.compute: Dict[str, ComputeExpression] = {}
        self.filter: Dict[str, Comparison] = {}
        self.sort: Optional[SortExpression] = None
        self.limit: Optional[int] = None

    def _next(self) -> Optional[Token]:
        if self.pos >= len(self.tokens):
            return None
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _peek(self) -> Optional[Token]:
        if self.pos >= len(self.tokens):
            return None
        return self.tokens[self.pos]

    def parse(self) -> Query:
        while True:
            token = self._next()
            if token is None:
                break
            if self.state is _State.HEADER:
                self._header(token)
            elif self.state is _State.BODY:
                self._body(token)
            else:
                raise ParseError(f"unexpected content after query block: {token.value}", token.line)

        if self.block_open:
            last_line = self.tokens[-1].line if self.tokens else None
            raise ParseError("unclosed '{' in operation block", last_line)

        return Query(
            name=self.name,
            intent=self.intent,
            operation=self.operation,
            target=self.target,
            where=self.where,
            compute=self.compute,
            filter=self.filter,
            sort=self.sort,
            limit=self.limit,
        )

    def _header(self, token: Token) -> None:
        if token.kind is not TokenKind.TEXT:
            raise ParseError(f"unexpected '{token.value}' before operation", token.line)

        if token.value.startswith("@"):
            self._metadata(token)
            return

        if self._is_body_line(token.value):
            # No operation line: defaults to FETCH with an empty target
            self.state = _State.BODY
            self._body(token)
            return

        match = _OPERATION_RE.match(token.value)
        if not match:
            raise ParseError(f"invalid operation line: {token.value}", token.line)
        self.operation = normalize_operation(match.group(1))
        self.target = match.group(2) or ""
        self.state = _State.BODY

        following = self._peek()
        if following is not None and following.kind is TokenKind.OPEN:
            self._next()
            self.block_open = True

    def _metadata(self, token: Token) -> None:
        keyword, _, rest = token.value.partition(" ")
        rest = rest.strip()
        if keyword == "@QUERY":
            if not rest:
                raise ParseError("@QUERY requires a name", token.line)
            self.name = rest.split()[0]
        elif keyword == "@INTENT":
            quoted = re.search(r'"([^"]*)"', rest)
            self.intent = quoted.group(1) if quoted else rest
        else:
            raise ParseError(f"unknown metadata directive: {keyword}", token.line)

    @staticmethod
    def _is_body_line(value: str) -> bool:
        first = value.split()[0]
        return first in SECTIONS or first in ("SORT", "LIMIT")

    def _body(self, token: Token) -> None:
        if token.kind is TokenKind.CLOSE:
            if not self.block_open:
                raise ParseError("unbalanced '}'", token.line)
            self.block_open = False
            self.state = _State.DONE
            return
        if token.kind is TokenKind.OPEN:
            raise ParseError("unexpected '{'", token.line)

        value = token.value
        if value in SECTIONS:
            self._section(token)
        elif value.split()[0] in SECTIONS:
            raise ParseError(f"expected '{{' after {value.split()[0]}", token.line)
        elif value.startswith("SORT"):
            match = _SORT_RE.match(value)
            if not match:
                raise ParseError(f"invalid SORT directive: {value}", token.line)
            order = SortOrder((match.group(2) or "ASC").upper())
            self.sort = SortExpression(field=match.group(1), order=order)
        elif value.startswith("LIMIT"):
            match = _LIMIT_RE.match(value)
            if not match:
                raise ParseError(f"invalid LIMIT directive: {value}", token.line)
            self.limit = int(match.group(1))
        else:
            raise ParseError(f"unexpected line: {value}", token.line)

    def _section(self, header: Token) -> None:
        section = header.value
        opening = self._next()
        if opening is None or opening.kind is not TokenKind.OPEN:
            raise ParseError(f"expected '{{' after {section}", header.line)

        entries: List[Token] = []
        while True:
            token = self._next()
            if token is None:
                raise ParseError(f"unclosed {section} section", header.line)
            if token.kind is TokenKind.CLOSE:
                break
            if token.kind is TokenKind.OPEN:
                raise ParseError(f"nested '{{' inside {section}", token.line)
            entries.append(token)

        for entry in entries:
            if section == "WHERE":
                key, value = _split_entry(entry, section)
                self.where[key] = parse_literal(value, entry.line)
            elif section == "COMPUTE":
                key, value = _split_entry(entry, section)
                self.compute[key] = parse_compute_expression(
                    re.sub(r",?\s*$", "", value), entry.line
                )
            else:
                key, expr = _split_filter_entry(entry)
                self.filter[key] = parse_filter_expression(expr, entry.line)


# =============================================================================
# Compiler
# =============================================================================

@dataclass
class CompiledPlan:
    """Advisory plan metadata; never consulted during execution"""

    query: Query
    optimizations: List[str] = field(default_factory=list)
    estimated_time: float = 10.0  # Milliseconds


BASE_ESTIMATE_MS = 10.0


class QueryCompiler:
    """Parses query text and annotates/explains compiled queries"""

    def __init__(self, templates=None):
        """
        Args:
            templates: Natural-language stand-in exposing ``to_query(text)``
                (defaults to KeywordTemplates)
        """
        self.templates = templates if templates is not None else KeywordTemplates()

    def parse(self, text: str) -> Query:
        """
        Parse query text into a Query.

        Raises:
            ParseError: If the text is malformed; no partial Query is produced
        """
        query = _QueryParser(tokenize(text)).parse()
        logger.debug("Parsed query %r: %s %s", query.name, query.operation, query.target)
        return query

    def compile(self, query: Query) -> CompiledPlan:
        """Attach a heuristic cost estimate and optimization notes"""
        optimizations = []
        estimate = BASE_ESTIMATE_MS

        if query.where is not None:
            optimizations.append("Using property indexes for WHERE clause")
            estimate -= 5
        if query.compute is not None:
            optimizations.append("Aggregations computed in single pass")
            estimate += 2
        if query.filter is not None:
            optimizations.append("Applying filters after aggregation")
            estimate += 1
        if query.limit is not None:
            optimizations.append("Limit applied early to reduce processing")
            estimate = min(estimate, query.limit * 0.1)

        return CompiledPlan(
            query=query,
            optimizations=optimizations,
            estimated_time=max(estimate, 1.0),
        )

    def explain(self, query: Query) -> str:
        """Render the query as numbered plain-language execution steps"""
        steps = [f"{query.operation} from {query.target or '(all)'}"]

        if query.where is not None:
            conditions = ", ".join(
                f"{key} = {format_literal(value)}" for key, value in query.where.items()
            )
            steps.append(f"Filter by: {conditions}")
        if query.compute is not None:
            expressions = ", ".join(
                f"{key} = {expr.function.value}({expr.field or ''})"
                for key, expr in query.compute.items()
            )
            steps.append(f"Compute: {expressions}")
        if query.filter is not None:
            conditions = ", ".join(
                f"{key} {cond.op.symbol} {format_literal(cond.value)}"
                for key, cond in query.filter.items()
            )
            steps.append(f"Apply filter: {conditions}")
        if query.sort is not None:
            steps.append(f"Sort by {query.sort.field} {query.sort.order.value}")
        if query.limit is not None:
            steps.append(f"Limit to {query.limit} results")

        lines = [f"Query: {query.name}", f"Intent: {query.intent}", "", "Execution Plan:"]
        lines.extend(f"{number}. {step}" for number, step in enumerate(steps, 1))
        return "\n".join(lines) + "\n"

    def from_natural_language(self, text: str) -> str:
        """Placeholder: produce query text from a request via keyword templates"""
        return self.templates.to_query(text)


def format_literal(value: Any) -> str:
    if isinstance(value, tuple):
        return "[" + ", ".join(format_literal(item) for item in value) + "]"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


_default_compiler = QueryCompiler()


def compile_query(text: str) -> Query:
    """Parse query text with the default compiler"""
    return _default_compiler.parse(text)


def explain(query: Query) -> str:
    return _default_compiler.explain(query)
