"""
Metadata filter expressions.

Filters extracted from a user query are compiled into a small boolean
grammar understood by every supported store:

    airline_name == 'United' && overall_rating >= 7.5 && seat_type == 'Economy'

String literals are single-quoted; a backslash escapes ``'`` and ``\\``.
The parser turns an expression back into clauses, which are then
translated into the native filter of the configured vector store
(Qdrant ``Filter`` objects or a metadata predicate for FAISS).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from qdrant_client.http import models

from review_rag.errors import FilterSyntaxError

# (filter key, metadata field, operator), in clause order
FILTER_FIELDS = (
    ("airline_name", "airline_name", "=="),
    ("min_rating", "overall_rating", ">="),
    ("seat_type", "seat_type", "=="),
)

FILTERABLE_FIELDS = {"airline_name", "overall_rating", "seat_type", "route", "recommended", "document_id"}

ClauseValue = Union[str, float, bool]


@dataclass(frozen=True)
class FilterClause:
    field: str
    operator: str  # "==", "!=", ">=", "<=", ">", "<"
    value: ClauseValue


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _format_number(value: Any) -> str:
    return repr(float(value))


def compile_filter(filters: Mapping[str, Any]) -> str:
    """Compile extracted filters into an expression. Unknown keys are ignored."""
    clauses: List[str] = []
    for key, field, operator in FILTER_FIELDS:
        value = filters.get(key)
        if value is None or value == "":
            continue
        if key == "min_rating":
            rendered = _format_number(value)
        else:
            rendered = quote(str(value))
        clauses.append(f"{field} {operator} {rendered}")
    return " && ".join(clauses)


_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<string>'(?:[^'\\]|\\.)*')
      | (?P<number>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
      | (?P<bool>true|false)\b
      | (?P<and>&&)
      | (?P<op>==|!=|>=|<=|>|<)
      | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)


def _tokenize(expression: str) -> List[tuple]:
    tokens = []
    position = 0
    expression = expression.rstrip()
    while position < len(expression):
        match = _TOKEN.match(expression, position)
        if not match or match.end() == position:
            raise FilterSyntaxError(
                f"Unexpected input at position {position}: {expression[position:]!r}"
            )
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        position = match.end()
    return tokens


def _unquote(literal: str) -> str:
    return re.sub(r"\\(.)", r"\1", literal[1:-1])


def parse_filter_expression(expression: Optional[str]) -> List[FilterClause]:
    """Parse an expression into clauses. Empty or None yields no clauses."""
    if expression is None or not expression.strip():
        return []

    tokens = _tokenize(expression)
    clauses: List[FilterClause] = []
    index = 0
    while True:
        if index + 3 > len(tokens):
            raise FilterSyntaxError(f"Incomplete clause in filter expression: {expression!r}")
        (field_kind, field), (op_kind, operator), (value_kind, raw) = tokens[index : index + 3]
        if field_kind != "ident":
            raise FilterSyntaxError(f"Expected a field name, got {field!r}")
        if field not in FILTERABLE_FIELDS:
            raise FilterSyntaxError(f"Unknown filter field: {field}")
        if op_kind != "op":
            raise FilterSyntaxError(f"Expected a comparison operator after {field}, got {operator!r}")

        if value_kind == "string":
            value: ClauseValue = _unquote(raw)
        elif value_kind == "number":
            value = float(raw)
        elif value_kind == "bool":
            value = raw == "true"
        else:
            raise FilterSyntaxError(f"Expected a literal value after {field} {operator}, got {raw!r}")

        if isinstance(value, (str, bool)) and operator not in ("==", "!="):
            raise FilterSyntaxError(f"Operator {operator} needs a numeric value")

        clauses.append(FilterClause(field=field, operator=operator, value=value))
        index += 3

        if index == len(tokens):
            return clauses
        if tokens[index][0] != "and":
            raise FilterSyntaxError(f"Expected '&&', got {tokens[index][1]!r}")
        index += 1


_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
}


def to_metadata_predicate(clauses: List[FilterClause]) -> Callable[[Dict[str, Any]], bool]:
    """Build a predicate over a document's metadata (FAISS-style filtering)."""

    def predicate(metadata: Dict[str, Any]) -> bool:
        for clause in clauses:
            actual = metadata.get(clause.field)
            if actual is None:
                return False
            try:
                if not _COMPARATORS[clause.operator](actual, clause.value):
                    return False
            except TypeError:
                return False
        return True

    return predicate


def to_qdrant_filter(
    clauses: List[FilterClause],
    metadata_key: str = "metadata",
) -> Optional[models.Filter]:
    """Translate clauses into a Qdrant payload filter.

    LangChain stores document metadata under ``metadata_key`` in the payload.
    """
    if not clauses:
        return None

    must: List[models.FieldCondition] = []
    must_not: List[models.FieldCondition] = []
    for clause in clauses:
        key = f"{metadata_key}.{clause.field}"
        if clause.operator in ("==", "!="):
            if isinstance(clause.value, float):
                # MatchValue only takes keywords, integers and booleans
                condition = models.FieldCondition(
                    key=key, range=models.Range(gte=clause.value, lte=clause.value)
                )
            else:
                condition = models.FieldCondition(key=key, match=models.MatchValue(value=clause.value))
            (must if clause.operator == "==" else must_not).append(condition)
            continue

        bound = {">=": "gte", "<=": "lte", ">": "gt", "<": "lt"}[clause.operator]
        must.append(models.FieldCondition(key=key, range=models.Range(**{bound: clause.value})))

    return models.Filter(must=must or None, must_not=must_not or None)
