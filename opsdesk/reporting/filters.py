"""Translation of caller filter maps into data store predicates.

A raw filter value is decoded once into one of three shapes:

- ``Equals(value)`` for plain scalars
- ``Range(from_, to)`` for ``{"from": ..., "to": ...}``
- ``Operator(op, value)`` for ``{"op": ..., "val": ...}``

Anything else decodes to ``None`` and is dropped. Malformed filters never
raise; they simply stop constraining the result.
"""

from dataclasses import dataclass
from typing import Any, List, Mapping, NamedTuple, Optional, Union

from opsdesk.reporting.registry import EntityConfig

OPERATORS = ("eq", "gt", "gte", "lt", "lte", "neq", "contains", "in", "between")

# Operators that map 1:1 onto a builder method of the same name
_DIRECT_OPS = ("gt", "gte", "lt", "lte", "neq")


@dataclass(frozen=True)
class Equals:
    value: Any


@dataclass(frozen=True)
class Range:
    from_: Any = None
    to: Any = None


@dataclass(frozen=True)
class Operator:
    op: str
    value: Any


FilterValue = Union[Equals, Range, Operator]


class Predicate(NamedTuple):
    """One builder call: ``query.<method>(column, value)``."""
    method: str
    column: str
    value: Any


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, dict) and not value)


def decode_filter(raw: Any) -> Optional[FilterValue]:
    """Decode one raw filter value; ``None`` means no constraint."""
    if _is_empty(raw):
        return None

    if isinstance(raw, dict):
        if "op" in raw:
            value = raw.get("val", raw.get("value"))
            if value is None or not isinstance(raw["op"], str):
                return None
            return Operator(raw["op"], value)
        if "from" in raw or "to" in raw:
            from_, to = raw.get("from"), raw.get("to")
            if _is_empty(from_) and _is_empty(to):
                return None
            return Range(None if _is_empty(from_) else from_, None if _is_empty(to) else to)
        return None

    if isinstance(raw, (list, tuple, set)):
        return None

    return Equals(raw)


def _operator_predicates(column: str, op: str, value: Any) -> List[Predicate]:
    if op in _DIRECT_OPS:
        return [Predicate(op, column, value)]
    if op == "contains":
        return [Predicate("ilike", column, f"%{value}%")]
    if op == "in":
        if isinstance(value, (list, tuple)):
            return [Predicate("in_", column, list(value))]
        return []
    if op == "between":
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return [Predicate("gte", column, value[0]), Predicate("lte", column, value[1])]
        return []
    # 'eq' and anything unrecognised
    return [Predicate("eq", column, value)]


def predicates_for(column: str, decoded: FilterValue) -> List[Predicate]:
    """Predicates for a single decoded filter entry."""
    if isinstance(decoded, Range):
        predicates = []
        if decoded.from_ is not None:
            predicates.append(Predicate("gte", column, decoded.from_))
        if decoded.to is not None:
            predicates.append(Predicate("lte", column, decoded.to))
        return predicates
    if isinstance(decoded, Operator):
        return _operator_predicates(column, decoded.op, decoded.value)
    return [Predicate("eq", column, decoded.value)]


def translate(filters: Optional[Mapping[str, Any]], entity: EntityConfig) -> List[Predicate]:
    """Translate a filter map into conjunctive predicates for ``entity``.

    Only columns in the entity's filterable set are honoured; entries for any
    other column are dropped whatever their shape.
    """
    predicates: List[Predicate] = []
    for column, raw in (filters or {}).items():
        if not entity.is_filterable(column):
            continue
        decoded = decode_filter(raw)
        if decoded is None:
            continue
        predicates.extend(predicates_for(column, decoded))
    return predicates


def apply_predicates(query, predicates: List[Predicate]):
    """Apply predicates to a chainable query builder and return it."""
    for predicate in predicates:
        query = getattr(query, predicate.method)(predicate.column, predicate.value)
    return query
