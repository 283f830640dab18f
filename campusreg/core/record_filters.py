"""Record Filters - pure predicates behind read_all, query and search.

Invariants:
    - Filters: str values match as case-insensitive substring, others by equality,
      None filter values are ignored
    - Conditions: literal means equality; an operator mapping ANDs its operators
    - A comparison against a missing field or an incomparable value never matches
    - Unknown operators raise ValidationError instead of silently matching

Design Decisions:
    - Operator table keyed by the "$op" strings the documents use, not by Enum,
      so conditions stay plain JSON-shaped dicts
"""

import operator
from typing import Any, Callable, Iterable, Mapping

from campusreg.core.errors import ValidationError


def _contains_ci(field_value: Any, needle: str) -> bool:
    if field_value is None:
        return False
    return needle.lower() in str(field_value).lower()


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(field_value: Any, operand: Any) -> bool:
        if field_value is None:
            return False
        try:
            return bool(op(field_value, operand))
        except TypeError:
            return False
    return check


def _is_in(field_value: Any, operand: Any) -> bool:
    if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
        raise ValidationError("$in expects a list of values", field="$in")
    return field_value in list(operand)


def _like(field_value: Any, operand: Any) -> bool:
    return _contains_ci(field_value, str(operand))


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda value, operand: value == operand,
    "$ne": lambda value, operand: value != operand,
    "$gt": _compare(operator.gt),
    "$lt": _compare(operator.lt),
    "$gte": _compare(operator.ge),
    "$lte": _compare(operator.le),
    "$in": _is_in,
    "$like": _like,
}


def matches_filters(record: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    """read_all semantics: every non-None filter must match."""
    if not filters:
        return True
    for key, expected in filters.items():
        if expected is None:
            continue
        if isinstance(expected, str):
            if not _contains_ci(record.get(key), expected):
                return False
        elif record.get(key) != expected:
            return False
    return True


def _is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def matches_condition(value: Any, condition: Any, field: str = "") -> bool:
    """Evaluate one field condition against a stored value."""
    if not _is_operator_mapping(condition):
        return value == condition
    for op_name, operand in condition.items():
        check = OPERATORS.get(op_name)
        if check is None:
            raise ValidationError(
                f"Unknown query operator '{op_name}' on field '{field}'", field=field,
            )
        if not check(value, operand):
            return False
    return True


def matches_conditions(record: Mapping[str, Any], conditions: Mapping[str, Any]) -> bool:
    """query semantics: all field conditions AND together."""
    return all(
        matches_condition(record.get(key), condition, key)
        for key, condition in conditions.items()
    )


def matches_search(record: Mapping[str, Any], term: str, fields: Iterable[str]) -> bool:
    """search semantics: OR across fields, case-insensitive substring, falsy fields skipped."""
    for name in fields:
        value = record.get(name)
        if not value:
            continue
        if _contains_ci(value, term):
            return True
    return False
