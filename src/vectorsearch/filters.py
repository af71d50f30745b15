"""Translate caller filter trees into Qdrant ``Filter`` objects.

Filters are plain dictionaries mapping payload field paths to predicates, in
the MongoDB-style syntax used throughout the package. All top-level entries
are combined with AND.

Supported predicates:

    - Implicit equality: ``{"category": "news"}``, ``{"year": 2024}``,
      ``{"published": True}``. Floats match as a closed range ``[v, v]``.
    - Implicit membership: ``{"tags": ["ai", "ml"]}``
    - Nested paths: ``{"author": {"name": "Ada"}}`` is ``author.name == "Ada"``
    - Operators: ``$eq``, ``$ne``, ``$gt``, ``$gte``, ``$lt``, ``$lte``,
      ``$in``, ``$nin``. Range bounds may be numbers or ISO-8601 strings.
    - Logical: ``{"$and": [...]}``, ``{"$or": [...]}``, ``{"$not": {...}}``

Anything else raises ``InvalidArgumentError``.

Example:
    >>> build_filter(
    ...     {
    ...         "category": "tech",
    ...         "score": {"$gte": 0.8},
    ...         "$or": [{"lang": "en"}, {"lang": "de"}],
    ...     }
    ... )
"""

from typing import Any, Optional, Union

from qdrant_client.http import models
from qdrant_client.http.models import FieldCondition, Filter, MatchAny, MatchValue, Range

from vectorsearch.errors import InvalidArgumentError


Condition = Union[FieldCondition, Filter]

_RANGE_OPS = ("$gt", "$gte", "$lt", "$lte")
_LOGICAL_OPS = ("$and", "$or", "$not")


def build_filter(tree: Optional[dict[str, Any]]) -> Optional[Filter]:
    """Convert a filter tree to a Qdrant Filter.

    Args:
        tree: Filter mapping, or None.

    Returns:
        Filter with all top-level conditions under ``must``, or None for an
        empty or missing tree.

    Raises:
        InvalidArgumentError: If the tree contains an unsupported construct.
    """
    if tree is None:
        return None
    if not isinstance(tree, dict):
        raise InvalidArgumentError(f"filter must be a mapping, got {type(tree).__name__}")
    if not tree:
        return None
    return Filter(must=_conditions(tree, prefix=""))


def _conditions(tree: dict[str, Any], prefix: str) -> list[Condition]:
    conditions: list[Condition] = []
    for key, value in tree.items():
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError(f"invalid filter key: {key!r}")
        if key in _LOGICAL_OPS:
            conditions.append(_logical(key, value, prefix))
        elif key.startswith("$"):
            raise InvalidArgumentError(f"unsupported filter operator: {key}")
        else:
            path = f"{prefix}{key}"
            conditions.extend(_field(path, value))
    return conditions


def _logical(op: str, value: Any, prefix: str) -> Filter:
    if op == "$not":
        if not isinstance(value, dict) or not value:
            raise InvalidArgumentError("$not expects a non-empty filter mapping")
        return Filter(must_not=[Filter(must=_conditions(value, prefix))])

    if not isinstance(value, list) or not value:
        raise InvalidArgumentError(f"{op} expects a non-empty list of filters")
    branches: list[Condition] = []
    for branch in value:
        if not isinstance(branch, dict) or not branch:
            raise InvalidArgumentError(f"{op} branches must be non-empty filter mappings")
        branches.append(Filter(must=_conditions(branch, prefix)))
    if op == "$and":
        return Filter(must=branches)
    return Filter(should=branches)


def _field(path: str, value: Any) -> list[Condition]:
    if isinstance(value, dict):
        if not value:
            raise InvalidArgumentError(f"empty predicate for field '{path}'")
        operator_keys = [k for k in value if isinstance(k, str) and k.startswith("$")]
        if not operator_keys:
            # Plain mapping: descend into a nested payload path.
            return _conditions(value, prefix=f"{path}.")
        if len(operator_keys) != len(value):
            raise InvalidArgumentError(
                f"field '{path}' mixes operators and nested fields"
            )
        return [_operator(path, op, operand) for op, operand in value.items()]
    if isinstance(value, list):
        return [_match_any(path, value)]
    return [_equals(path, value)]


def _operator(path: str, op: str, operand: Any) -> Condition:
    if op == "$eq":
        return _equals(path, operand)
    if op == "$ne":
        return Filter(must_not=[_equals(path, operand)])
    if op in _RANGE_OPS:
        return _range(path, op[1:], operand)
    if op == "$in":
        return _match_any(path, operand)
    if op == "$nin":
        return Filter(must_not=[_match_any(path, operand)])
    raise InvalidArgumentError(f"unsupported filter operator '{op}' on field '{path}'")


def _equals(path: str, value: Any) -> FieldCondition:
    if isinstance(value, (bool, int, str)):
        return FieldCondition(key=path, match=MatchValue(value=value))
    if isinstance(value, float):
        return FieldCondition(key=path, range=Range(gte=value, lte=value))
    raise InvalidArgumentError(
        f"unsupported filter value for field '{path}': {type(value).__name__}"
    )


def _match_any(path: str, values: Any) -> FieldCondition:
    if not isinstance(values, (list, tuple)) or not values:
        raise InvalidArgumentError(f"membership filter on '{path}' needs a non-empty list")
    if all(isinstance(v, str) for v in values) or all(
        isinstance(v, int) and not isinstance(v, bool) for v in values
    ):
        return FieldCondition(key=path, match=MatchAny(any=list(values)))
    raise InvalidArgumentError(
        f"membership filter on '{path}' needs all strings or all integers"
    )


def _range(path: str, bound: str, value: Any) -> FieldCondition:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return FieldCondition(key=path, range=Range(**{bound: value}))
    if isinstance(value, str):
        try:
            return FieldCondition(key=path, range=models.DatetimeRange(**{bound: value}))
        except ValueError as e:
            raise InvalidArgumentError(
                f"range bound for '{path}' is not a valid datetime: {value!r}"
            ) from e
    raise InvalidArgumentError(
        f"range bound for '{path}' must be a number or ISO-8601 string"
    )
