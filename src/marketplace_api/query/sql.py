"""
marketplace_api.query.sql

SQLAlchemy execution adapter for `QuerySpec`.

Responsibilities:
- Apply predicate, ordering and page window to a `select()` over one model.
- Restrict filtering/sorting to an explicit allow-list of columns.
- Coerce raw query-string values to each column's Python type.
- Project ORM rows into dicts honouring the spec's projection.
"""

from __future__ import annotations

import enum
import operator
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy import Select, asc, desc, inspect
from sqlalchemy.orm import InstrumentedAttribute

from marketplace_api.errors import ValidationError
from marketplace_api.query.features import Constraint, QuerySpec

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no"})


def queryable_columns(
    model: type, *, exclude: Iterable[str] = ()
) -> dict[str, InstrumentedAttribute[Any]]:
    hidden = set(exclude)
    return {
        attr.key: getattr(model, attr.key)
        for attr in inspect(model).column_attrs
        if attr.key not in hidden
    }


def coerce_value(column: InstrumentedAttribute[Any], value: Any) -> Any:
    try:
        py_type = column.type.python_type
    except NotImplementedError as e:
        # Types without a Python equivalent are not filterable.
        raise ValueError(f"column {column.key} is not filterable") from e
    if py_type in (dict, list):
        raise ValueError(f"column {column.key} is not filterable")

    if py_type is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, py_type) and not isinstance(value, bool):
        return value
    if py_type is datetime:
        return datetime.fromisoformat(str(value))
    if py_type is date:
        return date.fromisoformat(str(value))
    if py_type is uuid.UUID:
        return uuid.UUID(str(value))
    if issubclass(py_type, enum.Enum):
        return py_type(value)
    return py_type(value)


def _condition(
    columns: Mapping[str, InstrumentedAttribute[Any]], constraint: Constraint, strict: bool
) -> Any | None:
    column = columns.get(constraint.field)
    if column is None:
        if strict:
            raise ValidationError(f"unknown_filter_field:{constraint.field}")
        return None
    try:
        value = coerce_value(column, constraint.value)
    except (TypeError, ValueError) as e:
        if strict:
            raise ValidationError(f"invalid_filter_value:{constraint.field}") from e
        return None
    return _OPERATORS[constraint.op](column, value)


def apply_spec(
    stmt: Select[Any],
    spec: QuerySpec,
    *,
    columns: Mapping[str, InstrumentedAttribute[Any]],
    strict: bool = False,
) -> Select[Any]:
    for constraint in spec.predicate:
        cond = _condition(columns, constraint, strict)
        if cond is not None:
            stmt = stmt.where(cond)

    for key in spec.sort:
        column = columns.get(key.field)
        if column is None:
            if strict:
                raise ValidationError(f"unknown_sort_field:{key.field}")
            continue
        stmt = stmt.order_by(desc(column) if key.descending else asc(column))

    if spec.page is not None:
        stmt = stmt.limit(spec.page.limit).offset(spec.page.offset)
    return stmt


def project(obj: Any, spec: QuerySpec, *, columns: Iterable[str]) -> dict[str, Any]:
    return {name: getattr(obj, name) for name in columns if spec.projection.allows(name)}


# --- Module Notes -----------------------------------------------------------
# Repositories pass their own column allow-list (e.g., users never expose password_hash).
