"""
marketplace_api.query.features

Declarative query-feature builder for collection reads.

Responsibilities:
- Translate untrusted query parameters into a `QuerySpec`
  (filter predicate, sort order, projection, page window).
- Only allow equality and the range operators gte/gt/lte/lt.
- Bound page size with a hard ceiling.

The builder performs no I/O; `query.sql` executes a spec against the database.

Example:

    spec = (
        QueryFeatures({"price[gte]": "100", "sort": "-price,name", "page": "2"})
        .filter()
        .sort()
        .limit_fields()
        .paginate()
        .spec
    )
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from marketplace_api.errors import ValidationError

RESERVED_KEYS = frozenset({"page", "limit", "sort", "fields"})
RANGE_OPERATORS = frozenset({"gte", "gt", "lte", "lt"})
EQ = "eq"
# Largest offset a signed 64-bit SQL INTEGER can carry.
MAX_OFFSET = 2**63 - 1

_BRACKET_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<op>[^\[\]]*)\]$")


@dataclass(frozen=True, slots=True)
class Constraint:
    field: str
    op: str
    value: Any


@dataclass(frozen=True, slots=True)
class SortKey:
    field: str
    descending: bool = False


@dataclass(frozen=True, slots=True)
class Projection:
    # Empty include set means "all fields" minus `exclude`.
    include: frozenset[str] = frozenset()
    exclude: frozenset[str] = frozenset()

    def allows(self, name: str) -> bool:
        if self.include:
            return name in self.include
        return name not in self.exclude


@dataclass(frozen=True, slots=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class QuerySpec:
    predicate: tuple[Constraint, ...] = ()
    sort: tuple[SortKey, ...] = ()
    projection: Projection = Projection()
    page: PageWindow | None = None

    def constraints_for(self, name: str) -> tuple[Constraint, ...]:
        return tuple(c for c in self.predicate if c.field == name)


@dataclass(frozen=True, slots=True)
class QueryOptions:
    default_sort: str = "-created_at"
    default_limit: int = 100
    max_limit: int = 100
    hidden_fields: frozenset[str] = field(default_factory=lambda: frozenset({"version"}))
    always_included: frozenset[str] = field(default_factory=lambda: frozenset({"id"}))
    # Strict mode raises ValidationError where the permissive default drops input.
    strict: bool = False


def _split_csv(raw: Any) -> list[str]:
    if raw is None:
        return []
    return [part.strip() for part in str(raw).split(",") if part.strip()]


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


class QueryFeatures:
    def __init__(self, params: Mapping[str, Any], *, options: QueryOptions | None = None) -> None:
        # Copy so later mutation of the caller's mapping cannot leak into the spec.
        self._params = dict(params)
        self._options = options or QueryOptions()
        self._spec = QuerySpec()

    @property
    def spec(self) -> QuerySpec:
        return self._spec

    def _reject(self, detail: str) -> None:
        if self._options.strict:
            raise ValidationError(detail)

    def filter(self) -> QueryFeatures:
        constraints: list[Constraint] = []
        for key, value in self._params.items():
            if key in RESERVED_KEYS:
                continue

            m = _BRACKET_KEY.match(key)
            if m is not None:
                # Flat form as sent in a query string: `price[gte]=100`.
                constraints.extend(self._range(m.group("field"), {m.group("op"): value}))
            elif isinstance(value, Mapping):
                # Nested form: {"price": {"gte": 100}}.
                constraints.extend(self._range(key, value))
            elif _is_scalar(value):
                constraints.append(Constraint(key, EQ, value))
            else:
                self._reject(f"unsupported_filter_value:{key}")

        self._spec = QuerySpec(
            predicate=tuple(constraints),
            sort=self._spec.sort,
            projection=self._spec.projection,
            page=self._spec.page,
        )
        return self

    def _range(self, name: str, ops: Mapping[str, Any]) -> list[Constraint]:
        out: list[Constraint] = []
        for op, value in ops.items():
            if op not in RANGE_OPERATORS:
                self._reject(f"unsupported_filter_operator:{name}[{op}]")
                continue
            if not _is_scalar(value):
                self._reject(f"unsupported_filter_value:{name}[{op}]")
                continue
            out.append(Constraint(name, op, value))
        return out

    def sort(self) -> QueryFeatures:
        parts = _split_csv(self._params.get("sort")) or _split_csv(self._options.default_sort)
        keys: list[SortKey] = []
        seen: set[str] = set()
        for part in parts:
            descending = part.startswith("-")
            name = part.lstrip("-").strip()
            if not name or name in seen:
                continue
            seen.add(name)
            keys.append(SortKey(name, descending))

        self._spec = QuerySpec(
            predicate=self._spec.predicate,
            sort=tuple(keys),
            projection=self._spec.projection,
            page=self._spec.page,
        )
        return self

    def limit_fields(self) -> QueryFeatures:
        parts = _split_csv(self._params.get("fields"))
        include = frozenset(p for p in parts if not p.startswith("-"))
        exclude = frozenset(p.lstrip("-") for p in parts if p.startswith("-"))

        if include and exclude:
            # Mixed include/exclude is ambiguous; includes win.
            self._reject("mixed_field_projection")
            exclude = frozenset()

        if include:
            projection = Projection(include=include | self._options.always_included)
        elif exclude:
            projection = Projection(exclude=exclude - self._options.always_included)
        else:
            projection = Projection(exclude=self._options.hidden_fields)

        self._spec = QuerySpec(
            predicate=self._spec.predicate,
            sort=self._spec.sort,
            projection=projection,
            page=self._spec.page,
        )
        return self

    def paginate(self) -> QueryFeatures:
        page = self._positive_int("page", 1)
        limit = min(
            self._positive_int("limit", self._options.default_limit),
            self._options.max_limit,
        )
        if (page - 1) * limit > MAX_OFFSET:
            self._reject("invalid_page")
            page = 1
        self._spec = QuerySpec(
            predicate=self._spec.predicate,
            sort=self._spec.sort,
            projection=self._spec.projection,
            page=PageWindow(page=page, limit=limit),
        )
        return self

    def _positive_int(self, key: str, default: int) -> int:
        raw = self._params.get(key)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            self._reject(f"invalid_{key}")
            return default
        if value < 1:
            self._reject(f"invalid_{key}")
            return default
        return value


def build_query_spec(
    params: Mapping[str, Any], *, options: QueryOptions | None = None
) -> QuerySpec:
    return QueryFeatures(params, options=options).filter().sort().limit_fields().paginate().spec


# --- Module Notes -----------------------------------------------------------
# Field names are not checked here; the SQL adapter validates them against the
# model's allow-list, so the same spec type serves every collection.
