"""
marketplace_api.query

Query shaping for collection reads.

Responsibilities:
- `features`: pure builder turning query parameters into a `QuerySpec`.
- `sql`: apply a `QuerySpec` to SQLAlchemy selects.
"""

from marketplace_api.query.features import (
    QueryFeatures,
    QueryOptions,
    QuerySpec,
    build_query_spec,
)

__all__ = ["QueryFeatures", "QueryOptions", "QuerySpec", "build_query_spec"]
