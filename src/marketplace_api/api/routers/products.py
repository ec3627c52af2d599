"""
marketplace_api.api.routers.products

Product catalog endpoints. Every route requires an authenticated caller.

Responsibilities:
- Sellers create products; owners (or admins) update them; sellers/admins who own
  a product (admins: any product) delete it.
- Collection reads go through the query-feature builder.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from marketplace_api.api.deps import db_session, query_options
from marketplace_api.auth.deps import get_principal, require_access, require_roles
from marketplace_api.auth.models import Principal
from marketplace_api.db.models import Product, ProductCategory
from marketplace_api.db.repositories.products import ProductRepo
from marketplace_api.errors import NotFound
from marketplace_api.query.features import QueryFeatures, QueryOptions, QuerySpec
from marketplace_api.query.sql import project
from marketplace_api.services.catalog import CatalogService

router = APIRouter(prefix="/api/product", tags=["products"], dependencies=[Depends(get_principal)])

# Single-item reads use the same default projection as collection reads.
DEFAULT_VIEW: QuerySpec = QueryFeatures({}).limit_fields().spec


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    category: ProductCategory
    sub_category: str | None = Field(default=None, max_length=64)
    price: float = Field(ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    weight: float = Field(ge=0)
    unit: str = Field(default="gram", max_length=16)
    images: list[str] = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    is_featured: bool = False
    is_available: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1)
    category: ProductCategory | None = None
    sub_category: str | None = Field(default=None, max_length=64)
    price: float | None = Field(default=None, ge=0)
    discount_price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    weight: float | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, max_length=16)
    images: list[str] | None = Field(default=None, min_length=1)
    tags: list[str] | None = None
    is_featured: bool | None = None
    is_available: bool | None = None


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


def _out(product: Product, spec: QuerySpec = DEFAULT_VIEW) -> dict[str, Any]:
    return project(product, spec, columns=ProductRepo.columns)


def _collection(products: list[Product], spec: QuerySpec = DEFAULT_VIEW) -> dict[str, Any]:
    return {
        "status": "success",
        "results": len(products),
        "data": {"products": [_out(p, spec) for p in products]},
    }


@router.post("", status_code=HTTP_201_CREATED)
async def create_product(
    body: ProductCreate,
    principal: Principal = Depends(require_roles("seller")),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    product = await CatalogService(session=session).create(principal, body.model_dump())
    return {"status": "success", "data": {"product": _out(product)}}


@router.get("")
async def list_products(
    request: Request,
    options: QueryOptions = Depends(query_options),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    spec = (
        QueryFeatures(request.query_params, options=options)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
        .spec
    )
    products = await ProductRepo(session).find_many(spec, strict=options.strict)
    return _collection(products, spec)


@router.get("/product-top")
async def top_products(session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    return _collection(await ProductRepo(session).top_rated(limit=5))


@router.get("/seller/{seller_id}")
async def products_by_seller(
    seller_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    return _collection(await ProductRepo(session).list_by_seller(seller_id))


@router.get("/{product_id}")
async def get_product(
    product_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    product = await ProductRepo(session).find_by_id(product_id)
    if product is None:
        raise NotFound("product_not_found")
    return {"status": "success", "data": {"product": _out(product)}}


@router.patch("/{product_id}")
async def update_product(
    body: ProductUpdate,
    product: Product = Depends(require_access(ownership=ProductRepo, param="product_id")),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    updated = await CatalogService(session=session).update(product, changes)
    return {"status": "success", "data": {"product": _out(updated)}}


@router.delete("/{product_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_product(
    product: Product = Depends(
        require_access("seller", "admin", ownership=ProductRepo, param="product_id")
    ),
    session: AsyncSession = Depends(db_session),
) -> Response:
    await CatalogService(session=session).delete(product)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.post("/{product_id}/reviews", status_code=HTTP_201_CREATED)
async def create_review(
    product_id: uuid.UUID,
    body: ReviewCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    await CatalogService(session=session).add_review(
        principal, product_id, rating=body.rating, comment=body.comment
    )
    return {"status": "success", "message": "review_added"}


# --- Module Notes -----------------------------------------------------------
# The ownership dependency and the handlers share one request-scoped session, so the
# product it resolves is the same instance the service mutates.
