from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.db.models import Product, Review
from marketplace_api.query.features import QuerySpec
from marketplace_api.query.sql import apply_spec, queryable_columns


class ProductRepo:
    columns = queryable_columns(Product)

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, **fields: Any) -> Product:
        product = Product(**fields)
        self._session.add(product)
        await self._session.flush()
        return product

    async def find_by_id(self, product_id: uuid.UUID) -> Product | None:
        return await self._session.get(Product, product_id)

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(Product.id).where(Product.slug == slug).limit(1)
        return (await self._session.execute(stmt)).first() is not None

    async def find_many(self, spec: QuerySpec, *, strict: bool = False) -> list[Product]:
        stmt = apply_spec(select(Product), spec, columns=self.columns, strict=strict)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_by_seller(self, seller_id: uuid.UUID) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.seller_id == seller_id)
            .order_by(desc(Product.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def top_rated(self, *, limit: int = 5) -> list[Product]:
        stmt = select(Product).order_by(desc(Product.rating)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def update(self, product: Product, changes: dict[str, Any]) -> Product:
        for key, value in changes.items():
            setattr(product, key, value)
        await self._session.flush()
        return product

    async def delete(self, product: Product) -> None:
        await self._session.delete(product)
        await self._session.flush()

    async def find_review(self, product_id: uuid.UUID, user_id: uuid.UUID) -> Review | None:
        stmt = select(Review).where(Review.product_id == product_id, Review.user_id == user_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add_review(
        self,
        product: Product,
        *,
        user_id: uuid.UUID,
        name: str,
        rating: int,
        comment: str | None,
    ) -> Review:
        review = Review(
            product_id=product.id, user_id=user_id, name=name, rating=rating, comment=comment
        )
        self._session.add(review)
        await self._session.flush()

        # Aggregates are recomputed from the table rather than incrementally.
        stmt = select(func.count(Review.id), func.avg(Review.rating)).where(
            Review.product_id == product.id
        )
        count, avg = (await self._session.execute(stmt)).one()
        product.num_reviews = int(count)
        product.rating = float(avg or 0.0)
        await self._session.flush()
        return review
