"""
marketplace_api.services.catalog

Product catalog service (transaction owner for product writes).

Responsibilities:
- Create products on behalf of the authenticated seller.
- Apply partial updates, keeping the derived discount percentage consistent.
- Delete products and record reviews.
"""

from __future__ import annotations

import re
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.auth.models import Principal
from marketplace_api.db.models import Product, Review
from marketplace_api.db.repositories.products import ProductRepo
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.errors import Conflict, NotFound, ValidationError
from marketplace_api.observability.logging import get_logger

log = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Product columns a partial update may clear with an explicit null.
CLEARABLE_FIELDS = frozenset({"sub_category", "discount_price"})


def slugify(name: str) -> str:
    return _WHITESPACE.sub("-", name.strip().lower())


def discount_percentage(price: float | None, discount_price: float | None) -> int | None:
    if not price or not discount_price:
        return None
    if discount_price >= price:
        raise ValidationError("discount_price_must_be_below_price")
    return round((price - discount_price) / price * 100)


class CatalogService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._products = ProductRepo(session)
        self._users = UserRepo(session)

    async def create(self, principal: Principal, data: dict[str, Any]) -> Product:
        slug = slugify(data["name"])
        if await self._products.slug_exists(slug):
            raise Conflict("slug_exists")

        seller = await self._users.find_by_id(principal.id)
        if seller is None:
            raise NotFound("user_not_found")

        product = await self._products.create(
            **data,
            slug=slug,
            seller_id=seller.id,
            seller_name=seller.name,
            seller_location=seller.city or "unknown",
            discount_percentage=discount_percentage(data.get("price"), data.get("discount_price")),
        )
        await self._session.commit()
        log.info("product_created", product_id=str(product.id), seller_id=str(seller.id))
        return product

    async def update(self, product: Product, changes: dict[str, Any]) -> Product:
        nulled = sorted(k for k, v in changes.items() if v is None and k not in CLEARABLE_FIELDS)
        if nulled:
            raise ValidationError(f"field_not_nullable:{nulled[0]}")

        if "price" in changes or "discount_price" in changes:
            price = changes["price"] if "price" in changes else product.price
            discount = (
                changes["discount_price"] if "discount_price" in changes else product.discount_price
            )
            changes["discount_percentage"] = discount_percentage(price, discount)
        if "name" in changes:
            slug = slugify(changes["name"])
            if slug != product.slug and await self._products.slug_exists(slug):
                raise Conflict("slug_exists")
            changes["slug"] = slug

        updated = await self._products.update(product, changes)
        await self._session.commit()
        log.info("product_updated", product_id=str(product.id), fields=sorted(changes))
        return updated

    async def delete(self, product: Product) -> None:
        product_id = product.id
        await self._products.delete(product)
        await self._session.commit()
        log.info("product_deleted", product_id=str(product_id))

    async def add_review(
        self, principal: Principal, product_id: uuid.UUID, *, rating: int, comment: str | None
    ) -> Review:
        product = await self._products.find_by_id(product_id)
        if product is None:
            raise NotFound("product_not_found")
        if await self._products.find_review(product_id, principal.id) is not None:
            raise Conflict("already_reviewed")

        review = await self._products.add_review(
            product, user_id=principal.id, name=principal.name, rating=rating, comment=comment
        )
        await self._session.commit()
        return review


# --- Module Notes -----------------------------------------------------------
# Authorization (role + ownership) is enforced before these methods are called;
# see the route dependencies in `api.routers.products`.
