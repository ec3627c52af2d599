"""
marketplace_api.db.models

Core persistence schema for the marketplace.

Responsibilities:
- Define ORM models:
  - User: credentials, role, seller profile
  - Product: catalog entry owned by one seller
  - Review: one rating per (product, user)
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Enum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_api.auth.models import Principal, Role
from marketplace_api.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; readers re-attach UTC where they compare.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class ProductCategory(enum.StrEnum):
    # Enum values are stored in DB; treat as stable API contract.
    food = "food"
    beverage = "beverage"
    craft = "craft"
    fashion = "fashion"
    beauty = "beauty"
    household = "household"
    electronics = "electronics"
    other = "other"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    password_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False, default=Role.client, index=True)
    seller_info: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    addresses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    # Plaintext waiting for `auth.passwords.prepare_credentials`; never persisted.
    pending_password = None

    products: Mapped[list[Product]] = relationship(back_populates="seller")

    def set_password(self, password: str) -> None:
        self.pending_password = password

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            role=self.role,
            credential_changed_at=self.password_changed_at,
            name=self.name,
            email=self.email,
        )

    @property
    def city(self) -> str | None:
        for addr in self.addresses or []:
            if addr.get("city"):
                return str(addr["city"])
        return None


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    seller_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    seller_name: Mapped[str] = mapped_column(String(128), nullable=False)
    seller_location: Mapped[str] = mapped_column(String(128), nullable=False)

    category: Mapped[ProductCategory] = mapped_column(
        Enum(ProductCategory), nullable=False, index=True
    )
    sub_category: Mapped[str | None] = mapped_column(String(64), nullable=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    discount_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    discount_percentage: Mapped[int | None] = mapped_column(nullable=True)
    stock: Mapped[int] = mapped_column(nullable=False, default=0)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="gram")

    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    is_featured: Mapped[bool] = mapped_column(nullable=False, default=False)
    is_available: Mapped[bool] = mapped_column(nullable=False, default=True)

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    num_reviews: Mapped[int] = mapped_column(nullable=False, default=0)

    # Optimistic-lock counter maintained by the ORM; hidden from default projections.
    version: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    seller: Mapped[User] = relationship(back_populates="products")
    reviews: Mapped[list[Review]] = relationship(
        back_populates="product", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (Index("ix_products_seller_created", "seller_id", "created_at"),)

    @property
    def owner_id(self) -> uuid.UUID:
        return self.seller_id


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    rating: Mapped[int] = mapped_column(nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    product: Mapped[Product] = relationship(back_populates="reviews")

    __table_args__ = (UniqueConstraint("product_id", "user_id", name="uq_reviews_product_user"),)


# --- Module Notes -----------------------------------------------------------
# `Product.owner_id` is what the ownership check in `auth.pipeline` reads.
