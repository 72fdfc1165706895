"""SQLAlchemy models for product catalog.

Defines Product and ShippingStructure tables for persistent storage.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.catalog.sku import generate_sku
from app.infrastructure.database import Base


class ShippingStructure(Base):
    """Shipping rules set, managed outside the catalog.

    Products reference one of these; the catalog only reads it.

    Attributes:
        id: Unique identifier (UUID).
        name: Display name.
        rules: Rule definitions as stored by the shipping module.
        is_default: Whether this is the default structure.
    """

    __tablename__ = "shipping_structures"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    rules: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        """String representation."""
        return f"<ShippingStructure(id={self.id}, name={self.name})>"


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Unique product identifier (UUID).
        name: Product name.
        description: Product description.
        brand: Brand name.
        category: Category name.
        sku: Stock Keeping Unit, unique across products.
        price: Unit price.
        stock: Available quantity.
        tags: Free-form labels.
        images: Ordered list of {url, public_id}.
        size_chart: Optional {image_url, image_public_id}.
        shipping_structure_id: Referenced shipping structure.
        is_active: Soft-delete flag.
        average_rating: Denormalized rating aggregate.
        review_count: Denormalized review count.
        version: Version marker, bumped on every save.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    category: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    images: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    size_chart: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    shipping_structure_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("shipping_structures.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    shipping_structure: Mapped[ShippingStructure | None] = relationship(
        "ShippingStructure",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, sku={self.sku}, name={self.name[:30]}...)>"


@event.listens_for(Product, "before_insert")
def _assign_sku(mapper: Any, connection: Any, target: Product) -> None:
    """Fill in a SKU for products inserted without one."""
    if not target.sku:
        target.sku = generate_sku(target.category)
