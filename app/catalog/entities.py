"""Catalog data transfer objects.

Plain dataclasses shared by the repositories, the service and the API
converters, so the service never touches ORM rows directly.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


@dataclass
class ProductImage:
    """Hosted product image."""

    url: str
    public_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductImage":
        """Create from a snake_case or camelCase mapping."""
        return cls(
            url=data["url"],
            public_id=data.get("public_id") or data.get("publicId") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "public_id": self.public_id}


@dataclass
class SizeChart:
    """Hosted size chart image."""

    image_url: str | None = None
    image_public_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SizeChart":
        """Create from a snake_case or camelCase mapping."""
        return cls(
            image_url=data.get("image_url") or data.get("imageUrl"),
            image_public_id=data.get("image_public_id") or data.get("imagePublicId"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"image_url": self.image_url, "image_public_id": self.image_public_id}


@dataclass
class ShippingStructureSummary:
    """Shipping rules referenced by a product, resolved at read time."""

    id: str
    name: str
    rules: list[dict[str, Any]] = field(default_factory=list)
    is_default: bool = False


@dataclass
class ProductDTO:
    """Product data transfer object."""

    id: str
    name: str
    description: str | None = None
    brand: str | None = None
    category: str | None = None
    sku: str | None = None
    price: Decimal = Decimal("0")
    stock: int = 0
    tags: list[str] = field(default_factory=list)
    images: list[ProductImage] = field(default_factory=list)
    size_chart: SizeChart | None = None
    shipping_structure_id: str | None = None
    shipping_structure: ShippingStructureSummary | None = None
    is_active: bool = True
    average_rating: float = 0.0
    review_count: int = 0
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# Fields owned by the store; never copied or overwritten from input.
SYSTEM_FIELDS = frozenset({"id", "version", "created_at", "updated_at"})

# Read-only projection resolved from shipping_structure_id.
DERIVED_FIELDS = frozenset({"shipping_structure"})


def product_field_names() -> set[str]:
    """Names of all ProductDTO fields."""
    return {f.name for f in fields(ProductDTO)}


def coerce_product_field(name: str, value: Any) -> Any:
    """Convert a raw input value to the type stored on ProductDTO.

    Args:
        name: ProductDTO field name.
        value: Raw value, usually from a validated request body.

    Returns:
        Value ready to assign to the field.
    """
    if value is None:
        return None
    if name == "images":
        return [
            img if isinstance(img, ProductImage) else ProductImage.from_dict(img)
            for img in value
        ]
    if name == "size_chart":
        return value if isinstance(value, SizeChart) else SizeChart.from_dict(value)
    if name == "price":
        return Decimal(str(value))
    if name == "tags":
        return list(value)
    return value
