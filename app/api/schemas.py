"""API schemas for the Product Catalog API.

Pydantic models for request/response validation and serialization.
Wire field names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Common Schemas
# ============================================================================


class Envelope(CamelModel):
    """Uniform response envelope.

    All endpoints answer with this shape; optional keys are omitted
    when unset.
    """

    success: bool = Field(..., description="Whether the request succeeded")
    message: str | None = Field(default=None, description="Human-readable message")
    count: int | None = Field(default=None, description="Items in this response")
    total: int | None = Field(default=None, description="Total matching items")
    total_pages: int | None = Field(default=None, description="Total number of pages")
    current_page: int | None = Field(default=None, description="Current page number")
    data: dict[str, Any] | None = Field(default=None, description="Response payload")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(CamelModel):
    """Standard error response."""

    success: bool = Field(default=False)
    message: str = Field(..., description="Human-readable error message")
    error: str = Field(..., description="Machine-readable error code")
    details: list[ErrorDetail] = Field(default_factory=list)
    request_id: str | None = Field(default=None, description="Request ID for correlation")


# ============================================================================
# Product Schemas
# ============================================================================


class ImageSchema(CamelModel):
    """Hosted image reference."""

    url: str = Field(..., min_length=1)
    public_id: str = Field(..., min_length=1)


class SizeChartSchema(CamelModel):
    """Size chart image reference."""

    image_url: str | None = None
    image_public_id: str | None = None


class ShippingStructureSchema(CamelModel):
    """Resolved shipping structure summary."""

    id: str
    name: str
    rules: list[dict[str, Any]] = Field(default_factory=list)
    is_default: bool = False


class ProductCreateRequest(CamelModel):
    """Request to create a product."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    name: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=200)
    sku: str | None = Field(default=None, max_length=100)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    stock: int = Field(default=0, ge=0)
    tags: list[str] = Field(default_factory=list)
    images: list[ImageSchema] = Field(default_factory=list)
    size_chart: SizeChartSchema | None = None
    shipping_structure: str | None = Field(
        default=None, description="Shipping structure id"
    )
    is_active: bool = True
    average_rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)

    def to_fields(self) -> dict[str, Any]:
        """Field values keyed by ProductDTO attribute name."""
        return _rename_shipping(self.model_dump(exclude_unset=False))


class ProductUpdateRequest(CamelModel):
    """Partial product update; only supplied keys are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=200)
    sku: str | None = Field(default=None, max_length=100)
    price: Decimal | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    tags: list[str] | None = None
    images: list[ImageSchema] | None = None
    size_chart: SizeChartSchema | None = None
    shipping_structure: str | None = None
    is_active: bool | None = None
    average_rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int | None = Field(default=None, ge=0)

    def to_fields(self) -> dict[str, Any]:
        """Supplied field values keyed by ProductDTO attribute name."""
        return _rename_shipping(self.model_dump(exclude_unset=True))


def _rename_shipping(values: dict[str, Any]) -> dict[str, Any]:
    if "shipping_structure" in values:
        values["shipping_structure_id"] = values.pop("shipping_structure")
    return values


class ProductSchema(CamelModel):
    """Product representation."""

    id: str
    name: str
    description: str | None = None
    brand: str | None = None
    category: str | None = None
    sku: str | None = None
    price: float
    stock: int
    tags: list[str] = Field(default_factory=list)
    images: list[ImageSchema] = Field(default_factory=list)
    size_chart: SizeChartSchema | None = None
    shipping_structure: ShippingStructureSchema | str | None = None
    is_active: bool
    average_rating: float
    review_count: int
    version: int
    created_at: datetime
    updated_at: datetime
