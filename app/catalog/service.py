"""Catalog service for product operations.

High-level service that combines repository operations with
business logic for catalog management: soft deletion with media
cleanup, duplication and guarded partial updates.
"""

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from app.catalog.entities import (
    DERIVED_FIELDS,
    SYSTEM_FIELDS,
    ProductDTO,
    coerce_product_field,
    product_field_names,
)
from app.catalog.repository import ProductRepository
from app.domain.exceptions import ProductNotFoundError, ValidationError
from app.infrastructure.config import settings
from app.infrastructure.media_client import ImageFile, MediaClient, UploadedImage

logger = structlog.get_logger()

T = TypeVar("T")

# Keys a partial update may never overwrite.
IMMUTABLE_FIELDS = SYSTEM_FIELDS

# Wire sort keys mapped to repository field names.
SORT_KEYS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "price": "price",
    "averageRating": "average_rating",
    "reviewCount": "review_count",
}

NON_NULLABLE_FIELDS = frozenset(
    {"price", "stock", "tags", "images", "is_active", "average_rating", "review_count"}
)

COPY_SUFFIX = " (Copy)"


@dataclass
class ProductFilter:
    """Filter parameters for product listing.

    Attributes:
        search: Text search in name/description/brand.
        category: Exact category match.
        brand: Case-insensitive brand substring.
    """

    search: str | None = None
    category: str | None = None
    brand: str | None = None


@dataclass
class PaginationParams:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        page_size: Items per page.
        sort_by: Sort key, a leading "-" means descending.
    """

    page: int = 1
    page_size: int = 10
    sort_by: str = "-createdAt"

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.page_size

    @property
    def sort_field(self) -> str:
        """Repository field name for the sort key."""
        key = self.sort_by.lstrip("-+ ")
        return SORT_KEYS.get(key, "created_at")

    @property
    def sort_desc(self) -> bool:
        """Whether the sort key asks for descending order."""
        return self.sort_by.startswith("-")


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Attributes:
        items: List of items.
        total: Total count.
        page: Current page.
        page_size: Items per page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def count(self) -> int:
        """Number of items on this page."""
        return len(self.items)


class ProductService:
    """Service for product catalog operations.

    Example usage:
        service = ProductService(get_memory_repository(), get_media_client())
        created = await service.create_product({"name": "Shirt"})
        await service.delete_product(created.id)
    """

    def __init__(
        self,
        repository: ProductRepository,
        media: MediaClient,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repository: Product repository.
            media: Media hosting client.
            request_id: Request ID for correlation.
        """
        self.repository = repository
        self.media = media
        self.request_id = request_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_products(
        self,
        filters: ProductFilter,
        pagination: PaginationParams,
    ) -> PaginatedResult[ProductDTO]:
        """List active products with filters and pagination.

        Args:
            filters: Filter parameters.
            pagination: Pagination parameters.

        Returns:
            Paginated product results.
        """
        if settings.max_page_size and pagination.page_size > settings.max_page_size:
            pagination = dataclasses.replace(pagination, page_size=settings.max_page_size)

        products, total = await self.repository.find_all(
            category=filters.category,
            brand=filters.brand,
            search=filters.search,
            active_only=True,
            sort_by=pagination.sort_field,
            sort_desc=pagination.sort_desc,
            limit=pagination.page_size,
            offset=pagination.offset,
        )

        return PaginatedResult(
            items=products,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def get_product(self, product_id: str) -> ProductDTO:
        """Get a product by id regardless of its active flag.

        Raises:
            ProductNotFoundError: If the id does not resolve.
        """
        product = await self.repository.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def search_products(self, query: str | None) -> list[ProductDTO]:
        """Bounded free-text search over active products.

        Raises:
            ValidationError: If the query is missing or blank.
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required", details={"field": "q"})
        return await self.repository.search(query.strip(), limit=settings.search_limit)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_product(self, data: dict[str, Any]) -> ProductDTO:
        """Create a product from validated field values.

        Args:
            data: Field values keyed by ProductDTO field name.

        Returns:
            The stored product.
        """
        product = ProductDTO(id="", name="")
        self._apply_changes(product, data)
        if not product.name:
            raise ValidationError("Product name is required", details={"field": "name"})
        created = await self.repository.create(product)

        logger.info(
            "Product created",
            product_id=created.id,
            sku=created.sku,
            request_id=self.request_id,
        )
        return created

    async def update_product(self, product_id: str, changes: dict[str, Any]) -> ProductDTO:
        """Overwrite the supplied fields of a product.

        Immutable keys (id, version, timestamps) are dropped without error.

        Raises:
            ProductNotFoundError: If the id does not resolve.
        """
        product = await self.get_product(product_id)

        dropped = sorted(set(changes) & IMMUTABLE_FIELDS)
        if dropped:
            logger.debug("Ignoring immutable fields on update", fields=dropped)

        self._apply_changes(product, changes)
        updated = await self.repository.save(product)

        logger.info(
            "Product updated",
            product_id=product_id,
            fields=sorted(set(changes) - IMMUTABLE_FIELDS),
            request_id=self.request_id,
        )
        return updated

    async def delete_product(self, product_id: str) -> ProductDTO:
        """Soft-delete a product after best-effort media cleanup.

        Cleanup failures are logged and never block the deactivation.

        Raises:
            ProductNotFoundError: If the id does not resolve.
        """
        product = await self.get_product(product_id)

        public_ids = [img.public_id for img in product.images if img.public_id]
        if public_ids:
            try:
                await self.media.delete_images(public_ids)
            except Exception as e:
                logger.warning(
                    "Error deleting product images",
                    product_id=product_id,
                    public_ids=public_ids,
                    error=str(e),
                )

        if product.size_chart and product.size_chart.image_public_id:
            try:
                await self.media.delete_image(product.size_chart.image_public_id)
            except Exception as e:
                logger.warning(
                    "Error deleting size chart image",
                    product_id=product_id,
                    public_id=product.size_chart.image_public_id,
                    error=str(e),
                )

        product.is_active = False
        deleted = await self.repository.save(product)

        logger.info("Product soft-deleted", product_id=product_id, request_id=self.request_id)
        return deleted

    async def duplicate_product(self, product_id: str) -> ProductDTO:
        """Create a copy of a product with reset identity and aggregates.

        The active flag is copied as is.

        Raises:
            ProductNotFoundError: If the id does not resolve.
        """
        source = await self.get_product(product_id)

        copy = dataclasses.replace(
            source,
            id="",
            name=f"{source.name}{COPY_SUFFIX}",
            sku=None,
            average_rating=0.0,
            review_count=0,
            shipping_structure=None,
        )
        duplicated = await self.repository.create(copy)

        logger.info(
            "Product duplicated",
            source_id=product_id,
            product_id=duplicated.id,
            request_id=self.request_id,
        )
        return duplicated

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def upload_images(self, images: list[ImageFile]) -> list[UploadedImage]:
        """Upload product images; nothing is attached to a product here.

        Raises:
            ValidationError: If no images, or more than the limit, are given.
        """
        if not images:
            raise ValidationError("No images provided")
        if len(images) > settings.max_upload_files:
            raise ValidationError(
                f"Too many images; at most {settings.max_upload_files} allowed",
                details={"received": len(images)},
            )
        return await self.media.upload_product_images(images)

    async def upload_size_chart(self, image: ImageFile | None) -> UploadedImage:
        """Upload a size chart image.

        Raises:
            ValidationError: If no image is given.
        """
        if image is None:
            raise ValidationError("No image provided")
        return await self.media.upload_size_chart(image)

    async def delete_image(self, public_id: str) -> None:
        """Delete one hosted image; media failures propagate.

        Raises:
            ValidationError: If the public id is blank.
            MediaServiceError: If the media service call fails.
        """
        if not public_id:
            raise ValidationError("Public ID is required")
        await self.media.delete_image(public_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_changes(product: ProductDTO, changes: dict[str, Any]) -> None:
        """Merge field values into a product, skipping denied keys."""
        allowed = product_field_names() - IMMUTABLE_FIELDS - DERIVED_FIELDS
        for name, value in changes.items():
            if name not in allowed:
                continue
            if name == "name" and not value:
                raise ValidationError("Product name is required", details={"field": "name"})
            if value is None and name in NON_NULLABLE_FIELDS:
                raise ValidationError(f"{name} cannot be null", details={"field": name})
            setattr(product, name, coerce_product_field(name, value))
