"""Product API endpoints.

Provides endpoints for catalog management:
- GET /products - list active products (paginated, filtered, sorted)
- GET /products/search - bounded free-text search
- GET /products/{id} - product details
- POST /products - create a product (admin)
- POST /products/{id}/duplicate - copy a product (admin)
- PUT /products/{id} - partial update (admin)
- DELETE /products/{id} - soft delete (admin)
- POST /products/upload/images - upload product images (admin)
- DELETE /products/images/{public_id} - delete a hosted image (admin)
- POST /products/upload/size-chart - upload a size chart image (admin)
"""

from collections.abc import AsyncGenerator
from typing import Annotated
from urllib.parse import unquote

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status

from app.api.schemas import (
    Envelope,
    ErrorResponse,
    ImageSchema,
    ProductCreateRequest,
    ProductSchema,
    ProductUpdateRequest,
    ShippingStructureSchema,
    SizeChartSchema,
)
from app.catalog.entities import ProductDTO
from app.catalog.repository import (
    ProductRepository,
    SqlProductRepository,
    get_memory_repository,
)
from app.catalog.service import PaginationParams, ProductFilter, ProductService
from app.domain.exceptions import ValidationError
from app.infrastructure.config import settings
from app.infrastructure.database import async_session_factory
from app.infrastructure.media_client import (
    ImageFile,
    MediaClient,
    UploadedImage,
    get_media_client,
)

router = APIRouter(prefix="/products", tags=["Products"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}

ADMIN_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


async def get_repository() -> AsyncGenerator[ProductRepository, None]:
    """Yield the configured product repository.

    The database-backed repository gets one session per request,
    committed on success and rolled back on error.
    """
    if settings.catalog_store == "memory":
        yield get_memory_repository()
        return

    async with async_session_factory() as session:
        try:
            yield SqlProductRepository(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_service(
    request: Request,
    repository: Annotated[ProductRepository, Depends(get_repository)],
    media: Annotated[MediaClient, Depends(get_media_client)],
) -> ProductService:
    """Get product service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return ProductService(repository, media, request_id=request_id)


ServiceDep = Annotated[ProductService, Depends(get_service)]


# ============================================================================
# Converters
# ============================================================================


def product_to_response(product: ProductDTO) -> dict:
    """Convert ProductDTO to its camelCase JSON form."""
    shipping: ShippingStructureSchema | str | None = product.shipping_structure_id
    if product.shipping_structure:
        shipping = ShippingStructureSchema(
            id=product.shipping_structure.id,
            name=product.shipping_structure.name,
            rules=product.shipping_structure.rules,
            is_default=product.shipping_structure.is_default,
        )

    schema = ProductSchema(
        id=product.id,
        name=product.name,
        description=product.description,
        brand=product.brand,
        category=product.category,
        sku=product.sku,
        price=float(product.price),
        stock=product.stock,
        tags=product.tags,
        images=[ImageSchema(url=img.url, public_id=img.public_id) for img in product.images],
        size_chart=(
            SizeChartSchema(
                image_url=product.size_chart.image_url,
                image_public_id=product.size_chart.image_public_id,
            )
            if product.size_chart
            else None
        ),
        shipping_structure=shipping,
        is_active=product.is_active,
        average_rating=product.average_rating,
        review_count=product.review_count,
        version=product.version,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )
    return schema.model_dump(by_alias=True, mode="json")


def image_to_response(image: UploadedImage) -> dict:
    """Convert UploadedImage to its camelCase JSON form."""
    return ImageSchema(url=image.url, public_id=image.public_id).model_dump(by_alias=True)


def _file_too_large(filename: str | None, size: int) -> ValidationError:
    return ValidationError(
        f"Image exceeds the maximum size of {settings.media_max_file_size} bytes",
        details={"field": filename, "size": size},
    )


async def read_image_file(upload: UploadFile) -> ImageFile:
    """Read an uploaded file, enforcing the allowed types and size.

    Raises:
        ValidationError: If the file type or size is not accepted.
    """
    content_type = upload.content_type or ""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Only image files are allowed (jpeg, png, webp, gif)",
            details={"field": upload.filename, "content_type": content_type},
        )

    # Multipart parsing records the size; skip reading oversized files
    if upload.size is not None and upload.size > settings.media_max_file_size:
        raise _file_too_large(upload.filename, upload.size)

    content = await upload.read()
    if len(content) > settings.media_max_file_size:
        raise _file_too_large(upload.filename, len(content))

    return ImageFile(
        filename=upload.filename or "image",
        content_type=content_type,
        content=content,
    )


# ============================================================================
# Public Endpoints
# ============================================================================


@router.get(
    "",
    response_model=Envelope,
    response_model_exclude_none=True,
    summary="List products",
    description="List active products with pagination, filters and sorting.",
)
async def list_products(
    service: ServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, description="Page size")] = None,
    search: str | None = None,
    category: str | None = None,
    brand: str | None = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "-createdAt",
) -> Envelope:
    """List active products.

    Args:
        service: Product service.
        page: Page number (1-based).
        limit: Page size.
        search: Free-text search term.
        category: Exact category filter.
        brand: Case-insensitive brand substring.
        sort_by: Sort key; prefix with "-" for descending.

    Returns:
        Page of products with paging totals.
    """
    result = await service.list_products(
        ProductFilter(search=search or None, category=category or None, brand=brand or None),
        PaginationParams(
            page=page,
            page_size=limit or settings.default_page_size,
            sort_by=sort_by,
        ),
    )

    return Envelope(
        success=True,
        count=result.count,
        total=result.total,
        total_pages=result.total_pages,
        current_page=result.page,
        data={"products": [product_to_response(p) for p in result.items]},
    )


@router.get(
    "/search",
    response_model=Envelope,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
    summary="Search products",
)
async def search_products(
    service: ServiceDep,
    q: str | None = None,
) -> Envelope:
    """Search active products by name, brand or description.

    Returns:
        At most the configured number of matches, unpaginated.

    Raises:
        ValidationError: If ``q`` is missing or blank.
    """
    products = await service.search_products(q)

    return Envelope(
        success=True,
        count=len(products),
        data={"products": [product_to_response(p) for p in products]},
    )


@router.get(
    "/{product_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(product_id: str, service: ServiceDep) -> Envelope:
    """Get a product by id, active or not.

    Raises:
        ProductNotFoundError: If the id does not resolve.
    """
    product = await service.get_product(product_id)
    return Envelope(success=True, data={"product": product_to_response(product)})


# ============================================================================
# Admin Endpoints
# ============================================================================


@router.post(
    "",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=ADMIN_RESPONSES,
    summary="Create product",
)
async def create_product(body: ProductCreateRequest, service: ServiceDep) -> Envelope:
    """Create a product."""
    product = await service.create_product(body.to_fields())
    return Envelope(
        success=True,
        message="Product created successfully",
        data={"product": product_to_response(product)},
    )


@router.post(
    "/upload/images",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=ADMIN_RESPONSES,
    summary="Upload product images",
)
async def upload_images(
    service: ServiceDep,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> Envelope:
    """Upload between one and the configured maximum of product images.

    The returned references are attached to a product by a later
    create or update call.
    """
    files = [await read_image_file(upload) for upload in images or []]
    uploaded = await service.upload_images(files)

    return Envelope(
        success=True,
        message="Images uploaded successfully",
        count=len(uploaded),
        data={"images": [image_to_response(img) for img in uploaded]},
    )


@router.post(
    "/upload/size-chart",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=ADMIN_RESPONSES,
    summary="Upload size chart",
)
async def upload_size_chart(
    service: ServiceDep,
    image: Annotated[UploadFile | None, File()] = None,
) -> Envelope:
    """Upload a single size chart image."""
    file = await read_image_file(image) if image is not None else None
    uploaded = await service.upload_size_chart(file)

    return Envelope(
        success=True,
        message="Size chart uploaded successfully",
        data={"image": image_to_response(uploaded)},
    )


@router.delete(
    "/images/{public_id:path}",
    response_model=Envelope,
    response_model_exclude_none=True,
    responses=ADMIN_RESPONSES,
    summary="Delete image",
)
async def delete_image(public_id: str, service: ServiceDep) -> Envelope:
    """Delete a hosted image by its (possibly URL-encoded) public id.

    Media service failures propagate as a 500.
    """
    await service.delete_image(unquote(public_id))
    return Envelope(success=True, message="Image deleted successfully")


@router.post(
    "/{product_id}/duplicate",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse}},
    summary="Duplicate product",
)
async def duplicate_product(product_id: str, service: ServiceDep) -> Envelope:
    """Copy a product under a new id with a "(Copy)" name suffix."""
    product = await service.duplicate_product(product_id)
    return Envelope(
        success=True,
        message="Product duplicated successfully",
        data={"product": product_to_response(product)},
    )


@router.put(
    "/{product_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse}},
    summary="Update product",
)
async def update_product(
    product_id: str,
    body: ProductUpdateRequest,
    service: ServiceDep,
) -> Envelope:
    """Overwrite the supplied fields of a product."""
    product = await service.update_product(product_id, body.to_fields())
    return Envelope(
        success=True,
        message="Product updated successfully",
        data={"product": product_to_response(product)},
    )


@router.delete(
    "/{product_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(product_id: str, service: ServiceDep) -> Envelope:
    """Soft-delete a product; hosted images are removed best-effort."""
    await service.delete_product(product_id)
    return Envelope(success=True, message="Product deleted successfully")
