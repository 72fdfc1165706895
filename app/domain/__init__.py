"""Domain layer - error hierarchy shared by the catalog and the API.

Example usage:
    from app.domain import ProductNotFoundError

    raise ProductNotFoundError(product_id)
"""

from app.domain.exceptions import (
    DomainError,
    DuplicateSkuError,
    MediaServiceError,
    ProductNotFoundError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "DuplicateSkuError",
    "MediaServiceError",
    "ProductNotFoundError",
    "ValidationError",
]
