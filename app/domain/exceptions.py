"""Domain exceptions.

All errors raised by the catalog and its collaborators. The API layer
maps each class to an HTTP status and a machine-readable error code.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the API layer.
    """

    status_code: int = 500
    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when required input is missing or malformed."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class DuplicateSkuError(ValidationError):
    """Raised when a product SKU collides with an existing one."""

    error_code = "DUPLICATE_SKU"

    def __init__(self, sku: str) -> None:
        """Initialize duplicate SKU error.

        Args:
            sku: The conflicting SKU.
        """
        super().__init__(
            f"Product with SKU '{sku}' already exists",
            details={"sku": sku},
        )


# ============================================================================
# Product Errors
# ============================================================================


class ProductNotFoundError(DomainError):
    """Raised when a product id does not resolve to a stored record."""

    status_code = 404
    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str) -> None:
        """Initialize product not found error.

        Args:
            product_id: The id that failed to resolve.
        """
        super().__init__("Product not found", details={"product_id": product_id})


# ============================================================================
# Collaborator Errors
# ============================================================================


class MediaServiceError(DomainError):
    """Raised when the media hosting service fails or rejects a call.

    The message is kept for logs; clients only see a generic message.
    """

    status_code = 500
    error_code = "MEDIA_SERVICE_ERROR"
    public_message = "Media service request failed"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        public_id: str | None = None,
    ) -> None:
        """Initialize media service error.

        Args:
            message: Internal description of the failure.
            status_code: HTTP status returned by the provider, if any.
            public_id: Media handle involved, if any.
        """
        super().__init__(
            message,
            details={"provider_status": status_code, "public_id": public_id},
        )
        self.provider_status = status_code
        self.public_id = public_id
