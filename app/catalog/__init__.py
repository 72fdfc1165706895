"""Product Catalog.

Provides product persistence, SKU assignment and the catalog service
used by the product API.
"""

from app.catalog.entities import ProductDTO, ProductImage, ShippingStructureSummary, SizeChart
from app.catalog.models import Product, ShippingStructure
from app.catalog.repository import (
    InMemoryProductRepository,
    ProductRepository,
    SqlProductRepository,
)
from app.catalog.service import PaginatedResult, PaginationParams, ProductFilter, ProductService

__all__ = [
    # Entities
    "ProductDTO",
    "ProductImage",
    "ShippingStructureSummary",
    "SizeChart",
    # Models
    "Product",
    "ShippingStructure",
    # Repository
    "InMemoryProductRepository",
    "ProductRepository",
    "SqlProductRepository",
    # Service
    "PaginatedResult",
    "PaginationParams",
    "ProductFilter",
    "ProductService",
]
