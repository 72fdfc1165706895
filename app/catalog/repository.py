"""Product repositories.

Provides the persistence operations the catalog service needs, backed
either by PostgreSQL (async SQLAlchemy) or by process-local memory.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.catalog.entities import (
    DERIVED_FIELDS,
    SYSTEM_FIELDS,
    ProductDTO,
    ProductImage,
    ShippingStructureSummary,
    SizeChart,
)
from app.catalog.models import Product, ShippingStructure
from app.catalog.sku import generate_sku
from app.domain.exceptions import DuplicateSkuError, ProductNotFoundError, ValidationError

# Sortable fields (snake_case names shared by both implementations)
SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "name",
    "price",
    "average_rating",
    "review_count",
)


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def _unknown_shipping_error(structure_id: str | None) -> ValidationError:
    return ValidationError(
        "Shipping structure does not exist",
        details={"field": "shippingStructure", "value": structure_id or ""},
    )


class ProductRepository(ABC):
    """Persistence contract for products.

    Implementations resolve the shipping structure summary on every
    read, reject references to unknown shipping structures, assign a
    SKU on insert when none is given, and bump
    ``version``/``updated_at`` on every save.
    """

    @abstractmethod
    async def get_by_id(self, product_id: str) -> ProductDTO | None:
        """Get a product by id, active or not."""

    @abstractmethod
    async def find_all(
        self,
        category: str | None = None,
        brand: str | None = None,
        search: str | None = None,
        active_only: bool = True,
        sort_by: str = "created_at",
        sort_desc: bool = True,
        limit: int | None = 10,
        offset: int = 0,
    ) -> tuple[list[ProductDTO], int]:
        """Find products with filtering, sorting and pagination.

        Returns:
            Tuple of (page items, total matching count).
        """

    @abstractmethod
    async def search(self, term: str, limit: int = 20) -> list[ProductDTO]:
        """Case-insensitive match on name, brand or description of active products."""

    @abstractmethod
    async def create(self, product: ProductDTO) -> ProductDTO:
        """Insert a new product and return the stored record."""

    @abstractmethod
    async def save(self, product: ProductDTO) -> ProductDTO:
        """Persist changes to an existing product and return the stored record."""


# ============================================================================
# SQLAlchemy Repository
# ============================================================================


class SqlProductRepository(ProductRepository):
    """Repository for Product database operations.

    Example usage:
        async with async_session_factory() as session:
            repo = SqlProductRepository(session)
            products, total = await repo.find_all(brand="acme", limit=20)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, product_id: str) -> ProductDTO | None:
        """Get product by ID.

        Args:
            product_id: Product UUID.

        Returns:
            Product if found (active or not), None otherwise.
        """
        row = await self._get_row(product_id)
        return self._to_dto(row) if row else None

    async def find_all(
        self,
        category: str | None = None,
        brand: str | None = None,
        search: str | None = None,
        active_only: bool = True,
        sort_by: str = "created_at",
        sort_desc: bool = True,
        limit: int | None = 10,
        offset: int = 0,
    ) -> tuple[list[ProductDTO], int]:
        """Find products with filtering, sorting, and pagination.

        Args:
            category: Exact category match.
            brand: Case-insensitive brand substring.
            search: Case-insensitive substring over name, brand and description.
            active_only: Exclude soft-deleted products.
            sort_by: Sort field (see SORTABLE_FIELDS).
            sort_desc: Sort descending.
            limit: Maximum results, None for all.
            offset: Result offset for pagination.

        Returns:
            Tuple of (page items, total matching count).
        """
        conditions = []

        if active_only:
            conditions.append(Product.is_active.is_(True))

        if category is not None:
            conditions.append(Product.category == category)

        if brand:
            conditions.append(Product.brand.ilike(_like_pattern(brand), escape="\\"))

        if search:
            conditions.append(self._text_match(search))

        query = select(Product).options(selectinload(Product.shipping_structure))
        count_query = select(func.count(Product.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        sort_column = self._get_sort_column(sort_by)
        query = query.order_by(sort_column.desc() if sort_desc else sort_column.asc())

        if limit is not None:
            query = query.limit(limit)
        query = query.offset(offset)

        result = await self.session.execute(query)
        rows: Sequence[Product] = result.scalars().all()

        total = (await self.session.execute(count_query)).scalar_one()
        return [self._to_dto(row) for row in rows], total

    async def search(self, term: str, limit: int = 20) -> list[ProductDTO]:
        """Search active products by name, brand or description.

        Args:
            term: Literal search text; LIKE wildcards are escaped.
            limit: Maximum results.

        Returns:
            Matching products.
        """
        query = (
            select(Product)
            .options(selectinload(Product.shipping_structure))
            .where(and_(Product.is_active.is_(True), self._text_match(term)))
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_dto(row) for row in result.scalars().all()]

    async def create(self, product: ProductDTO) -> ProductDTO:
        """Insert a new product.

        Args:
            product: Product values; id, version and timestamps are ignored.

        Returns:
            The stored product.

        Raises:
            DuplicateSkuError: If the SKU is already taken.
            ValidationError: If the shipping structure does not exist.
        """
        await self._check_shipping(product.shipping_structure_id)
        row = Product(id=str(uuid4()))
        self._apply(row, product)
        row.version = 0
        self.session.add(row)
        await self._flush(row.sku)
        return await self._reload(row.id)

    async def save(self, product: ProductDTO) -> ProductDTO:
        """Persist changes to an existing product.

        Bumps ``version`` and ``updated_at``.

        Args:
            product: Product with its stored id.

        Returns:
            The stored product.

        Raises:
            ProductNotFoundError: If the product does not exist.
            DuplicateSkuError: If the SKU is already taken.
            ValidationError: If the shipping structure does not exist.
        """
        row = await self._get_row(product.id)
        if row is None:
            raise ProductNotFoundError(product.id)
        await self._check_shipping(product.shipping_structure_id)
        self._apply(row, product)
        row.version = (row.version or 0) + 1
        row.updated_at = datetime.now(timezone.utc)
        await self._flush(row.sku)
        return await self._reload(row.id)

    async def _get_row(self, product_id: str) -> Product | None:
        if not _is_uuid(product_id):
            return None
        query = (
            select(Product)
            .where(Product.id == product_id)
            .options(selectinload(Product.shipping_structure))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _reload(self, product_id: str) -> ProductDTO:
        row = await self._get_row(product_id)
        if row is None:
            raise ProductNotFoundError(product_id)
        return self._to_dto(row)

    async def _check_shipping(self, structure_id: str | None) -> None:
        """Reject references to missing or malformed shipping structures."""
        if structure_id is None:
            return
        if not _is_uuid(structure_id) or (
            await self.session.get(ShippingStructure, structure_id) is None
        ):
            raise _unknown_shipping_error(structure_id)

    async def _flush(self, sku: str | None) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            message = str(e.orig).lower()
            if "sku" in message:
                raise DuplicateSkuError(sku or "") from e
            if "shipping_structure" in message:
                raise _unknown_shipping_error(None) from e
            raise

    @staticmethod
    def _text_match(term: str) -> Any:
        pattern = _like_pattern(term)
        return or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.brand.ilike(pattern, escape="\\"),
            Product.description.ilike(pattern, escape="\\"),
        )

    @staticmethod
    def _apply(row: Product, product: ProductDTO) -> None:
        """Copy mutable DTO fields onto an ORM row."""
        row.name = product.name
        row.description = product.description
        row.brand = product.brand
        row.category = product.category
        row.sku = product.sku or generate_sku(product.category)
        row.price = product.price
        row.stock = product.stock
        row.tags = list(product.tags)
        row.images = [img.to_dict() for img in product.images]
        row.size_chart = product.size_chart.to_dict() if product.size_chart else None
        row.shipping_structure_id = product.shipping_structure_id
        row.is_active = product.is_active
        row.average_rating = product.average_rating
        row.review_count = product.review_count

    @staticmethod
    def _to_dto(row: Product) -> ProductDTO:
        structure = row.shipping_structure
        return ProductDTO(
            id=row.id,
            name=row.name,
            description=row.description,
            brand=row.brand,
            category=row.category,
            sku=row.sku,
            price=row.price,
            stock=row.stock,
            tags=list(row.tags or []),
            images=[ProductImage.from_dict(img) for img in row.images or []],
            size_chart=SizeChart.from_dict(row.size_chart) if row.size_chart else None,
            shipping_structure_id=row.shipping_structure_id,
            shipping_structure=(
                ShippingStructureSummary(
                    id=structure.id,
                    name=structure.name,
                    rules=list(structure.rules or []),
                    is_default=structure.is_default,
                )
                if structure
                else None
            ),
            is_active=row.is_active,
            average_rating=row.average_rating,
            review_count=row.review_count,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _get_sort_column(sort_by: str) -> Any:
        """Get SQLAlchemy column for sorting.

        Args:
            sort_by: Sort field name.

        Returns:
            SQLAlchemy column.
        """
        columns = {
            "created_at": Product.created_at,
            "updated_at": Product.updated_at,
            "name": Product.name,
            "price": Product.price,
            "average_rating": Product.average_rating,
            "review_count": Product.review_count,
        }
        return columns.get(sort_by, Product.created_at)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ============================================================================
# In-Memory Repository
# ============================================================================


class InMemoryProductRepository(ProductRepository):
    """In-memory product repository.

    Used for tests and local runs without a database. Shipping
    structures are registered with ``add_shipping_structure``.
    """

    def __init__(self) -> None:
        self._products: dict[str, ProductDTO] = {}
        self._by_sku: dict[str, str] = {}
        self._shipping: dict[str, ShippingStructureSummary] = {}

    def add_shipping_structure(self, structure: ShippingStructureSummary) -> None:
        """Register a shipping structure for read-time resolution."""
        self._shipping[structure.id] = structure

    async def get_by_id(self, product_id: str) -> ProductDTO | None:
        product = self._products.get(product_id)
        return self._resolve(product) if product else None

    async def find_all(
        self,
        category: str | None = None,
        brand: str | None = None,
        search: str | None = None,
        active_only: bool = True,
        sort_by: str = "created_at",
        sort_desc: bool = True,
        limit: int | None = 10,
        offset: int = 0,
    ) -> tuple[list[ProductDTO], int]:
        products = list(self._products.values())

        # Apply filters
        if active_only:
            products = [p for p in products if p.is_active]
        if category is not None:
            products = [p for p in products if p.category == category]
        if brand:
            needle = brand.lower()
            products = [p for p in products if needle in (p.brand or "").lower()]
        if search:
            products = [p for p in products if self._matches(p, search)]

        if sort_by not in SORTABLE_FIELDS:
            sort_by = "created_at"
        # None values sort last in ascending order
        present = [p for p in products if getattr(p, sort_by) is not None]
        missing = [p for p in products if getattr(p, sort_by) is None]
        present.sort(key=lambda p: getattr(p, sort_by), reverse=sort_desc)
        products = missing + present if sort_desc else present + missing

        total = len(products)
        end = None if limit is None else offset + limit
        return [self._resolve(p) for p in products[offset:end]], total

    async def search(self, term: str, limit: int = 20) -> list[ProductDTO]:
        matches = [
            p for p in self._products.values() if p.is_active and self._matches(p, term)
        ]
        return [self._resolve(p) for p in matches[:limit]]

    async def create(self, product: ProductDTO) -> ProductDTO:
        self._check_shipping(product.shipping_structure_id)
        stored = copy.deepcopy(product)
        stored.id = str(uuid4())
        stored.sku = stored.sku or generate_sku(stored.category)
        self._check_sku(stored.sku, stored.id)
        now = datetime.now(timezone.utc)
        stored.created_at = now
        stored.updated_at = now
        stored.version = 0
        stored.shipping_structure = None
        self._products[stored.id] = stored
        self._by_sku[stored.sku] = stored.id
        return self._resolve(stored)

    async def save(self, product: ProductDTO) -> ProductDTO:
        existing = self._products.get(product.id)
        if existing is None:
            raise ProductNotFoundError(product.id)
        self._check_shipping(product.shipping_structure_id)

        stored = copy.deepcopy(product)
        stored.sku = stored.sku or generate_sku(stored.category)
        self._check_sku(stored.sku, stored.id)
        for name in SYSTEM_FIELDS - {"version", "updated_at"}:
            setattr(stored, name, getattr(existing, name))
        stored.version = existing.version + 1
        stored.updated_at = datetime.now(timezone.utc)
        stored.shipping_structure = None

        if existing.sku != stored.sku:
            self._by_sku.pop(existing.sku or "", None)
        self._products[stored.id] = stored
        self._by_sku[stored.sku] = stored.id
        return self._resolve(stored)

    def _check_shipping(self, structure_id: str | None) -> None:
        if structure_id is not None and structure_id not in self._shipping:
            raise _unknown_shipping_error(structure_id)

    def _check_sku(self, sku: str, product_id: str) -> None:
        owner = self._by_sku.get(sku)
        if owner is not None and owner != product_id:
            raise DuplicateSkuError(sku)

    def _resolve(self, product: ProductDTO) -> ProductDTO:
        resolved = copy.deepcopy(product)
        for name in DERIVED_FIELDS:
            setattr(resolved, name, None)
        if product.shipping_structure_id:
            structure = self._shipping.get(product.shipping_structure_id)
            resolved.shipping_structure = copy.deepcopy(structure)
        return resolved

    @staticmethod
    def _matches(product: ProductDTO, term: str) -> bool:
        needle = term.lower()
        return any(
            needle in (value or "").lower()
            for value in (product.name, product.brand, product.description)
        )


# Global repository instance
_memory_repo: InMemoryProductRepository | None = None


def get_memory_repository() -> InMemoryProductRepository:
    """Get in-memory repository singleton."""
    global _memory_repo
    if _memory_repo is None:
        _memory_repo = InMemoryProductRepository()
    return _memory_repo


def reset_memory_repository() -> None:
    """Reset in-memory repository (for testing)."""
    global _memory_repo
    _memory_repo = InMemoryProductRepository()
