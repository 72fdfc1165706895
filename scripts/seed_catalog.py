#!/usr/bin/env python3
"""Seed product catalog script.

Creates the catalog tables, a default shipping structure and a set of
sample products through the regular catalog service.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --count 50 --clear
"""

import argparse
import asyncio
import random
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import delete, select

from app.catalog.models import Product, ShippingStructure
from app.catalog.repository import SqlProductRepository
from app.catalog.service import ProductService
from app.infrastructure.database import Base, async_session_factory, engine
from app.infrastructure.media_client import get_media_client

CATEGORIES = ["Shirts", "Trousers", "Dresses", "Shoes", "Accessories"]
BRANDS = ["Northwind", "Acme Apparel", "Bluebird", "Stride", "Meridian"]
ADJECTIVES = ["Classic", "Slim Fit", "Linen", "Everyday", "Premium", "Relaxed"]


async def create_tables() -> None:
    """Create database tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_default_shipping(session) -> str:
    """Return the default shipping structure id, creating it if needed."""
    result = await session.execute(
        select(ShippingStructure).where(ShippingStructure.is_default.is_(True))
    )
    structure = result.scalars().first()
    if structure is None:
        structure = ShippingStructure(
            name="Standard",
            rules=[
                {"minOrder": 0, "maxOrder": 100, "cost": 9.99},
                {"minOrder": 100, "maxOrder": None, "cost": 0},
            ],
            is_default=True,
        )
        session.add(structure)
        await session.flush()
    return structure.id


async def seed(count: int, clear: bool, seed_value: int) -> dict:
    """Seed sample products.

    Args:
        count: Number of products to create.
        clear: Whether to delete existing products first.
        seed_value: Random seed for deterministic data.

    Returns:
        Seeding result with counts.
    """
    rng = random.Random(seed_value)

    async with async_session_factory() as session:
        deleted = 0
        if clear:
            result = await session.execute(delete(Product))
            deleted = result.rowcount or 0

        shipping_id = await ensure_default_shipping(session)
        service = ProductService(SqlProductRepository(session), get_media_client())

        for _ in range(count):
            category = rng.choice(CATEGORIES)
            brand = rng.choice(BRANDS)
            name = f"{brand} {rng.choice(ADJECTIVES)} {category.rstrip('s')}"
            await service.create_product(
                {
                    "name": name,
                    "description": f"{name} from the {brand} {category.lower()} range.",
                    "brand": brand,
                    "category": category,
                    "price": Decimal(rng.randint(1500, 15000)) / 100,
                    "stock": rng.randint(0, 200),
                    "tags": [category.lower(), brand.lower()],
                    "shipping_structure_id": shipping_id,
                }
            )

        await session.commit()

    return {"deleted": deleted, "created": count, "shipping_structure_id": shipping_id}


def build_parser() -> argparse.ArgumentParser:
    """Command line options for the seeder."""
    parser = argparse.ArgumentParser(description="Seed the product catalog")
    parser.add_argument("--count", type=int, default=25, help="Products to create")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Physically delete existing products first (bypasses soft delete; dev only)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    return parser


async def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()

    print("=" * 60)
    print("Product Catalog Seeder")
    print("=" * 60)

    print("Creating database tables...")
    await create_tables()
    print("Tables ready.")
    print()

    result = await seed(count=args.count, clear=args.clear, seed_value=args.seed)

    print(f"  ✓ Deleted: {result['deleted']} existing products")
    print(f"  ✓ Created: {result['created']} products")
    print(f"  ✓ Shipping structure: {result['shipping_structure_id']}")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
