"""Shared fixtures for catalog tests.

Tests run against the in-memory product store with a mocked media
service, so no database or network access is needed.
"""

import os

# Settings are read at import time; configure before importing the app.
os.environ["CATALOG_STORE"] = "memory"
os.environ["CUSTOMER_API_KEYS"] = '["customer-test-key"]'
os.environ["LOG_JSON"] = "false"

from typing import Any, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.catalog.repository import get_memory_repository, reset_memory_repository
from app.infrastructure.config import settings
from app.infrastructure.media_client import MediaClient, UploadedImage, get_media_client
from app.main import app

CUSTOMER_KEY = "customer-test-key"


@pytest.fixture(autouse=True)
def reset_repository() -> Generator[None, None, None]:
    """Reset product repository before each test."""
    reset_memory_repository()
    yield
    reset_memory_repository()


@pytest.fixture(autouse=True)
def media_client() -> Generator[AsyncMock, None, None]:
    """Replace the media service with a mock for every test."""
    media = AsyncMock(spec=MediaClient)

    def upload_product_images(images: list[Any]) -> list[UploadedImage]:
        return [
            UploadedImage(
                url=f"https://media.example.com/products/img{i}.jpg",
                public_id=f"products/img{i}",
            )
            for i, _ in enumerate(images)
        ]

    media.upload_product_images.side_effect = upload_product_images
    media.upload_size_chart.return_value = UploadedImage(
        url="https://media.example.com/size-charts/chart.png",
        public_id="size-charts/chart",
    )
    media.delete_images.return_value = {}
    media.delete_image.return_value = None

    app.dependency_overrides[get_media_client] = lambda: media
    yield media
    app.dependency_overrides.pop(get_media_client, None)


@pytest.fixture
def repository():
    """The in-memory repository used by the app."""
    return get_memory_repository()


@pytest.fixture
def client() -> TestClient:
    """Create test client without authentication."""
    return TestClient(app)


@pytest.fixture
def auth_client() -> TestClient:
    """Create test client with the admin API key."""
    return TestClient(
        app,
        headers={"Authorization": f"Bearer {settings.admin_api_key}"},
    )


@pytest.fixture
def customer_client() -> TestClient:
    """Create test client with a non-admin API key."""
    return TestClient(
        app,
        headers={"Authorization": f"Bearer {CUSTOMER_KEY}"},
    )


@pytest.fixture
def sample_product_data() -> dict[str, Any]:
    """Create sample product payload."""
    return {
        "name": "Oxford Shirt",
        "description": "Cotton oxford shirt with button-down collar",
        "brand": "Northwind",
        "category": "Shirts",
        "sku": "NW-OX-001",
        "price": 49.9,
        "stock": 25,
        "tags": ["cotton", "casual"],
        "images": [
            {"url": "https://media.example.com/products/a.jpg", "publicId": "products/a"},
            {"url": "https://media.example.com/products/b.jpg", "publicId": "products/b"},
        ],
        "sizeChart": {
            "imageUrl": "https://media.example.com/size-charts/oxford.png",
            "imagePublicId": "size-charts/oxford",
        },
        "averageRating": 4.5,
        "reviewCount": 12,
    }


@pytest.fixture
def created_product(auth_client: TestClient, sample_product_data: dict[str, Any]) -> dict:
    """Create a product through the API and return its JSON."""
    response = auth_client.post("/api/products", json=sample_product_data)
    assert response.status_code == 201
    return response.json()["data"]["product"]
