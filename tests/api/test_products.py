"""Tests for Product API endpoints."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.catalog.entities import ShippingStructureSummary
from app.domain.exceptions import MediaServiceError

MISSING_ID = "9b2f6c1e-0000-4000-8000-000000000000"


def create(auth_client: TestClient, **fields: Any) -> dict:
    """Create a product and return its JSON."""
    response = auth_client.post("/api/products", json=fields)
    assert response.status_code == 201, response.text
    return response.json()["data"]["product"]


class TestCreateProduct:
    """Tests for POST /api/products endpoint."""

    def test_create_product_success(self, auth_client, sample_product_data):
        """Test creating a product with a full payload."""
        response = auth_client.post("/api/products", json=sample_product_data)
        assert response.status_code == 201

        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Product created successfully"

        product = data["data"]["product"]
        assert product["id"]
        assert product["name"] == "Oxford Shirt"
        assert product["sku"] == "NW-OX-001"
        assert product["isActive"] is True
        assert product["price"] == 49.9
        assert product["images"][0]["publicId"] == "products/a"
        assert product["sizeChart"]["imagePublicId"] == "size-charts/oxford"
        assert product["version"] == 0
        assert product["createdAt"]
        assert product["updatedAt"]

    def test_create_generates_sku(self, auth_client):
        """SKU is generated when the payload has none."""
        product = create(auth_client, name="Linen Shirt", category="Shirts")
        assert product["sku"].startswith("SHI-")

    def test_create_requires_name(self, auth_client):
        """Missing name is a validation error."""
        response = auth_client.post("/api/products", json={"brand": "Acme"})
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "VALIDATION_ERROR"
        assert any(d["field"] == "name" for d in data["details"])

    def test_create_rejects_negative_price(self, auth_client):
        """Negative prices fail validation."""
        response = auth_client.post("/api/products", json={"name": "Shirt", "price": -1})
        assert response.status_code == 400

    def test_create_duplicate_sku(self, auth_client):
        """A second product with the same SKU is rejected."""
        create(auth_client, name="Shirt", sku="S1")
        response = auth_client.post("/api/products", json={"name": "Other", "sku": "S1"})
        assert response.status_code == 400
        assert response.json()["error"] == "DUPLICATE_SKU"

    def test_create_unknown_shipping_structure(self, auth_client):
        """Shipping structure references must resolve."""
        response = auth_client.post(
            "/api/products",
            json={"name": "Shirt", "shippingStructure": "not-a-uuid"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["details"][0]["field"] == "shippingStructure"


class TestGetProduct:
    """Tests for GET /api/products/{id} endpoint."""

    def test_get_product_success(self, client, created_product):
        """Test getting product details."""
        response = client.get(f"/api/products/{created_product['id']}")
        assert response.status_code == 200
        product = response.json()["data"]["product"]
        assert product["id"] == created_product["id"]
        assert product["name"] == "Oxford Shirt"

    def test_get_product_not_found(self, client):
        """Unknown ids are 404."""
        response = client.get(f"/api/products/{MISSING_ID}")
        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Product not found"
        assert data["error"] == "PRODUCT_NOT_FOUND"

    def test_get_product_malformed_id(self, client):
        """Malformed ids are treated as absent."""
        response = client.get("/api/products/not-an-id")
        assert response.status_code == 404

    def test_get_resolves_shipping_structure(self, client, auth_client, repository):
        """Shipping structure reference is resolved to a summary."""
        repository.add_shipping_structure(
            ShippingStructureSummary(
                id="ship-1",
                name="Standard",
                rules=[{"cost": 9.99}],
                is_default=True,
            )
        )
        product = create(auth_client, name="Shirt", shippingStructure="ship-1")

        response = client.get(f"/api/products/{product['id']}")
        shipping = response.json()["data"]["product"]["shippingStructure"]
        assert shipping["name"] == "Standard"
        assert shipping["isDefault"] is True
        assert shipping["rules"] == [{"cost": 9.99}]


class TestListProducts:
    """Tests for GET /api/products endpoint."""

    def test_list_empty(self, client):
        """Test listing when no products exist."""
        response = client.get("/api/products")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["count"] == 0
        assert data["total"] == 0
        assert data["totalPages"] == 0
        assert data["currentPage"] == 1
        assert data["data"]["products"] == []

    def test_list_pagination(self, client, auth_client):
        """Totals and page counts follow the page size."""
        for i in range(5):
            create(auth_client, name=f"Shirt {i}")

        response = client.get("/api/products?page=1&limit=2")
        data = response.json()
        assert data["count"] == 2
        assert data["total"] == 5
        assert data["totalPages"] == 3
        assert data["currentPage"] == 1

        response = client.get("/api/products?page=3&limit=2")
        data = response.json()
        assert data["count"] == 1
        assert data["currentPage"] == 3

    def test_list_default_page_size(self, client, auth_client):
        """Default page size is 10."""
        for i in range(12):
            create(auth_client, name=f"Shirt {i}")

        data = client.get("/api/products").json()
        assert data["count"] == 10
        assert data["totalPages"] == 2

    def test_list_excludes_inactive(self, client, auth_client):
        """Soft-deleted products are not listed."""
        active = create(auth_client, name="Active")
        hidden = create(auth_client, name="Hidden", isActive=False)

        data = client.get("/api/products").json()
        ids = [p["id"] for p in data["data"]["products"]]
        assert active["id"] in ids
        assert hidden["id"] not in ids
        assert data["total"] == 1

    def test_list_filters(self, client, auth_client):
        """Category is exact, brand is a case-insensitive substring."""
        create(auth_client, name="Oxford", category="Shirts", brand="Northwind")
        create(auth_client, name="Chino", category="Trousers", brand="Northwind Basics")
        create(auth_client, name="Derby", category="Shoes", brand="Stride")

        data = client.get("/api/products?category=Shirts").json()
        assert [p["name"] for p in data["data"]["products"]] == ["Oxford"]

        data = client.get("/api/products?brand=northwind").json()
        assert {p["name"] for p in data["data"]["products"]} == {"Oxford", "Chino"}

        data = client.get("/api/products?search=derb").json()
        assert [p["name"] for p in data["data"]["products"]] == ["Derby"]

    def test_list_sorting(self, client, auth_client):
        """sortBy accepts a field with optional leading minus."""
        create(auth_client, name="Mid", price=20)
        create(auth_client, name="Cheap", price=10)
        create(auth_client, name="Pricey", price=30)

        data = client.get("/api/products?sortBy=price").json()
        assert [p["name"] for p in data["data"]["products"]] == ["Cheap", "Mid", "Pricey"]

        data = client.get("/api/products?sortBy=-price").json()
        assert [p["name"] for p in data["data"]["products"]] == ["Pricey", "Mid", "Cheap"]

    def test_list_invalid_page(self, client):
        """Page numbers start at 1."""
        response = client.get("/api/products?page=0")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestSearchProducts:
    """Tests for GET /api/products/search endpoint."""

    def test_search_requires_query(self, client):
        """Missing or empty q is a bad request."""
        response = client.get("/api/products/search")
        assert response.status_code == 400
        assert response.json()["message"] == "Search query is required"

        response = client.get("/api/products/search?q=")
        assert response.status_code == 400

    def test_search_matches_name_brand_description(self, client, auth_client):
        """Search is case-insensitive over name, brand and description."""
        create(auth_client, name="Oxford Shirt")
        create(auth_client, name="Chino", brand="OXFORD Mills")
        create(auth_client, name="Derby", description="Pairs well with an oxford")
        create(auth_client, name="Sneaker")

        data = client.get("/api/products/search?q=oxford").json()
        assert data["count"] == 3
        assert {p["name"] for p in data["data"]["products"]} == {
            "Oxford Shirt",
            "Chino",
            "Derby",
        }

    def test_search_excludes_inactive(self, client, auth_client):
        """Inactive products never appear in search."""
        create(auth_client, name="Hidden Tee", isActive=False)
        data = client.get("/api/products/search?q=tee").json()
        assert data["count"] == 0

    def test_search_capped_at_20(self, client, auth_client):
        """Search returns at most 20 results."""
        for i in range(25):
            create(auth_client, name=f"Tee {i}")

        data = client.get("/api/products/search?q=tee").json()
        assert data["count"] == 20
        assert len(data["data"]["products"]) == 20
        assert "totalPages" not in data


class TestUpdateProduct:
    """Tests for PUT /api/products/{id} endpoint."""

    def test_update_fields(self, auth_client, created_product):
        """Supplied fields overwrite stored values."""
        response = auth_client.put(
            f"/api/products/{created_product['id']}",
            json={"name": "Oxford Shirt v2", "price": 59.5, "tags": ["new"]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Product updated successfully"

        product = data["data"]["product"]
        assert product["name"] == "Oxford Shirt v2"
        assert product["price"] == 59.5
        assert product["tags"] == ["new"]
        # Untouched fields keep their values
        assert product["brand"] == "Northwind"
        assert product["sku"] == "NW-OX-001"

    def test_update_ignores_immutable_fields(self, auth_client, created_product):
        """id, version and timestamps are silently dropped."""
        response = auth_client.put(
            f"/api/products/{created_product['id']}",
            json={
                "id": "forged-id",
                "_id": "forged-id",
                "version": 99,
                "__v": 99,
                "createdAt": "2000-01-01T00:00:00Z",
                "updatedAt": "2000-01-01T00:00:00Z",
                "brand": "Acme",
            },
        )
        assert response.status_code == 200

        product = response.json()["data"]["product"]
        assert product["id"] == created_product["id"]
        assert product["createdAt"] == created_product["createdAt"]
        assert product["version"] == created_product["version"] + 1
        assert product["updatedAt"] != "2000-01-01T00:00:00Z"
        assert product["brand"] == "Acme"

    def test_update_can_clear_size_chart(self, auth_client, created_product):
        """Explicit null removes an optional field."""
        response = auth_client.put(
            f"/api/products/{created_product['id']}",
            json={"sizeChart": None},
        )
        assert response.status_code == 200
        assert response.json()["data"]["product"].get("sizeChart") is None

    def test_update_rejects_empty_name(self, auth_client, created_product):
        """Name cannot be blanked."""
        response = auth_client.put(
            f"/api/products/{created_product['id']}",
            json={"name": None},
        )
        assert response.status_code == 400

    def test_update_unknown_shipping_structure(self, auth_client, created_product):
        """Updating to an unknown shipping structure is rejected."""
        response = auth_client.put(
            f"/api/products/{created_product['id']}",
            json={"shippingStructure": "9b2f6c1e-0000-4000-8000-000000000000"},
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "shippingStructure"

    def test_update_not_found(self, auth_client):
        """Unknown ids are 404."""
        response = auth_client.put(f"/api/products/{MISSING_ID}", json={"name": "X"})
        assert response.status_code == 404


class TestDeleteProduct:
    """Tests for DELETE /api/products/{id} endpoint."""

    def test_soft_delete_flow(self, client, auth_client):
        """Deleted product leaves listings but stays readable by id."""
        product = create(auth_client, name="Shirt", sku="S1", isActive=True)

        response = auth_client.delete(f"/api/products/{product['id']}")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Product deleted successfully"
        assert "data" not in data

        listed = client.get("/api/products").json()
        assert product["id"] not in [p["id"] for p in listed["data"]["products"]]

        fetched = client.get(f"/api/products/{product['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["data"]["product"]["isActive"] is False

    def test_delete_cleans_up_media(self, auth_client, created_product, media_client):
        """Product images and the size chart are removed from the media service."""
        auth_client.delete(f"/api/products/{created_product['id']}")

        media_client.delete_images.assert_awaited_once_with(["products/a", "products/b"])
        media_client.delete_image.assert_awaited_once_with("size-charts/oxford")

    def test_delete_succeeds_when_cleanup_fails(
        self, client, auth_client, created_product, media_client
    ):
        """Media failures during cleanup never block the soft delete."""
        media_client.delete_images.side_effect = MediaServiceError("bulk delete down")
        media_client.delete_image.side_effect = MediaServiceError("destroy down")

        response = auth_client.delete(f"/api/products/{created_product['id']}")
        assert response.status_code == 200

        fetched = client.get(f"/api/products/{created_product['id']}").json()
        assert fetched["data"]["product"]["isActive"] is False

    def test_delete_twice(self, client, auth_client, created_product, media_client):
        """A second delete succeeds and keeps the product inactive."""
        first = auth_client.delete(f"/api/products/{created_product['id']}")
        media_client.delete_images.side_effect = MediaServiceError("already removed")
        second = auth_client.delete(f"/api/products/{created_product['id']}")

        assert first.status_code == 200
        assert second.status_code == 200
        fetched = client.get(f"/api/products/{created_product['id']}").json()
        assert fetched["data"]["product"]["isActive"] is False

    def test_delete_not_found(self, auth_client, media_client):
        """Unknown ids are 404 and touch no media."""
        response = auth_client.delete(f"/api/products/{MISSING_ID}")
        assert response.status_code == 404
        media_client.delete_images.assert_not_awaited()


class TestDuplicateProduct:
    """Tests for POST /api/products/{id}/duplicate endpoint."""

    def test_duplicate_product(self, auth_client, created_product):
        """Copy gets a new identity, suffix and reset aggregates."""
        response = auth_client.post(f"/api/products/{created_product['id']}/duplicate")
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Product duplicated successfully"

        copy = data["data"]["product"]
        assert copy["id"] != created_product["id"]
        assert copy["name"] == "Oxford Shirt (Copy)"
        assert copy["sku"] and copy["sku"] != created_product["sku"]
        assert copy["averageRating"] == 0
        assert copy["reviewCount"] == 0
        assert copy["version"] == 0

        for field in (
            "description",
            "brand",
            "category",
            "price",
            "stock",
            "tags",
            "images",
            "sizeChart",
            "isActive",
        ):
            assert copy[field] == created_product[field], field

    def test_duplicate_inactive_stays_inactive(self, auth_client):
        """Duplicating a soft-deleted product yields an inactive copy."""
        product = create(auth_client, name="Retired")
        auth_client.delete(f"/api/products/{product['id']}")

        response = auth_client.post(f"/api/products/{product['id']}/duplicate")
        assert response.status_code == 201
        assert response.json()["data"]["product"]["isActive"] is False

    def test_duplicate_not_found(self, auth_client):
        """Unknown ids are 404."""
        response = auth_client.post(f"/api/products/{MISSING_ID}/duplicate")
        assert response.status_code == 404


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/products/{id}"),
        ("put", "/api/products/{id}"),
        ("delete", "/api/products/{id}"),
        ("post", "/api/products/{id}/duplicate"),
    ],
)
def test_missing_ids_are_not_found(auth_client, method, path):
    """Every id-based operation answers 404 for unknown ids."""
    kwargs = {"json": {"name": "X"}} if method == "put" else {}
    response = getattr(auth_client, method)(path.format(id=MISSING_ID), **kwargs)
    assert response.status_code == 404
    assert response.json()["error"] == "PRODUCT_NOT_FOUND"
