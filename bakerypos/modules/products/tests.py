"""
Tests for the products module

Covers stock-status derivation, the atomic stock update used by checkout and
the store-scoped product endpoints.
"""

import pytest
from uuid import uuid4

from bakerypos.conftest import auth_headers, reload
from bakerypos.modules.auth.models import UserStatus
from bakerypos.modules.products.models import Product, StockStatus
from bakerypos.modules.products.stock import apply_stock_delta, derive_stock_status


# ===== STOCK STATUS =====

class TestDeriveStockStatus:
    """Pure classification of a stock level"""

    @pytest.mark.parametrize("stock,threshold,expected", [
        (0, 2, StockStatus.OUT_OF_STOCK),
        (-1, 2, StockStatus.OUT_OF_STOCK),
        (1, 2, StockStatus.LOW_STOCK),
        (2, 2, StockStatus.LOW_STOCK),
        (3, 2, StockStatus.IN_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (1, 0, StockStatus.IN_STOCK),
    ])
    def test_thresholds(self, stock, threshold, expected):
        assert derive_stock_status(stock, threshold) == expected

    def test_missing_threshold_uses_default(self):
        assert derive_stock_status(10, None) == StockStatus.LOW_STOCK
        assert derive_stock_status(11, None) == StockStatus.IN_STOCK


class TestApplyStockDelta:
    """Conditional stock UPDATE"""

    async def test_decrement_rederives_status(self, session_factory, make_product):
        product = await make_product(stock=5, min_stock_alert=2)
        async with session_factory() as session:
            level = await apply_stock_delta(session, product.id, product.store_id, -3)
            await session.commit()
        assert level.stock == 2
        assert level.stock_status == StockStatus.LOW_STOCK

        async with session_factory() as session:
            stored = await reload(session, Product, product.id)
            assert stored.stock == 2
            assert stored.stock_status == StockStatus.LOW_STOCK

    async def test_refuses_to_go_negative(self, session_factory, make_product):
        product = await make_product(stock=1)
        async with session_factory() as session:
            assert await apply_stock_delta(session, product.id, product.store_id, -2) is None
            await session.commit()
            stored = await reload(session, Product, product.id)
            assert stored.stock == 1

    async def test_other_store_is_untouched(self, session_factory, make_product, other_store):
        product = await make_product(stock=5)
        async with session_factory() as session:
            assert await apply_stock_delta(session, product.id, other_store.id, -1) is None


# ===== API =====

class TestProductEndpoints:
    """CRUD scoped to the caller's store"""

    async def test_create_derives_status(self, client, admin_headers):
        response = await client.post("/products", headers=admin_headers, json={
            "name": "Croissant",
            "sku": "CRO-01",
            "sellingPrice": "15000.00",
            "costPrice": "6000.00",
            "stock": 5,
            "minStockAlert": 2
        })
        assert response.status_code == 201
        body = response.json()
        assert body["stockStatus"] == "in_stock"
        assert body["minStockAlert"] == 2

    async def test_create_uses_default_threshold(self, client, admin_headers):
        response = await client.post("/products", headers=admin_headers, json={
            "name": "Baguette", "sellingPrice": "12000", "stock": 8
        })
        assert response.status_code == 201
        assert response.json()["minStockAlert"] == 10
        assert response.json()["stockStatus"] == "low_stock"

    async def test_duplicate_sku_conflicts(self, client, admin_headers):
        payload = {"name": "Donut", "sku": "DN-1", "sellingPrice": "5000"}
        assert (await client.post("/products", headers=admin_headers, json=payload)).status_code == 201
        response = await client.post("/products", headers=admin_headers, json=payload)
        assert response.status_code == 409

    async def test_cashier_cannot_create(self, client, cashier_headers):
        response = await client.post("/products", headers=cashier_headers, json={
            "name": "Bagel", "sellingPrice": "8000"
        })
        assert response.status_code == 403

    async def test_requires_authentication(self, client):
        assert (await client.get("/products")).status_code == 401

    async def test_update_stock_rederives_status(self, client, admin_headers, make_product):
        product = await make_product(stock=20, min_stock_alert=5)
        response = await client.put(f"/products/{product.id}", headers=admin_headers, json={"stock": 0})
        assert response.status_code == 200
        assert response.json()["stockStatus"] == "out_of_stock"

        response = await client.put(f"/products/{product.id}", headers=admin_headers, json={"minStockAlert": 0})
        assert response.json()["stockStatus"] == "out_of_stock"

    async def test_threshold_change_alone_rederives_status(self, client, admin_headers, make_product):
        product = await make_product(stock=6, min_stock_alert=2)
        response = await client.put(f"/products/{product.id}", headers=admin_headers, json={"minStockAlert": 6})
        assert response.json()["stockStatus"] == "low_stock"

    async def test_adjust_stock(self, client, admin_headers, make_product):
        product = await make_product(stock=3, min_stock_alert=2)
        response = await client.post(
            f"/products/{product.id}/stock", headers=admin_headers, json={"delta": 10, "reason": "Morning bake"}
        )
        assert response.status_code == 200
        assert response.json()["stock"] == 13
        assert response.json()["stockStatus"] == "in_stock"

    async def test_adjust_stock_below_zero_is_rejected(self, client, admin_headers, make_product):
        product = await make_product(stock=3)
        response = await client.post(f"/products/{product.id}/stock", headers=admin_headers, json={"delta": -4})
        assert response.status_code == 409

        response = await client.get(f"/products/{product.id}", headers=admin_headers)
        assert response.json()["stock"] == 3

    async def test_zero_delta_is_invalid(self, client, admin_headers, make_product):
        product = await make_product()
        response = await client.post(f"/products/{product.id}/stock", headers=admin_headers, json={"delta": 0})
        assert response.status_code == 422

    async def test_other_store_product_is_not_found(self, client, admin_headers, make_product, other_store):
        foreign = await make_product(store=other_store)
        assert (await client.get(f"/products/{foreign.id}", headers=admin_headers)).status_code == 404
        assert (await client.get(f"/products/{uuid4()}", headers=admin_headers)).status_code == 404

    async def test_list_filters_and_soft_delete(self, client, admin_headers, make_product, sample_category):
        await make_product(name="Rye Bread", stock=50, category=sample_category)
        low = await make_product(name="Cinnamon Roll", stock=1, min_stock_alert=5)
        gone = await make_product(name="Old Muffin", stock=9)

        response = await client.delete(f"/products/{gone.id}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get("/products", headers=admin_headers)
        body = response.json()
        assert body["pagination"]["total"] == 2
        assert {p["name"] for p in body["data"]} == {"Rye Bread", "Cinnamon Roll"}

        response = await client.get("/products", headers=admin_headers, params={"status": "low_stock"})
        assert [p["id"] for p in response.json()["data"]] == [str(low.id)]

        response = await client.get("/products", headers=admin_headers, params={"search": "rye"})
        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["categoryName"] == "Bread"

        response = await client.get("/products/low-stock", headers=admin_headers)
        assert [p["name"] for p in response.json()] == ["Cinnamon Roll"]

    async def test_unknown_category_is_rejected(self, client, admin_headers):
        response = await client.post("/products", headers=admin_headers, json={
            "name": "Pretzel", "sellingPrice": "9000", "categoryId": str(uuid4())
        })
        assert response.status_code == 404

    async def test_pending_member_is_refused(self, client, make_user, sample_store):
        pending = await make_user(sample_store, status=UserStatus.PENDING)
        response = await client.get("/products", headers=auth_headers(pending))
        assert response.status_code == 403
