"""
Tests for product categories
"""

from bakerypos.conftest import reload
from bakerypos.modules.categories.models import Category
from bakerypos.modules.products.models import Product


class TestCategoryEndpoints:

    async def test_create_and_list(self, client, admin_headers, cashier_headers):
        response = await client.post("/categories", headers=admin_headers, json={"name": "Pastries", "color": "#f4a261"})
        assert response.status_code == 201
        assert response.json()["color"] == "#f4a261"

        response = await client.get("/categories", headers=cashier_headers)
        assert [c["name"] for c in response.json()] == ["Pastries"]

    async def test_names_are_unique_ignoring_case(self, client, admin_headers, sample_category):
        response = await client.post("/categories", headers=admin_headers, json={"name": "BREAD"})
        assert response.status_code == 409

    async def test_same_name_in_another_store_is_fine(self, client, admin_headers, db_session, other_store):
        db_session.add(Category(store_id=other_store.id, name="Cookies"))
        await db_session.commit()
        response = await client.post("/categories", headers=admin_headers, json={"name": "Cookies"})
        assert response.status_code == 201

    async def test_cashier_cannot_create(self, client, cashier_headers):
        response = await client.post("/categories", headers=cashier_headers, json={"name": "Cakes"})
        assert response.status_code == 403

    async def test_rename(self, client, admin_headers, sample_category):
        response = await client.put(f"/categories/{sample_category.id}", headers=admin_headers, json={"name": "Breads"})
        assert response.status_code == 200
        assert response.json()["name"] == "Breads"

    async def test_delete_refused_while_products_use_it(self, client, admin_headers, sample_category, make_product):
        await make_product(category=sample_category)
        response = await client.delete(f"/categories/{sample_category.id}", headers=admin_headers)
        assert response.status_code == 409

    async def test_delete_detaches_retired_products(self, client, admin_headers, sample_category, make_product, session_factory):
        retired = await make_product(category=sample_category, is_active=False)
        response = await client.delete(f"/categories/{sample_category.id}", headers=admin_headers)
        assert response.status_code == 204

        async with session_factory() as session:
            assert (await reload(session, Product, retired.id)).category_id is None
