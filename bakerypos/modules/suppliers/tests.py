"""
Tests for suppliers and brands
"""

from uuid import uuid4


class TestSupplierEndpoints:

    async def test_create_and_filter(self, client, admin_headers):
        for name, category in (("Tepung Jaya", "ingredients"), ("Kardus Prima", "packaging"), ("Gula Manis", "ingredients")):
            response = await client.post("/suppliers", headers=admin_headers, json={
                "name": name, "category": category, "contactPerson": "Pak Budi"
            })
            assert response.status_code == 201

        response = await client.get("/suppliers", headers=admin_headers, params={"category": "ingredients", "limit": 1})
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}

        response = await client.get("/suppliers", headers=admin_headers, params={"search": "kardus"})
        assert [s["name"] for s in response.json()["data"]] == ["Kardus Prima"]

    async def test_deactivate_and_filter_by_status(self, client, admin_headers):
        created = (await client.post("/suppliers", headers=admin_headers, json={"name": "Mentega Segar"})).json()
        response = await client.put(f"/suppliers/{created['id']}", headers=admin_headers, json={"status": "inactive"})
        assert response.json()["status"] == "inactive"

        response = await client.get("/suppliers", headers=admin_headers, params={"status": "active"})
        assert response.json()["pagination"]["total"] == 0

    async def test_supplier_of_active_products_cannot_be_deleted(self, client, admin_headers):
        supplier_id = (await client.post("/suppliers", headers=admin_headers, json={"name": "Ragi Instan"})).json()["id"]
        product = await client.post("/products", headers=admin_headers, json={
            "name": "Donat", "sellingPrice": "6000", "supplierId": supplier_id
        })
        assert product.status_code == 201
        response = await client.delete(f"/suppliers/{supplier_id}", headers=admin_headers)
        assert response.status_code == 409

    async def test_unknown_supplier(self, client, admin_headers):
        response = await client.get(f"/suppliers/{uuid4()}", headers=admin_headers)
        assert response.status_code == 404


class TestBrandEndpoints:

    async def test_crud(self, client, admin_headers):
        response = await client.post("/brands", headers=admin_headers, json={"name": "House Bakery"})
        assert response.status_code == 201
        brand_id = response.json()["id"]

        response = await client.put(f"/brands/{brand_id}", headers=admin_headers, json={"description": "Own label"})
        assert response.json()["description"] == "Own label"

        response = await client.delete(f"/brands/{brand_id}", headers=admin_headers)
        assert response.status_code == 204
        assert (await client.get("/brands", headers=admin_headers)).json() == []

    async def test_brand_in_use_cannot_be_deleted(self, client, admin_headers):
        brand_id = (await client.post("/brands", headers=admin_headers, json={"name": "Roti Kita"})).json()["id"]
        product = await client.post("/products", headers=admin_headers, json={
            "name": "Roti Tawar", "sellingPrice": "14000", "brandId": brand_id
        })
        assert product.status_code == 201
        response = await client.delete(f"/brands/{brand_id}", headers=admin_headers)
        assert response.status_code == 409
