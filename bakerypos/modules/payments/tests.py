"""
Tests for digital payments

The Midtrans API is replaced by ``FakeMidtrans`` (see conftest) through an
``httpx.MockTransport``; nothing leaves the process.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select

from bakerypos.conftest import auth_headers, reload, utc
from bakerypos.core.exceptions import UpstreamError, ValidationError
from bakerypos.modules.payments.gateway import GatewayCustomer, GatewayItem, MidtransGateway, map_gateway_status
from bakerypos.modules.products.models import Product
from bakerypos.modules.transactions.models import Transaction, TransactionStatus


# ===== STATUS MAPPING =====

class TestGatewayStatusMapping:

    @pytest.mark.parametrize("transaction_status,fraud_status,expected", [
        ("capture", "accept", TransactionStatus.COMPLETED),
        ("capture", "challenge", TransactionStatus.PENDING),
        ("settlement", None, TransactionStatus.COMPLETED),
        ("cancel", None, TransactionStatus.CANCELLED),
        ("deny", None, TransactionStatus.CANCELLED),
        ("expire", None, TransactionStatus.CANCELLED),
        ("refund", None, TransactionStatus.REFUNDED),
        ("partial_refund", None, TransactionStatus.REFUNDED),
        ("pending", None, TransactionStatus.PENDING),
        (None, None, TransactionStatus.PENDING),
    ])
    def test_mapping(self, transaction_status, fraud_status, expected):
        assert map_gateway_status(transaction_status, fraud_status) == expected


# ===== SNAP PAYLOAD =====

class TestSnapPayload:

    def test_whole_units_and_discount_line(self):
        payload = MidtransGateway.build_snap_payload(
            "order-1",
            [
                GatewayItem(id="p1", name="Croissant", price=Decimal("15000.00"), quantity=2),
                GatewayItem(id="p2", name="Baguette", price=Decimal("12000.40"), quantity=1),
            ],
            discount=Decimal("2000.00")
        )
        assert payload["transaction_details"] == {"order_id": "order-1", "gross_amount": 40000}
        assert payload["item_details"][1]["price"] == 12000
        assert payload["item_details"][-1] == {"id": "DISCOUNT", "name": "Discount", "price": -2000, "quantity": 1}
        assert sum(line["price"] * line["quantity"] for line in payload["item_details"]) == 40000

    def test_long_names_are_truncated(self):
        payload = MidtransGateway.build_snap_payload(
            "order-2", [GatewayItem(id="p1", name="X" * 80, price=Decimal("1000"), quantity=1)],
            customer=GatewayCustomer(first_name="Budi", phone="0811111111")
        )
        assert len(payload["item_details"][0]["name"]) == 50
        assert payload["customer_details"]["first_name"] == "Budi"
        assert payload["customer_details"]["phone"] == "0811111111"

    def test_non_positive_total_is_rejected(self):
        with pytest.raises(ValidationError):
            MidtransGateway.build_snap_payload(
                "order-3", [GatewayItem(id="p1", name="Cookie", price=Decimal("5000"), quantity=1)],
                discount=Decimal("5000")
            )


class TestGatewayClient:

    async def test_snap_token_uses_basic_auth(self, gateway, fake_midtrans):
        result = await gateway.create_snap_token(
            "order-9", [GatewayItem(id="p1", name="Bagel", price=Decimal("8000"), quantity=1)]
        )
        assert result["token"] == "snap-order-9"
        request = fake_midtrans.requests[0]
        assert request.url.host == "app.sandbox.midtrans.com"
        assert request.headers["authorization"].startswith("Basic ")

    async def test_gateway_failure_is_upstream_error(self, gateway, fake_midtrans):
        fake_midtrans.fail_snap = True
        with pytest.raises(UpstreamError):
            await gateway.create_snap_token(
                "order-10", [GatewayItem(id="p1", name="Bagel", price=Decimal("8000"), quantity=1)]
            )

    async def test_unknown_order_status_is_upstream_error(self, gateway):
        with pytest.raises(UpstreamError):
            await gateway.get_status("missing-order")


# ===== API =====

async def _count_transactions(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(Transaction.id)))).scalar_one()


class TestDigitalCheckout:

    async def test_pending_transaction_keyed_by_order_id(self, client, cashier_headers, make_product, fake_midtrans, session_factory):
        product = await make_product(name="Croissant", price="15000.00", stock=5)
        response = await client.post("/payments/checkout", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 2}],
            "paymentType": "transfer",
            "customerName": "Rina"
        })
        assert response.status_code == 201
        body = response.json()
        transaction_id = body["transaction"]["id"]
        assert body["token"] == f"snap-{transaction_id}"
        assert body["transaction"]["status"] == "pending"

        payload = fake_midtrans.snap_payloads()[0]
        assert payload["transaction_details"] == {"order_id": transaction_id, "gross_amount": 30000}

        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 3

    async def test_gateway_failure_persists_nothing(self, client, cashier_headers, make_product, fake_midtrans, session_factory):
        product = await make_product(stock=5)
        fake_midtrans.fail_snap = True
        response = await client.post("/payments/checkout", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 1}], "paymentType": "card"
        })
        assert response.status_code == 502
        assert await _count_transactions(session_factory) == 0
        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 5

    async def test_charge_equals_recorded_total(self, client, cashier_headers, make_product, fake_midtrans):
        product = await make_product(name="Bolu Pandan", price="55000.00", stock=5)
        response = await client.post("/payments/checkout", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 3}],
            "paymentType": "card",
            "discount": "5000"
        })
        assert response.status_code == 201
        gross_amount = fake_midtrans.snap_payloads()[0]["transaction_details"]["gross_amount"]
        assert Decimal(gross_amount) == Decimal(response.json()["transaction"]["total"]) == Decimal("160000")

    @pytest.mark.parametrize("price,quantity,discount", [
        ("10.50", 3, None),
        ("10.50", 2, None),
        ("15000.00", 1, "0.50"),
    ])
    async def test_fractional_amounts_are_refused(
        self, client, cashier_headers, make_product, fake_midtrans, session_factory, price, quantity, discount
    ):
        product = await make_product(price=price, stock=5)
        body = {"items": [{"productId": str(product.id), "quantity": quantity}], "paymentType": "transfer"}
        if discount:
            body["discount"] = discount
        response = await client.post("/payments/checkout", headers=cashier_headers, json=body)

        assert response.status_code == 400
        assert fake_midtrans.requests == []
        assert await _count_transactions(session_factory) == 0
        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 5

    async def test_cash_is_rejected(self, client, cashier_headers, make_product, fake_midtrans):
        product = await make_product()
        response = await client.post("/payments/checkout", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 1}], "paymentType": "cash"
        })
        assert response.status_code == 400
        assert fake_midtrans.requests == []

    async def test_config_exposes_client_key(self, client):
        response = await client.get("/payments/config")
        assert response.json() == {"clientKey": "SB-Mid-client-test", "isProduction": False}


class TestNotification:

    async def test_settlement_completes_transaction(self, client, make_product, record_sale, fake_midtrans, session_factory):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1), status=TransactionStatus.PENDING)
        fake_midtrans.set_status(sale.id, "settlement")

        for _ in range(2):
            response = await client.post("/payments/notification", json={
                "order_id": str(sale.id), "transaction_status": "settlement"
            })
            assert response.status_code == 200
            assert response.json() == {"message": "Notification processed"}

        async with session_factory() as session:
            assert (await reload(session, Transaction, sale.id)).status == TransactionStatus.COMPLETED

    async def test_posted_status_is_not_trusted(self, client, make_product, record_sale, fake_midtrans, session_factory):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1), status=TransactionStatus.PENDING)
        fake_midtrans.set_status(sale.id, "expire")

        await client.post("/payments/notification", json={"order_id": str(sale.id), "transaction_status": "settlement"})

        async with session_factory() as session:
            assert (await reload(session, Transaction, sale.id)).status == TransactionStatus.CANCELLED

    async def test_unknown_order_is_acknowledged(self, client, fake_midtrans):
        order_id = str(uuid4())
        fake_midtrans.set_status(order_id, "settlement")
        response = await client.post("/payments/notification", json={"order_id": order_id})
        assert response.status_code == 200
        assert response.json() == {"message": "Notification received"}

    @pytest.mark.parametrize("body", [
        {},
        {"order_id": "does-not-exist-at-gateway"},
        ["not", "an", "object"],
    ])
    async def test_failures_still_return_200(self, client, body):
        response = await client.post("/payments/notification", json=body)
        assert response.status_code == 200
        assert response.json() == {"message": "Notification received"}

    async def test_invalid_json_returns_200(self, client):
        response = await client.post(
            "/payments/notification", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200


class TestPaymentStatus:

    async def test_status_is_store_scoped(self, client, admin_headers, make_product, record_sale, fake_midtrans, other_store, make_user):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1), status=TransactionStatus.PENDING)
        fake_midtrans.set_status(sale.id, "capture", "accept")

        response = await client.get(f"/payments/{sale.id}/status", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["transactionStatus"] == "capture"

        stranger = await make_user(other_store)
        response = await client.get(f"/payments/{sale.id}/status", headers=auth_headers(stranger))
        assert response.status_code == 404

        response = await client.get("/payments/not-a-uuid/status", headers=admin_headers)
        assert response.status_code == 404
