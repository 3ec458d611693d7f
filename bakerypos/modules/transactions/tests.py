"""
Tests for the checkout engine

Pricing, atomic persistence with stock decrements, transaction numbering,
history queries and status changes.
"""

import asyncio
import os
import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bakerypos.conftest import auth_headers, reload, utc
from bakerypos.core.exceptions import InsufficientStockError, PersistenceError, ProductNotFoundError, ValidationError
from bakerypos.database.database import Base
from bakerypos.modules.auth.models import User, UserRole
from bakerypos.modules.stores.models import Store
from bakerypos.modules.products.models import Product, StockStatus
from bakerypos.modules.transactions import numbering
from bakerypos.modules.transactions.models import PaymentType, Transaction, TransactionItem, TransactionStatus
from bakerypos.modules.transactions.numbering import generate_transaction_number, to_base36
from bakerypos.modules.transactions.schemas import CartItem, CheckoutCommand, CheckoutRequest
from bakerypos.modules.transactions.service import CheckoutService, _is_number_clash


def make_command(store_id, user_id, lines, payment_type=PaymentType.CASH, **extra):
    request = CheckoutRequest(
        items=[CartItem(product_id=product_id, quantity=qty) for product_id, qty in lines],
        payment_type=payment_type,
        **extra
    )
    return CheckoutCommand.from_request(store_id, user_id, request)


async def count_transactions(session_factory):
    async with session_factory() as session:
        transactions = (await session.execute(select(func.count(Transaction.id)))).scalar_one()
        items = (await session.execute(select(func.count(TransactionItem.id)))).scalar_one()
    return transactions, items


# ===== NUMBERING =====

class TestTransactionNumber:

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"

    def test_number_uses_microseconds(self):
        assert generate_transaction_number(now_ns=36 * 1000) == "TRX-10"
        assert generate_transaction_number(now_ns=1000, prefix="POS") == "POS-1"

    def test_numbers_are_uppercase(self):
        number = generate_transaction_number()
        assert number.startswith("TRX-")
        assert number == number.upper()

    @pytest.mark.parametrize("message,expected", [
        ('duplicate key value violates unique constraint "uq_transaction_number"', True),
        ("UNIQUE constraint failed: transactions.transaction_number", True),
        ('insert or update on table "transactions" violates foreign key constraint "transactions_user_id_fkey"', False),
        ("UNIQUE constraint failed: transaction_items.transaction_id, transaction_items.line_number", False),
    ])
    def test_only_number_collisions_are_retried(self, message, expected):
        error = IntegrityError("INSERT INTO transactions ...", {}, Exception(message))
        assert _is_number_clash(error) is expected


# ===== COMMAND =====

class TestCheckoutCommand:
    """Request validation before the engine runs"""

    def test_missing_store_is_rejected(self):
        with pytest.raises(ValidationError):
            make_command(None, uuid4(), [(uuid4(), 1)])

    def test_empty_cart_is_rejected(self):
        with pytest.raises(ValidationError):
            make_command(uuid4(), uuid4(), [])

    def test_duplicate_lines_are_merged(self):
        first, second = uuid4(), uuid4()
        command = make_command(uuid4(), uuid4(), [(first, 1), (second, 4), (first, 2)])
        assert command.items == ((first, 3), (second, 4))

    def test_discount_defaults_to_zero(self):
        command = make_command(uuid4(), uuid4(), [(uuid4(), 1)])
        assert command.discount == Decimal("0")


# ===== ENGINE =====

class TestCheckoutService:
    """create_transaction and its all-or-nothing guarantees"""

    async def test_checkout_scenario(self, session_factory, sample_store, admin_user, make_product):
        product = await make_product(price="10.00", stock=5, min_stock_alert=2)
        command = make_command(sample_store.id, admin_user.id, [(product.id, 3)])

        async with session_factory() as session:
            transaction = await CheckoutService(session).create_transaction(command)
            assert transaction.total == Decimal("30.00")
            assert transaction.status == TransactionStatus.COMPLETED
            assert transaction.transaction_number.startswith("TRX-")
            assert sum(item.subtotal for item in transaction.items) == transaction.subtotal

        async with session_factory() as session:
            stored = await reload(session, Product, product.id)
            assert stored.stock == 2
            assert stored.stock_status == StockStatus.LOW_STOCK

    async def test_items_snapshot_product_at_sale_time(self, session_factory, sample_store, admin_user, make_product):
        croissant = await make_product(name="Croissant", price="15000.00", stock=10)
        baguette = await make_product(name="Baguette", price="12000.00", stock=10)
        command = make_command(
            sample_store.id, admin_user.id, [(baguette.id, 1), (croissant.id, 2)],
            amount_received=Decimal("50000"), discount=Decimal("2000")
        )

        async with session_factory() as session:
            transaction = await CheckoutService(session).create_transaction(command)

        assert [item.product_name for item in transaction.items] == ["Baguette", "Croissant"]
        assert [item.line_number for item in transaction.items] == [1, 2]
        assert transaction.items[1].unit_price == Decimal("15000.00")
        assert transaction.subtotal == Decimal("42000.00")
        assert transaction.discount == Decimal("2000.00")
        assert transaction.total == Decimal("40000.00")
        assert transaction.change_due == Decimal("10000.00")

    async def test_change_due_is_zero_without_cash_received(self, session_factory, sample_store, admin_user, make_product):
        product = await make_product(stock=3)
        command = make_command(sample_store.id, admin_user.id, [(product.id, 1)], payment_type=PaymentType.CARD)
        async with session_factory() as session:
            transaction = await CheckoutService(session).create_transaction(command)
        assert transaction.amount_received is None
        assert transaction.change_due == Decimal("0.00")

    async def test_multi_line_failure_rolls_everything_back(self, session_factory, sample_store, admin_user, make_product):
        plenty = await make_product(name="Rye Bread", stock=5)
        scarce = await make_product(name="Cheesecake", stock=1)
        command = make_command(sample_store.id, admin_user.id, [(plenty.id, 2), (scarce.id, 3)])

        async with session_factory() as session:
            with pytest.raises(InsufficientStockError) as exc_info:
                await CheckoutService(session).create_transaction(command)
        assert exc_info.value.product_id == scarce.id
        assert exc_info.value.requested == 3

        assert await count_transactions(session_factory) == (0, 0)
        async with session_factory() as session:
            assert (await reload(session, Product, plenty.id)).stock == 5
            assert (await reload(session, Product, scarce.id)).stock == 1

    async def test_last_unit_sells_once(self, session_factory, sample_store, admin_user, make_product):
        product = await make_product(stock=1)
        command = make_command(sample_store.id, admin_user.id, [(product.id, 1)])

        async with session_factory() as session:
            await CheckoutService(session).create_transaction(command)
        async with session_factory() as session:
            with pytest.raises(InsufficientStockError):
                await CheckoutService(session).create_transaction(command)

        async with session_factory() as session:
            stored = await reload(session, Product, product.id)
            assert stored.stock == 0
            assert stored.stock_status == StockStatus.OUT_OF_STOCK
        assert (await count_transactions(session_factory))[0] == 1

    async def test_stale_quote_cannot_oversell(self, session_factory, sample_store, admin_user, make_product):
        """A cart priced while the unit was free must not sell it after another checkout took it."""
        product = await make_product(stock=1)
        command = make_command(sample_store.id, admin_user.id, [(product.id, 1)])

        async with session_factory() as first_till:
            first_service = CheckoutService(first_till)
            quote = await first_service.quote_cart(command.store_id, command.items)
            await first_till.rollback()

            async with session_factory() as second_till:
                await CheckoutService(second_till).create_transaction(command)

            with pytest.raises(InsufficientStockError) as exc_info:
                await first_service.create_transaction(command, quote=quote)
            assert exc_info.value.product_id == product.id

        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 0
        assert await count_transactions(session_factory) == (1, 1)

    async def test_inactive_product_cannot_be_sold(self, session_factory, sample_store, admin_user, make_product):
        retired = await make_product(is_active=False)
        command = make_command(sample_store.id, admin_user.id, [(retired.id, 1)])
        async with session_factory() as session:
            with pytest.raises(ProductNotFoundError) as exc_info:
                await CheckoutService(session).create_transaction(command)
        assert exc_info.value.product_id == retired.id

    async def test_other_store_product_cannot_be_sold(self, session_factory, sample_store, other_store, admin_user, make_product):
        foreign = await make_product(store=other_store)
        command = make_command(sample_store.id, admin_user.id, [(foreign.id, 1)])
        async with session_factory() as session:
            with pytest.raises(ProductNotFoundError):
                await CheckoutService(session).create_transaction(command)
        assert await count_transactions(session_factory) == (0, 0)

    async def test_number_clash_is_retried(self, session_factory, sample_store, admin_user, make_product, record_sale, monkeypatch):
        product = await make_product(stock=5)
        existing = await record_sale([(product, 1)], utc(2024, 5, 1))
        numbers = iter([existing.transaction_number, "TRX-FRESH1"])
        monkeypatch.setattr(numbering, "generate_transaction_number", lambda: next(numbers))

        command = make_command(sample_store.id, admin_user.id, [(product.id, 2)])
        async with session_factory() as session:
            transaction = await CheckoutService(session).create_transaction(command)

        assert transaction.transaction_number == "TRX-FRESH1"
        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 3

    async def test_second_clash_gives_up(self, session_factory, sample_store, admin_user, make_product, record_sale, monkeypatch):
        product = await make_product(stock=5)
        existing = await record_sale([(product, 1)], utc(2024, 5, 1))
        monkeypatch.setattr(numbering, "generate_transaction_number", lambda: existing.transaction_number)

        command = make_command(sample_store.id, admin_user.id, [(product.id, 1)])
        async with session_factory() as session:
            with pytest.raises(PersistenceError) as exc_info:
                await CheckoutService(session).create_transaction(command)
        assert exc_info.value.retryable is True
        async with session_factory() as session:
            assert (await reload(session, Product, product.id)).stock == 5


class TestStatusChanges:

    async def test_external_reference_update_is_idempotent(self, session_factory, make_product, record_sale):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1), status=TransactionStatus.PENDING)

        async with session_factory() as session:
            service = CheckoutService(session)
            first = await service.update_status_by_external_reference(str(sale.id), TransactionStatus.COMPLETED)
            second = await service.update_status_by_external_reference(str(sale.id), TransactionStatus.COMPLETED)
        assert first.status == TransactionStatus.COMPLETED
        assert second.status == TransactionStatus.COMPLETED

        async with session_factory() as session:
            assert (await reload(session, Transaction, sale.id)).status == TransactionStatus.COMPLETED

    async def test_unknown_or_malformed_reference_returns_none(self, session_factory):
        async with session_factory() as session:
            service = CheckoutService(session)
            assert await service.update_status_by_external_reference("not-a-uuid", TransactionStatus.COMPLETED) is None
            assert await service.update_status_by_external_reference(str(uuid4()), TransactionStatus.CANCELLED) is None


# ===== API =====

class TestTransactionEndpoints:

    async def test_checkout_endpoint(self, client, cashier_headers, make_product):
        product = await make_product(price="10.00", stock=5, min_stock_alert=2)
        response = await client.post("/transactions", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 3}],
            "paymentType": "cash",
            "amountReceived": "50.00",
            "customerName": "Ibu Sari"
        })
        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["total"]) == Decimal("30.00")
        assert Decimal(body["changeDue"]) == Decimal("20.00")
        assert body["status"] == "completed"
        assert len(body["items"]) == 1
        assert body["items"][0]["quantity"] == 3

        response = await client.get(f"/products/{product.id}", headers=cashier_headers)
        assert response.json()["stock"] == 2
        assert response.json()["stockStatus"] == "low_stock"

    async def test_error_messages_distinguish_failures(self, client, cashier_headers, make_product):
        product = await make_product(stock=1)
        missing = uuid4()

        response = await client.post("/transactions", headers=cashier_headers, json={
            "items": [{"productId": str(missing), "quantity": 1}], "paymentType": "cash"
        })
        assert response.status_code == 404
        assert str(missing) in response.json()["detail"]

        response = await client.post("/transactions", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 2}], "paymentType": "cash"
        })
        assert response.status_code == 409
        assert "Insufficient stock" in response.json()["detail"]

    async def test_empty_cart_is_400(self, client, cashier_headers):
        response = await client.post("/transactions", headers=cashier_headers, json={"items": [], "paymentType": "cash"})
        assert response.status_code == 400

    async def test_malformed_body_is_422(self, client, cashier_headers, make_product):
        product = await make_product()
        response = await client.post("/transactions", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 0}], "paymentType": "cash"
        })
        assert response.status_code == 422
        response = await client.post("/transactions", headers=cashier_headers, json={
            "items": [{"productId": str(product.id), "quantity": 1}]
        })
        assert response.status_code == 422

    async def test_list_filters_and_pagination(self, client, admin_headers, make_product, record_sale):
        product = await make_product(stock=100)
        await record_sale([(product, 1)], utc(2024, 5, 1, 9))
        await record_sale([(product, 2)], utc(2024, 5, 2, 9))
        await record_sale([(product, 3)], utc(2024, 5, 3, 9), status=TransactionStatus.CANCELLED)

        response = await client.get("/transactions", headers=admin_headers, params={"limit": 2})
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
        assert [Decimal(t["total"]) for t in body["data"]] == [Decimal("30.00"), Decimal("20.00")]

        response = await client.get("/transactions", headers=admin_headers, params={"status": "completed"})
        assert response.json()["pagination"]["total"] == 2

        response = await client.get(
            "/transactions", headers=admin_headers, params={"startDate": "2024-05-02", "endDate": "2024-05-02"}
        )
        assert [Decimal(t["total"]) for t in response.json()["data"]] == [Decimal("20.00")]

        response = await client.get(
            "/transactions", headers=admin_headers, params={"startDate": "2024-05-03", "endDate": "2024-05-01"}
        )
        assert response.status_code == 400

    async def test_csv_export(self, client, admin_headers, make_product, record_sale):
        product = await make_product()
        sale = await record_sale([(product, 2)], utc(2024, 5, 1))
        response = await client.get("/transactions", headers=admin_headers, params={"export": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("Transaction #,Date")
        assert sale.transaction_number in lines[1]

    async def test_detail_is_store_scoped(self, client, admin_headers, make_product, record_sale, other_store, make_user):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1))
        response = await client.get(f"/transactions/{sale.id}", headers=admin_headers)
        assert response.status_code == 200
        assert len(response.json()["items"]) == 1

        stranger = await make_user(other_store)
        response = await client.get(f"/transactions/{sale.id}", headers=auth_headers(stranger))
        assert response.status_code == 404

    async def test_status_override_is_lenient_and_role_gated(self, client, admin_headers, cashier_headers, make_product, record_sale):
        product = await make_product()
        sale = await record_sale([(product, 1)], utc(2024, 5, 1))

        response = await client.put(f"/transactions/{sale.id}/status", headers=cashier_headers, json={"status": "refunded"})
        assert response.status_code == 403

        response = await client.put(f"/transactions/{sale.id}/status", headers=admin_headers, json={"status": "pending"})
        assert response.status_code == 200
        assert response.json()["status"] == "pending"

        response = await client.put(f"/transactions/{sale.id}/status", headers=admin_headers, json={"status": "completed"})
        assert response.json()["status"] == "completed"

    async def test_recent_transactions(self, client, admin_headers, make_product, record_sale):
        product = await make_product(stock=50)
        for day in range(1, 5):
            await record_sale([(product, day)], utc(2024, 5, day))
        response = await client.get("/dashboard/recent-transactions", headers=admin_headers, params={"limit": 3})
        assert [Decimal(t["total"]) for t in response.json()] == [Decimal("40.00"), Decimal("30.00"), Decimal("20.00")]


# ===== POSTGRESQL =====

@pytest.mark.skipif(not os.environ.get("TEST_POSTGRES_URL"), reason="TEST_POSTGRES_URL is not set")
async def test_parallel_checkouts_on_postgres():
    """Two simultaneous checkouts for the last unit: exactly one wins."""
    engine = create_async_engine(os.environ["TEST_POSTGRES_URL"])
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with factory() as session:
            store = Store(name="Parallel Bakery", invite_code=uuid4().hex[:8].upper())
            session.add(store)
            await session.flush()
            user = User(email=f"{uuid4().hex[:8]}@bakery.test", name="Cashier", role=UserRole.CASHIER, store_id=store.id)
            product = Product(
                store_id=store.id, name="Last Croissant", selling_price=Decimal("15000"),
                stock=1, min_stock_alert=0, stock_status=StockStatus.IN_STOCK
            )
            session.add_all([user, product])
            await session.commit()

        command = make_command(store.id, user.id, [(product.id, 1)])

        async def attempt():
            async with factory() as session:
                return await CheckoutService(session).create_transaction(command)

        results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)
        assert sum(isinstance(r, Transaction) for r in results) == 1
        assert sum(isinstance(r, InsufficientStockError) for r in results) == 1

        async with factory() as session:
            assert (await reload(session, Product, product.id)).stock == 0
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
