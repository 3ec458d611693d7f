"""
Shared fixtures.

Tests run against an in-memory SQLite database (aiosqlite) created fresh for
every test. The API is exercised in-process through ``httpx.AsyncClient`` and
the payment gateway is answered by an ``httpx.MockTransport``.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4
import json

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bakerypos.database.database import Base, get_async_db
from bakerypos.main import app
from bakerypos.modules.auth.models import AccessLevel, User, UserRole, UserStatus
from bakerypos.modules.auth.utils import create_session_token
from bakerypos.modules.categories.models import Category
from bakerypos.modules.payments.gateway import MidtransGateway
from bakerypos.modules.products.models import Product
from bakerypos.modules.products.stock import derive_stock_status
from bakerypos.modules.stores.models import Store
from bakerypos.modules.transactions.models import PaymentType, Transaction, TransactionItem, TransactionStatus


class FakeMidtrans:
    """
    Stand-in for the Midtrans HTTP API behind ``httpx.MockTransport``.

    ``statuses`` maps order ids to the status payload the Core API returns;
    ``fail_snap`` makes token requests answer 500.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.statuses: Dict[str, Dict[str, Any]] = {}
        self.fail_snap = False

    def set_status(self, order_id, transaction_status: str, fraud_status: Optional[str] = None) -> None:
        self.statuses[str(order_id)] = {
            "order_id": str(order_id),
            "transaction_status": transaction_status,
            "fraud_status": fraud_status,
            "payment_type": "bank_transfer",
            "gross_amount": "30000.00",
            "transaction_time": "2024-05-01 10:00:00",
        }

    def snap_payloads(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/transactions")]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/transactions"):
            if self.fail_snap:
                return httpx.Response(500, json={"error_messages": ["internal error"]})
            order_id = json.loads(request.content)["transaction_details"]["order_id"]
            return httpx.Response(201, json={
                "token": f"snap-{order_id}",
                "redirect_url": f"https://app.sandbox.midtrans.com/snap/v2/vtweb/snap-{order_id}",
            })
        if request.method == "GET" and path.endswith("/status"):
            order_id = path.rstrip("/").split("/")[-2]
            if order_id not in self.statuses:
                return httpx.Response(404, json={"status_code": "404", "status_message": "Transaction doesn't exist."})
            return httpx.Response(200, json=self.statuses[order_id])
        return httpx.Response(404)


# ===== DATABASE =====

@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ===== GATEWAY & CLIENT =====

@pytest.fixture
def fake_midtrans():
    return FakeMidtrans()


@pytest.fixture
async def gateway(fake_midtrans):
    midtrans = MidtransGateway(
        server_key="SB-Mid-server-test",
        client_key="SB-Mid-client-test",
        is_production=False,
        snap_url="https://app.sandbox.midtrans.com/snap/v1",
        api_url="https://api.sandbox.midtrans.com/v2",
        transport=httpx.MockTransport(fake_midtrans)
    )
    yield midtrans
    await midtrans.aclose()


@pytest.fixture
async def client(session_factory, gateway):
    async def override_get_async_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.state.payment_gateway = gateway
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.payment_gateway = None


# ===== STORES & USERS =====

@pytest.fixture
async def sample_store(db_session):
    store = Store(name="Roti Bakar Pagi", currency="IDR", timezone="UTC", invite_code="BAKE1234")
    db_session.add(store)
    await db_session.commit()
    return store


@pytest.fixture
async def other_store(db_session):
    store = Store(name="Toko Kue Senja", currency="IDR", timezone="UTC", invite_code="SENJA999")
    db_session.add(store)
    await db_session.commit()
    return store


async def _make_user(db_session, store: Optional[Store], role: UserRole, status: UserStatus = UserStatus.ACTIVE) -> User:
    user = User(
        email=f"{role.value}-{uuid4().hex[:8]}@bakery.test",
        name=f"Test {role.value.title()}",
        role=role,
        access_level=AccessLevel.ADMIN if role == UserRole.ADMIN else AccessLevel.POS_ONLY,
        status=status,
        store_id=store.id if store else None
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def admin_user(db_session, sample_store):
    return await _make_user(db_session, sample_store, UserRole.ADMIN)


@pytest.fixture
async def cashier_user(db_session, sample_store):
    return await _make_user(db_session, sample_store, UserRole.CASHIER)


@pytest.fixture
async def make_user(db_session):
    async def factory(store: Optional[Store], role: UserRole = UserRole.CASHIER, status: UserStatus = UserStatus.ACTIVE):
        return await _make_user(db_session, store, role, status)
    return factory


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def cashier_headers(cashier_user):
    return auth_headers(cashier_user)


# ===== CATALOG & SALES =====

@pytest.fixture
async def sample_category(db_session, sample_store):
    category = Category(store_id=sample_store.id, name="Bread", color="#c68b59")
    db_session.add(category)
    await db_session.commit()
    return category


@pytest.fixture
async def make_product(db_session, sample_store):
    async def factory(
        name: str = "Sourdough Loaf",
        price: str = "10.00",
        stock: int = 5,
        min_stock_alert: int = 2,
        cost_price: Optional[str] = None,
        store: Optional[Store] = None,
        category: Optional[Category] = None,
        is_active: bool = True
    ) -> Product:
        product = Product(
            store_id=(store or sample_store).id,
            name=name,
            sku=f"SKU-{uuid4().hex[:8].upper()}",
            selling_price=Decimal(price),
            cost_price=Decimal(cost_price) if cost_price is not None else None,
            stock=stock,
            min_stock_alert=min_stock_alert,
            stock_status=derive_stock_status(stock, min_stock_alert),
            category_id=category.id if category else None,
            is_active=is_active
        )
        db_session.add(product)
        await db_session.commit()
        return product
    return factory


@pytest.fixture
async def record_sale(db_session, sample_store, admin_user):
    """
    Insert a historical transaction directly, bypassing checkout, so reports
    can be tested against fixed timestamps.
    """
    async def factory(
        lines,
        created_at: datetime,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        store: Optional[Store] = None
    ) -> Transaction:
        store = store or sample_store
        subtotal = sum((Decimal(p.selling_price) * qty for p, qty in lines), Decimal("0"))
        transaction = Transaction(
            store_id=store.id,
            user_id=admin_user.id,
            transaction_number=f"TRX-{uuid4().hex[:10].upper()}",
            subtotal=subtotal,
            tax=Decimal("0"),
            discount=Decimal("0"),
            total=subtotal,
            payment_type=PaymentType.CASH,
            change_due=Decimal("0"),
            status=status,
            created_at=created_at,
            updated_at=created_at
        )
        transaction.items = [
            TransactionItem(
                line_number=position,
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                unit_price=Decimal(product.selling_price),
                quantity=qty,
                subtotal=Decimal(product.selling_price) * qty,
                created_at=created_at
            )
            for position, (product, qty) in enumerate(lines, start=1)
        ]
        db_session.add(transaction)
        await db_session.commit()
        return transaction
    return factory


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


async def reload(db_session: AsyncSession, model, object_id: UUID):
    """Fresh copy of a row, ignoring whatever the session has cached."""
    result = await db_session.execute(
        select(model).where(model.id == object_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
