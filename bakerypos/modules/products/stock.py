from typing import NamedTuple, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.core.config import settings
from bakerypos.modules.products.models import Product, StockStatus


class StockLevel(NamedTuple):
    stock: int
    min_stock_alert: int
    stock_status: StockStatus


def derive_stock_status(stock: int, min_stock_alert: Optional[int] = None) -> StockStatus:
    """
    Classify a stock level.

    ``stock <= 0`` is out of stock, anything up to and including the alert
    threshold is low stock, the rest is in stock. A missing threshold falls
    back to ``DEFAULT_MIN_STOCK_ALERT``.
    """
    threshold = settings.DEFAULT_MIN_STOCK_ALERT if min_stock_alert is None else min_stock_alert
    if stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


async def apply_stock_delta(db: AsyncSession, product_id: UUID, store_id: UUID, delta: int) -> Optional[StockLevel]:
    """
    Atomically add ``delta`` to a product's stock and re-derive its status.

    The change is a single conditional UPDATE, so concurrent callers can never
    drive stock below zero. Returns ``None`` when the product does not belong
    to the store or the change would make stock negative; nothing is written
    in that case. Runs inside the caller's transaction and does not commit.
    """
    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.store_id == store_id,
            Product.stock + delta >= 0
        )
        .values(stock=Product.stock + delta)
        .returning(Product.stock, Product.min_stock_alert)
        .execution_options(synchronize_session=False)
    )
    row = result.first()
    if row is None:
        return None

    new_status = derive_stock_status(row.stock, row.min_stock_alert)
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_status=new_status)
        .execution_options(synchronize_session=False)
    )
    return StockLevel(row.stock, row.min_stock_alert, new_status)
