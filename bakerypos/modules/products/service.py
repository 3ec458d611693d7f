from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from bakerypos.common.pagination import clamp_limit, count_rows, paginated
from bakerypos.core.config import settings
from bakerypos.core.exceptions import ConflictError, InsufficientStockError, NotFoundError, PersistenceError
from bakerypos.modules.brands.models import Brand
from bakerypos.modules.categories.models import Category
from bakerypos.modules.products.models import Product, StockStatus
from bakerypos.modules.products.schemas import ProductCreate, ProductUpdate
from bakerypos.modules.products.stock import apply_stock_delta, derive_stock_status
from bakerypos.modules.suppliers.models import Supplier

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": Product.name,
    "stock": Product.stock,
    "price": Product.selling_price,
    "created_at": Product.created_at,
}


async def _ensure_references(
    db: AsyncSession,
    store_id: UUID,
    category_id: Optional[UUID] = None,
    brand_id: Optional[UUID] = None,
    supplier_id: Optional[UUID] = None
) -> None:
    """Referenced category/brand/supplier must live in the same store."""
    for model, ref_id, label in (
        (Category, category_id, "Category"),
        (Brand, brand_id, "Brand"),
        (Supplier, supplier_id, "Supplier"),
    ):
        if ref_id is None:
            continue
        found = await db.execute(select(model.id).where(model.id == ref_id, model.store_id == store_id))
        if found.first() is None:
            raise NotFoundError(f"{label} not found")


async def _ensure_unique_sku(db: AsyncSession, store_id: UUID, sku: Optional[str], exclude_id: Optional[UUID] = None) -> None:
    if not sku:
        return
    query = select(Product.id).where(Product.store_id == store_id, Product.sku == sku)
    if exclude_id:
        query = query.where(Product.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError(f"A product with SKU '{sku}' already exists")


async def list_products(
    db: AsyncSession,
    store_id: UUID,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category_id: Optional[UUID] = None,
    status: Optional[StockStatus] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc"
) -> Dict[str, Any]:
    """Active products of the store with filters, sorting and pagination."""
    limit = clamp_limit(limit)
    query = select(Product).where(Product.store_id == store_id, Product.is_active.is_(True))

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.barcode.ilike(pattern)
        ))
    if category_id:
        query = query.where(Product.category_id == category_id)
    if status:
        query = query.where(Product.stock_status == status)

    total = await count_rows(db, query)

    column = SORT_COLUMNS.get(sort_by, Product.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        query.options(selectinload(Product.category))
        .order_by(ordering, Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return paginated(list(result.scalars().all()), page, limit, total)


async def get_product(db: AsyncSession, product_id: UUID, store_id: UUID) -> Product:
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.category))
        .where(Product.id == product_id, Product.store_id == store_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


async def create_product(db: AsyncSession, data: ProductCreate, store_id: UUID) -> Product:
    try:
        await _ensure_references(db, store_id, data.category_id, data.brand_id, data.supplier_id)
        await _ensure_unique_sku(db, store_id, data.sku)

        values = data.model_dump()
        if values["min_stock_alert"] is None:
            values["min_stock_alert"] = settings.DEFAULT_MIN_STOCK_ALERT

        product = Product(
            **values,
            store_id=store_id,
            stock_status=derive_stock_status(values["stock"], values["min_stock_alert"])
        )
        db.add(product)
        await db.commit()
        logger.info(f"Product {product.id} created in store {store_id}")
        return await get_product(db, product.id, store_id)

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error creating product: {e}")
        raise PersistenceError("Internal server error")


async def update_product(db: AsyncSession, product_id: UUID, data: ProductUpdate, store_id: UUID) -> Product:
    """
    Partial update. Whenever stock or the alert threshold is touched the status
    is re-derived, using the stored value for whichever one was not sent.
    """
    try:
        product = await get_product(db, product_id, store_id)
        update_dict = data.model_dump(exclude_unset=True)

        # required columns cannot be cleared
        for field in ("name", "selling_price", "unit", "stock", "wholesale_enabled"):
            if field in update_dict and update_dict[field] is None:
                update_dict.pop(field)
        if "min_stock_alert" in update_dict and update_dict["min_stock_alert"] is None:
            update_dict["min_stock_alert"] = settings.DEFAULT_MIN_STOCK_ALERT

        await _ensure_references(
            db, store_id,
            update_dict.get("category_id"),
            update_dict.get("brand_id"),
            update_dict.get("supplier_id")
        )
        if update_dict.get("sku") and update_dict["sku"] != product.sku:
            await _ensure_unique_sku(db, store_id, update_dict["sku"], exclude_id=product_id)

        for field, value in update_dict.items():
            setattr(product, field, value)

        if "stock" in update_dict or "min_stock_alert" in update_dict:
            product.stock_status = derive_stock_status(product.stock, product.min_stock_alert)

        await db.commit()
        return await get_product(db, product_id, store_id)

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error updating product {product_id}: {e}")
        raise PersistenceError("Internal server error")


async def delete_product(db: AsyncSession, product_id: UUID, store_id: UUID) -> None:
    """Soft delete: the row stays so historical transaction items keep their reference."""
    product = await get_product(db, product_id, store_id)
    product.is_active = False
    await db.commit()
    logger.info(f"Product {product_id} deactivated in store {store_id}")


async def get_low_stock(db: AsyncSession, store_id: UUID) -> List[Product]:
    result = await db.execute(
        select(Product)
        .options(selectinload(Product.category))
        .where(
            Product.store_id == store_id,
            Product.is_active.is_(True),
            Product.stock_status == StockStatus.LOW_STOCK
        )
        .order_by(Product.stock.asc(), Product.name)
    )
    return list(result.scalars().all())


async def adjust_stock(db: AsyncSession, product_id: UUID, store_id: UUID, delta: int, reason: Optional[str] = None) -> Product:
    """Manual stock correction, applied atomically; never drops below zero."""
    product = await get_product(db, product_id, store_id)
    if not product.is_active:
        raise NotFoundError("Product not found")
    product_name = product.name

    level = await apply_stock_delta(db, product_id, store_id, delta)
    if level is None:
        await db.rollback()
        raise InsufficientStockError(product_id, -delta, product_name)

    await db.commit()
    logger.info(
        f"Stock of product {product_id} adjusted by {delta} to {level.stock}"
        + (f" ({reason})" if reason else "")
    )
    return await get_product(db, product_id, store_id)
