from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Literal, Optional
from uuid import UUID

from bakerypos.core.config import settings
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.products import service
from bakerypos.modules.products.models import StockStatus
from bakerypos.modules.products.schemas import ProductCreate, ProductUpdate, ProductOut, ProductList, StockAdjustment

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.get("", response_model=ProductList)
async def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by name, SKU or barcode"),
    category_id: Optional[UUID] = Query(None, alias="categoryId"),
    stock_status: Optional[StockStatus] = Query(None, alias="status"),
    sort_by: Literal["name", "stock", "price", "created_at", "createdAt"] = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """List active products with filters and pagination."""
    return await service.list_products(
        db=db,
        store_id=auth_context.store_id,
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        status=stock_status,
        sort_by="created_at" if sort_by == "createdAt" else sort_by,
        sort_order=sort_order
    )


@product_router.get("/low-stock", response_model=List[ProductOut])
async def low_stock_products(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """Products at or below their alert threshold, lowest stock first."""
    return await service.get_low_stock(db, auth_context.store_id)


@product_router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await service.get_product(db, product_id, auth_context.store_id)


@product_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    """Create a product (admin/manager only)."""
    return await service.create_product(db, data, auth_context.store_id)


@product_router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await service.update_product(db, product_id, data, auth_context.store_id)


@product_router.post("/{product_id}/stock", response_model=ProductOut)
async def adjust_stock(
    product_id: UUID,
    data: StockAdjustment,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    """Receive goods or write off waste."""
    return await service.adjust_stock(db, product_id, auth_context.store_id, data.delta, data.reason)


@product_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    await service.delete_product(db, product_id, auth_context.store_id)
