from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from bakerypos.core.config import settings
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.suppliers.models import SupplierCategory, SupplierStatus
from bakerypos.modules.suppliers.schemas import SupplierCreate, SupplierUpdate, SupplierOut, SupplierList
from bakerypos.modules.suppliers.service import SupplierService

supplier_router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@supplier_router.get("", response_model=SupplierList)
async def list_suppliers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, description="Search by name, contact person or email"),
    category: Optional[SupplierCategory] = Query(None),
    status: Optional[SupplierStatus] = Query(None),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await SupplierService(db).list_suppliers(
        auth_context.store_id, page, limit, search, category, status
    )


@supplier_router.post("", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    data: SupplierCreate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await SupplierService(db).create_supplier(data, auth_context.store_id)


@supplier_router.get("/{supplier_id}", response_model=SupplierOut)
async def get_supplier(
    supplier_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await SupplierService(db).get_supplier(supplier_id, auth_context.store_id)


@supplier_router.put("/{supplier_id}", response_model=SupplierOut)
async def update_supplier(
    supplier_id: UUID,
    data: SupplierUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await SupplierService(db).update_supplier(supplier_id, data, auth_context.store_id)


@supplier_router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(
    supplier_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    await SupplierService(db).delete_supplier(supplier_id, auth_context.store_id)
