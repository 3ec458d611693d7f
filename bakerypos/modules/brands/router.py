from fastapi import APIRouter, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.brands.schemas import BrandCreate, BrandUpdate, BrandOut
from bakerypos.modules.brands.service import BrandService

brand_router = APIRouter(prefix="/brands", tags=["Brands"])


@brand_router.get("", response_model=List[BrandOut])
async def list_brands(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await BrandService(db).list_brands(auth_context.store_id)


@brand_router.post("", response_model=BrandOut, status_code=status.HTTP_201_CREATED)
async def create_brand(
    data: BrandCreate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await BrandService(db).create_brand(data, auth_context.store_id)


@brand_router.get("/{brand_id}", response_model=BrandOut)
async def get_brand(
    brand_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await BrandService(db).get_brand(brand_id, auth_context.store_id)


@brand_router.put("/{brand_id}", response_model=BrandOut)
async def update_brand(
    brand_id: UUID,
    data: BrandUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await BrandService(db).update_brand(brand_id, data, auth_context.store_id)


@brand_router.delete("/{brand_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_brand(
    brand_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    await BrandService(db).delete_brand(brand_id, auth_context.store_id)
