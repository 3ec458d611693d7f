from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.categories.schemas import CategoryCreate, CategoryUpdate, CategoryOut
from bakerypos.modules.categories.service import CategoryService

categories_router = APIRouter(prefix="/categories", tags=["Categories"])


@categories_router.get("", response_model=List[CategoryOut])
async def list_categories(
    search: Optional[str] = Query(None, description="Filter by name"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await CategoryService(db).list_categories(auth_context.store_id, search)


@categories_router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await CategoryService(db).create_category(data, auth_context.store_id)


@categories_router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await CategoryService(db).get_category(category_id, auth_context.store_id)


@categories_router.put("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    return await CategoryService(db).update_category(category_id, data, auth_context.store_id)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    await CategoryService(db).delete_category(category_id, auth_context.store_id)
