from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.stores.schemas import StoreOut, StoreUpdate, InviteCodeOut
from bakerypos.modules.stores.service import StoreService

store_router = APIRouter(prefix="/stores", tags=["Stores"])


@store_router.get("/me", response_model=StoreOut)
async def get_my_store(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """Profile of the caller's store."""
    return await StoreService(db).get_store(auth_context.store_id)


@store_router.put("/me", response_model=StoreOut)
async def update_my_store(
    data: StoreUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    return await StoreService(db).update_store(auth_context.store_id, data)


@store_router.post("/me/invite-code", response_model=InviteCodeOut)
async def regenerate_invite_code(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    """Issue a new invite code; the previous one stops working."""
    store = await StoreService(db).regenerate_invite_code(auth_context.store_id)
    return {"invite_code": store.invite_code}
