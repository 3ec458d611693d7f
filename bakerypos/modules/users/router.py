from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from bakerypos.common.schemas import MessageResponse
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.stores.service import StoreService
from bakerypos.modules.users.schemas import TeamMemberOut, CompleteProfileRequest
from bakerypos.modules.users.service import TeamService

user_router = APIRouter(prefix="/users", tags=["Users"])


@user_router.post("/complete-profile", response_model=TeamMemberOut)
async def complete_profile(
    data: CompleteProfileRequest,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)
):
    """Create a store (admin) or join one by invite code (everyone else)."""
    return await StoreService(db).complete_profile(
        user_id=auth_context.user_id,
        role=data.role,
        store_name=data.store_name,
        store_address=data.store_address,
        store_phone=data.store_phone,
        invite_code=data.invite_code
    )


@user_router.get("/team", response_model=List[TeamMemberOut])
async def list_team(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    return await TeamService(db).list_team(auth_context.store_id)


@user_router.put("/{user_id}/approve", response_model=TeamMemberOut)
async def approve_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    return await TeamService(db).approve(user_id, auth_context.store_id)


@user_router.put("/{user_id}/reject", response_model=TeamMemberOut)
async def reject_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    return await TeamService(db).reject(user_id, auth_context.store_id)


@user_router.delete("/{user_id}", response_model=MessageResponse)
async def remove_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    await TeamService(db).remove_from_store(user_id, auth_context.store_id, auth_context.user_id)
    return {"message": "User removed from store"}
