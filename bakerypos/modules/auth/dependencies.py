"""
Authentication dependencies for FastAPI.

Session tokens are issued by the external identity provider; this module only
verifies them and turns the referenced user row into an ``AuthContext``.
"""
from typing import List, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.core.config import settings
from bakerypos.core.exceptions import AuthenticationError, AuthorizationError
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.models import User, UserRole, UserStatus
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.auth.utils import decode_session_token

# Bearer is optional: browsers send the session cookie instead
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    async def get_auth_context(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: AsyncSession = Depends(get_async_db)
    ) -> AuthContext:
        """
        Resolve the caller from the Bearer token or the session cookie.
        Does not require a store (used by profile completion).
        """
        token = credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)
        if not token:
            raise AuthenticationError()

        user_id = decode_session_token(token)

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise AuthenticationError("Could not validate credentials")

        return AuthContext(
            user_id=user.id,
            email=user.email,
            name=user.name,
            store_id=user.store_id,
            role=user.role,
            access_level=user.access_level,
            status=user.status
        )

    @staticmethod
    def require_store():
        """Caller must be an approved member of a store."""
        async def store_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if not auth_context.store_id:
                raise AuthorizationError("Store ID is required. Complete your profile first")
            if auth_context.status != UserStatus.ACTIVE:
                raise AuthorizationError("Your account is waiting for approval")
            return auth_context
        return store_checker

    @staticmethod
    def require_role(allowed_roles: List[UserRole]):
        """
        Caller must belong to a store and hold one of ``allowed_roles``.
        """
        async def role_checker(auth_context: AuthContext = Depends(AuthDependencies.require_store())):
            if auth_context.role not in allowed_roles:
                raise AuthorizationError(
                    f"Requires one of these roles: {', '.join(r.value for r in allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_admin():
        return AuthDependencies.require_role([UserRole.ADMIN])

    @staticmethod
    def require_admin_or_manager():
        return AuthDependencies.require_role([UserRole.ADMIN, UserRole.MANAGER])


get_auth_context = AuthDependencies.get_auth_context
require_store = AuthDependencies.require_store
require_role = AuthDependencies.require_role
require_admin = AuthDependencies.require_admin
require_admin_or_manager = AuthDependencies.require_admin_or_manager
