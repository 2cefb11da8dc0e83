"""
Common Dependencies for FastAPI Routes
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Callable

from clinic_panel.schemas.user import CurrentUser
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.store import DashboardStore, store_registry
from clinic_panel.services.visit_draft_service import DraftRegistry, draft_registry
from clinic_panel.utils.security import decode_access_token

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Dependency to get the current authenticated user
    """
    token = credentials.credentials
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    return CurrentUser(
        id=str(user_id),
        name=payload.get("name"),
        is_admin=bool(payload.get("is_admin", False)),
        permissions=list(payload.get("permissions") or []),
        token=token,
    )


def require_permission(*keys: str) -> Callable:
    """
    Dependency factory to require specific permission(s).
    Admins always bypass the check.

    Usage:
        current_user: CurrentUser = Depends(require_permission("resource:visits"))
    """
    async def permission_checker(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        for key in keys:
            if not current_user.can(key):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission required: {key}",
                )
        return current_user

    return permission_checker


async def get_backend_client(
    current_user: CurrentUser = Depends(get_current_user),
) -> BackendClient:
    """Backend client acting with the caller's token"""
    return BackendClient(current_user.token)


async def get_store(
    current_user: CurrentUser = Depends(get_current_user),
) -> DashboardStore:
    return store_registry.for_user(current_user.id)


async def get_draft_registry() -> DraftRegistry:
    return draft_registry
