"""
Permissions API
"""
from fastapi import APIRouter, Depends

from clinic_panel.config.permissions import ALL_PERMISSIONS
from clinic_panel.dependencies import get_current_user
from clinic_panel.schemas.user import CurrentUser, MyPermissionsResponse

router = APIRouter()


@router.get("/me", response_model=MyPermissionsResponse)
async def get_my_permissions(
    current_user: CurrentUser = Depends(get_current_user),
):
    """Return the flat list of granted permission keys for the current user.
    Admins always get ALL keys."""
    if current_user.is_admin:
        return MyPermissionsResponse(permissions=list(ALL_PERMISSIONS.keys()))

    granted = [key for key in current_user.permissions if key in ALL_PERMISSIONS]
    return MyPermissionsResponse(permissions=granted)
