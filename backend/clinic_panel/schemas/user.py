"""
User Schemas
"""
from pydantic import BaseModel
from typing import List, Optional


class CurrentUser(BaseModel):
    """Authenticated caller, built from the backend-issued token"""
    id: str
    name: Optional[str] = None
    is_admin: bool = False
    permissions: List[str] = []
    token: str

    def can(self, permission: str) -> bool:
        """Admins pass every check"""
        return self.is_admin or permission in self.permissions


class MyPermissionsResponse(BaseModel):
    permissions: List[str]
