"""
Schemas for administrative user management endpoints.
"""
from typing import List

from pydantic import BaseModel

from eventhub.api.schemas.auth import Role, UserResponse


class AdminListUsersResponse(BaseModel):
    """Response with the current set of users."""

    success: bool
    users: List[UserResponse]


class AdminSetRoleRequest(BaseModel):
    """Payload for changing a user's role. Any role, including admin."""

    role: Role


class AdminSetRoleResponse(BaseModel):
    success: bool
    user: UserResponse


class AdminDeleteUserResponse(BaseModel):
    """Response returned when deleting a user."""

    success: bool
    deleted_user_id: str
