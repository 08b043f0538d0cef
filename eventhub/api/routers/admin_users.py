"""
Administrative endpoints for managing platform users.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from eventhub.db.session import get_db
from eventhub.core.security import (
    User,
    delete_user,
    require_admin,
    set_user_role,
)
from eventhub.api.schemas.auth import Role, UserResponse
from eventhub.api.schemas.users import (
    AdminDeleteUserResponse,
    AdminListUsersResponse,
    AdminSetRoleRequest,
    AdminSetRoleResponse,
)

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])


@router.get("", response_model=AdminListUsersResponse)
async def list_users(
    role: Optional[Role] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    List all users, newest first, optionally filtered by role. Admin access only.
    """
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    users = query.order_by(User.created_at.desc()).all()
    return AdminListUsersResponse(
        success=True,
        users=[UserResponse.model_validate(user) for user in users],
    )


@router.patch("/{user_id}/role", response_model=AdminSetRoleResponse)
async def set_user_role_admin(
    user_id: str,
    request: AdminSetRoleRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Change a user's role. Admin access only.
    """
    if user_id == current_user.id and request.role != "admin":
        raise HTTPException(
            status_code=400,
            detail="Cannot remove admin role from the currently authenticated admin user",
        )
    updated_user = set_user_role(db=db, user_id=user_id, role=request.role)
    return AdminSetRoleResponse(
        success=True,
        user=UserResponse.model_validate(updated_user),
    )


@router.delete("/{user_id}", response_model=AdminDeleteUserResponse)
async def delete_user_admin(
    user_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Delete a user. Admin access only.
    """
    if user_id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete the currently authenticated admin user",
        )

    deleted = delete_user(db=db, user_id=user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")

    return AdminDeleteUserResponse(success=True, deleted_user_id=user_id)
