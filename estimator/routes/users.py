"""User management routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from estimator.auth import require_login
from estimator.database import get_db
from estimator.errors import (
    IdentityConflict,
    PermissionDenied,
    SelfRemovalNotAllowed,
    UserNotFound,
)
from estimator.permissions import AuthSession, Permission, require
from estimator.schemas.user import PasswordChange, UserCreate, UserResponse, UserUpdate
from estimator.services.users import UserDirectory

router = APIRouter(prefix="/users", tags=["Users"])


def _forbidden(e: PermissionDenied) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get("/", response_model=List[UserResponse])
async def list_users(
    search: Optional[str] = Query(None, description="Search by username, email or role"),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """List all users (user management)."""
    try:
        return UserDirectory(db).list_users(session, search)
    except PermissionDenied as e:
        raise _forbidden(e)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Create a new user (user management)."""
    try:
        return UserDirectory(db).register(
            session,
            user_data.username,
            user_data.email,
            user_data.password,
            user_data.role,
        )
    except PermissionDenied as e:
        raise _forbidden(e)
    except IdentityConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Get a specific user."""
    try:
        require(session, Permission.USER_MANAGEMENT)
    except PermissionDenied as e:
        raise _forbidden(e)
    user = UserDirectory(db).get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Update a user's username, email, role or active flag."""
    try:
        return UserDirectory(db).update(
            session, user_id, **user_update.model_dump(exclude_unset=True)
        )
    except PermissionDenied as e:
        raise _forbidden(e)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except IdentityConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Delete a user and its credential."""
    try:
        UserDirectory(db).remove(session, user_id)
    except PermissionDenied as e:
        raise _forbidden(e)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SelfRemovalNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return None


@router.post("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    user_id: str,
    password_data: PasswordChange,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_login)
):
    """Set a new password for a user."""
    directory = UserDirectory(db)
    try:
        require(session, Permission.USER_MANAGEMENT)
        user = directory.get(user_id)
        if not user:
            raise UserNotFound(user_id)
        directory.change_password(session, user.username, password_data.new_password)
    except PermissionDenied as e:
        raise _forbidden(e)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return None
