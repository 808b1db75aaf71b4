"""Authentication routes."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from estimator.auth import create_access_token, get_current_session, require_login
from estimator.database import get_db
from estimator.errors import InvalidCredentials
from estimator.permissions import AuthSession
from estimator.schemas.user import CurrentUserResponse, Token, UserResponse
from estimator.services.users import UserDirectory

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Log in with username and password and receive a bearer token."""
    try:
        session = UserDirectory(db).authenticate(form_data.username, form_data.password)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=create_access_token(session), token_type="bearer")


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session)
):
    """End the current login session. Succeeds even without one."""
    UserDirectory(db).logout(session)
    return None


@router.get("/me", response_model=CurrentUserResponse)
async def me(session: AuthSession = Depends(require_login)):
    """Get the logged-in user and its permissions."""
    data = UserResponse.model_validate(session.user).model_dump()
    return CurrentUserResponse(
        **data,
        permissions=sorted(permission.value for permission in session.permissions),
    )
