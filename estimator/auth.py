"""Authentication utilities: JWT tokens and FastAPI session dependencies."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from estimator.config import settings
from estimator.database import get_db
from estimator.permissions import ANONYMOUS, AuthSession, Permission, has_permission
from estimator.services.users import UserDirectory

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def create_access_token(session: AuthSession, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for an authenticated session."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": session.user.id,
        "sid": session.session_id,
        "role": session.user.role.value,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_id(token: str) -> Optional[str]:
    """Return the login session id carried by a token, or None if invalid."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sid")


def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> AuthSession:
    """Resolve the bearer token to a session; anonymous if there is none."""
    if not token:
        return ANONYMOUS
    return UserDirectory(db).resolve(decode_session_id(token))


def require_login(session: AuthSession = Depends(get_current_session)) -> AuthSession:
    """Reject requests that are not authenticated."""
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_permission(permission: Permission):
    """Dependency factory gating a route on one permission."""
    def checker(session: AuthSession = Depends(require_login)) -> AuthSession:
        if not has_permission(session, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not permitted: {permission.value}",
            )
        return session
    return checker
