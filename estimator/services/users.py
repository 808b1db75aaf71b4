"""User directory: accounts, login sessions and credentials."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from estimator.config import settings
from estimator.errors import (
    IdentityConflict,
    InvalidCredentials,
    SelfRemovalNotAllowed,
    UserNotFound,
)
from estimator.models.login_session import LoginSession
from estimator.models.user import User, UserRole
from estimator.permissions import ANONYMOUS, AuthSession, Permission, require
from estimator.services.passwords import PasswordCredentialStore

logger = logging.getLogger(__name__)


class UserDirectory:
    """Owns user records and login sessions.
    
    Password checks are delegated to PasswordCredentialStore. A user and its
    credential are always written in the same commit, so neither can be
    observed without the other.
    """
    
    def __init__(self, db: Session):
        self.db = db
        self.credentials = PasswordCredentialStore(db)
    
    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    
    def get(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()
    
    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()
    
    def list_users(self, session: AuthSession, search: Optional[str] = None) -> List[User]:
        """List users, optionally filtered by username, email or role."""
        require(session, Permission.USER_MANAGEMENT)
        users = self.db.query(User).order_by(User.username).all()
        if not search:
            return users
        term = search.lower()
        return [
            user for user in users
            if term in user.username.lower()
            or term in user.email.lower()
            or term in user.role.value.lower()
        ]
    
    def _identity_taken(self, username: str, email: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(User).filter(or_(User.username == username, User.email == email))
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None
    
    # ------------------------------------------------------------------
    # Registration and bootstrap
    # ------------------------------------------------------------------
    
    def _create(self, username: str, email: str, password: str, role: UserRole) -> User:
        if self._identity_taken(username, email):
            raise IdentityConflict()
        
        user = User(username=username, email=email, role=role, is_active=True)
        self.db.add(user)
        self.credentials.set_password(username, password)
        self.db.commit()
        self.db.refresh(user)
        return user
    
    def register(
        self,
        session: AuthSession,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.VIEWER,
    ) -> User:
        """Create a user and store its password hash."""
        require(session, Permission.USER_MANAGEMENT)
        user = self._create(username, email, password, role)
        logger.info("Registered user %s with role %s", user.username, user.role.value)
        return user
    
    def ensure_default_admin(self) -> Optional[User]:
        """Create the default administrator when the directory is empty."""
        if self.db.query(User).first() is not None:
            return None
        admin = self._create(
            settings.DEFAULT_ADMIN_USERNAME,
            settings.DEFAULT_ADMIN_EMAIL,
            settings.DEFAULT_ADMIN_PASSWORD,
            UserRole.ADMIN,
        )
        logger.warning(
            "User directory was empty; created default administrator '%s'. "
            "Change its password after first login.",
            admin.username,
        )
        return admin
    
    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    
    def authenticate(self, username: str, password: str) -> AuthSession:
        """Log a user in and open a login session."""
        user = self.get_by_username(username)
        if user is None or not user.is_active:
            # Same work as a bad password so callers cannot probe usernames
            self.credentials.verify(username, password)
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        if not self.credentials.verify(username, password):
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        
        self._prune_sessions(user)
        user.last_login_at = datetime.now(timezone.utc)
        login_session = LoginSession(user_id=user.id)
        self.db.add(login_session)
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s logged in", user.username)
        return AuthSession(user=user, session_id=login_session.id)
    
    def _prune_sessions(self, user: User) -> None:
        # Sessions older than a token lifetime can no longer be presented
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        (
            self.db.query(LoginSession)
            .filter(LoginSession.user_id == user.id, LoginSession.created_at < cutoff)
            .delete(synchronize_session="fetch")
        )
    
    def resolve(self, session_id: Optional[str]) -> AuthSession:
        """Rebuild an AuthSession from a stored login session.
        
        The user is reloaded every time, so updates to it are reflected
        immediately. Logged-out sessions and inactive users resolve to
        ANONYMOUS.
        """
        if not session_id:
            return ANONYMOUS
        login_session = self.db.query(LoginSession).filter(LoginSession.id == session_id).first()
        if login_session is None or login_session.user is None:
            return ANONYMOUS
        if not login_session.user.is_active:
            return ANONYMOUS
        return AuthSession(user=login_session.user, session_id=login_session.id)
    
    def logout(self, session: AuthSession) -> AuthSession:
        """End a login session. Safe to call with no session."""
        if session is not None and session.session_id:
            login_session = (
                self.db.query(LoginSession)
                .filter(LoginSession.id == session.session_id)
                .first()
            )
            if login_session:
                self.db.delete(login_session)
                self.db.commit()
        return ANONYMOUS
    
    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    
    def update(
        self,
        session: AuthSession,
        user_id: str,
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        """Replace the mutable fields of a user. The id never changes."""
        require(session, Permission.USER_MANAGEMENT)
        user = self.get(user_id)
        if user is None:
            raise UserNotFound(user_id)
        
        new_username = username if username is not None else user.username
        new_email = email if email is not None else user.email
        if self._identity_taken(new_username, new_email, exclude_id=user.id):
            raise IdentityConflict()
        
        if new_username != user.username:
            self.credentials.rename(user.username, new_username)
        user.username = new_username
        user.email = new_email
        if role is not None:
            user.role = role
        if is_active is not None:
            if user.is_active and not is_active:
                self.db.query(LoginSession).filter(LoginSession.user_id == user.id).delete()
            user.is_active = is_active
        
        self.db.commit()
        self.db.refresh(user)
        return user
    
    def remove(self, session: AuthSession, user_id: str) -> None:
        """Delete a user together with its credential and login sessions."""
        require(session, Permission.USER_MANAGEMENT)
        user = self.get(user_id)
        if user is None:
            raise UserNotFound(user_id)
        if session.user is not None and session.user.id == user.id:
            raise SelfRemovalNotAllowed()
        
        username = user.username
        self.credentials.remove(username)
        self.db.delete(user)
        self.db.commit()
        logger.info("Removed user %s", username)
    
    def change_password(self, session: AuthSession, username: str, new_password: str) -> None:
        """Replace a user's password hash.
        
        The old password is not required.
        """
        require(session, Permission.USER_MANAGEMENT)
        if self.get_by_username(username) is None:
            raise UserNotFound(username)
        self.credentials.set_password(username, new_password)
        self.db.commit()
        logger.info("Password changed for user %s", username)
