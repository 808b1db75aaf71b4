"""Password credential store."""
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from estimator.models.credential import Credential

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a plaintext password."""
    return pwd_context.hash(password)


class PasswordCredentialStore:
    """Stores one password hash per username.
    
    The store never commits; callers commit so that credential changes land
    in the same transaction as the user record they belong to.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def _get(self, username: str) -> Optional[Credential]:
        return self.db.query(Credential).filter(Credential.username == username).first()
    
    def exists(self, username: str) -> bool:
        return self._get(username) is not None
    
    def set_password(self, username: str, password: str) -> None:
        """Store (or replace) the hash for username."""
        credential = self._get(username)
        if credential:
            credential.password_hash = get_password_hash(password)
        else:
            self.db.add(Credential(username=username, password_hash=get_password_hash(password)))
    
    def verify(self, username: str, password: str) -> bool:
        """Check password against the stored hash for username."""
        credential = self._get(username)
        if credential is None:
            # Burn a hash anyway so unknown usernames cost the same as wrong passwords
            pwd_context.dummy_verify()
            return False
        return pwd_context.verify(password, credential.password_hash)
    
    def rename(self, old_username: str, new_username: str) -> None:
        """Re-key a credential after a username change."""
        credential = self._get(old_username)
        if credential:
            credential.username = new_username
    
    def remove(self, username: str) -> None:
        credential = self._get(username)
        if credential:
            self.db.delete(credential)
