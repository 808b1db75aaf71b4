"""Unit tests for the user directory."""
from datetime import datetime, timedelta, timezone

import pytest

from estimator.errors import (
    IdentityConflict,
    InvalidCredentials,
    PermissionDenied,
    SelfRemovalNotAllowed,
    UserNotFound,
)
from estimator.models.credential import Credential
from estimator.models.login_session import LoginSession
from estimator.models.user import User, UserRole
from estimator.permissions import ANONYMOUS, Permission, has_permission
from estimator.services.users import UserDirectory


def test_bootstrap_creates_single_admin(db_session):
    directory = UserDirectory(db_session)
    admin = directory.ensure_default_admin()
    
    assert admin is not None
    assert admin.username == "admin"
    assert admin.email == "admin@zestotech.com"
    assert admin.role == UserRole.ADMIN
    assert admin.is_active
    assert directory.ensure_default_admin() is None
    assert db_session.query(User).count() == 1


def test_register_stores_user_and_credential(directory, admin_session, db_session):
    user = directory.register(admin_session, "estimator1", "est@example.com", "secret", UserRole.ESTIMATOR)
    
    assert user.id
    assert user.is_active
    assert user.created_at is not None
    assert user.last_login_at is None
    assert directory.credentials.exists("estimator1")


def test_register_rejects_duplicate_username_or_email(directory, admin_session):
    directory.register(admin_session, "bob", "bob@example.com", "pw", UserRole.VIEWER)
    
    with pytest.raises(IdentityConflict):
        directory.register(admin_session, "bob", "other@example.com", "pw", UserRole.VIEWER)
    with pytest.raises(IdentityConflict):
        directory.register(admin_session, "robert", "bob@example.com", "pw", UserRole.VIEWER)


def test_username_compare_is_case_sensitive(directory, admin_session):
    directory.register(admin_session, "bob", "bob@example.com", "pw", UserRole.VIEWER)
    user = directory.register(admin_session, "Bob", "bob2@example.com", "pw", UserRole.VIEWER)
    assert user.username == "Bob"


def test_register_requires_user_management(directory, login_as, db_session):
    manager = login_as(UserRole.MANAGER)
    count = db_session.query(User).count()
    
    with pytest.raises(PermissionDenied):
        directory.register(manager, "eve", "eve@example.com", "pw", UserRole.ADMIN)
    assert db_session.query(User).count() == count
    assert not directory.credentials.exists("eve")


def test_authenticate_updates_last_login(directory):
    session = directory.authenticate("admin", "admin123")
    
    assert session.is_authenticated
    assert session.session_id
    assert session.user.last_login_at is not None
    assert has_permission(session, Permission.USER_MANAGEMENT)


def test_wrong_password_and_unknown_user_look_the_same(directory):
    with pytest.raises(InvalidCredentials) as wrong_password:
        directory.authenticate("admin", "nope")
    with pytest.raises(InvalidCredentials) as unknown_user:
        directory.authenticate("ghost", "admin123")
    assert str(wrong_password.value) == str(unknown_user.value)


def test_inactive_user_cannot_log_in(directory, admin_session, login_as):
    viewer = login_as(UserRole.VIEWER)
    directory.update(admin_session, viewer.user.id, is_active=False)
    
    with pytest.raises(InvalidCredentials):
        directory.authenticate("viewer", "password")
    assert directory.resolve(viewer.session_id) == ANONYMOUS


def test_deactivation_ends_sessions(directory, admin_session, login_as):
    viewer = login_as(UserRole.VIEWER)
    directory.update(admin_session, viewer.user.id, is_active=False)
    directory.update(admin_session, viewer.user.id, is_active=True)
    
    assert directory.resolve(viewer.session_id) == ANONYMOUS
    assert directory.authenticate("viewer", "password").is_authenticated


def test_login_prunes_expired_sessions(directory, db_session):
    admin = directory.get_by_username("admin")
    stale = LoginSession(user_id=admin.id, created_at=datetime.now(timezone.utc) - timedelta(days=2))
    db_session.add(stale)
    db_session.commit()
    stale_id = stale.id
    current = directory.authenticate("admin", "admin123")
    
    directory.authenticate("admin", "admin123")
    
    assert directory.resolve(stale_id) == ANONYMOUS
    assert directory.resolve(current.session_id).is_authenticated
    assert db_session.query(LoginSession).count() == 2


def test_logout_is_idempotent(directory, db_session):
    session = directory.authenticate("admin", "admin123")
    
    assert directory.logout(session) == ANONYMOUS
    assert directory.logout(session) == ANONYMOUS
    assert directory.logout(ANONYMOUS) == ANONYMOUS
    assert directory.resolve(session.session_id) == ANONYMOUS
    assert db_session.query(LoginSession).count() == 0


def test_update_refreshes_session_user(directory, admin_session, login_as):
    viewer = login_as(UserRole.VIEWER)
    directory.update(admin_session, viewer.user.id, role=UserRole.MANAGER, email="new@example.com")
    
    refreshed = directory.resolve(viewer.session_id)
    assert refreshed.user.role == UserRole.MANAGER
    assert refreshed.user.email == "new@example.com"
    assert has_permission(refreshed, Permission.BULK_UPLOAD)


def test_update_keeps_identity_and_moves_credential(directory, admin_session, login_as):
    viewer = login_as(UserRole.VIEWER)
    user_id = viewer.user.id
    
    updated = directory.update(admin_session, user_id, username="viewer2")
    assert updated.id == user_id
    assert directory.credentials.exists("viewer2")
    assert not directory.credentials.exists("viewer")
    assert directory.authenticate("viewer2", "password").user.id == user_id


def test_update_rejects_taken_email(directory, admin_session, login_as):
    viewer = login_as(UserRole.VIEWER)
    with pytest.raises(IdentityConflict):
        directory.update(admin_session, viewer.user.id, email="admin@zestotech.com")


def test_update_unknown_user(directory, admin_session):
    with pytest.raises(UserNotFound):
        directory.update(admin_session, "missing-id", role=UserRole.VIEWER)


def test_remove_deletes_credential_and_sessions(directory, admin_session, login_as, db_session):
    viewer = login_as(UserRole.VIEWER)
    
    directory.remove(admin_session, viewer.user.id)
    
    assert directory.get_by_username("viewer") is None
    assert db_session.query(Credential).filter(Credential.username == "viewer").count() == 0
    assert directory.resolve(viewer.session_id) == ANONYMOUS


def test_cannot_remove_self(directory, admin_session):
    with pytest.raises(SelfRemovalNotAllowed):
        directory.remove(admin_session, admin_session.user.id)


def test_change_password(directory, admin_session, login_as):
    login_as(UserRole.ESTIMATOR)
    directory.change_password(admin_session, "estimator", "changed")
    
    with pytest.raises(InvalidCredentials):
        directory.authenticate("estimator", "password")
    assert directory.authenticate("estimator", "changed").is_authenticated


def test_change_password_unknown_user(directory, admin_session):
    with pytest.raises(UserNotFound):
        directory.change_password(admin_session, "ghost", "pw")
    assert not directory.credentials.exists("ghost")


def test_list_users_search(directory, admin_session, login_as):
    login_as(UserRole.ESTIMATOR)
    login_as(UserRole.VIEWER)
    
    assert len(directory.list_users(admin_session)) == 3
    assert [user.username for user in directory.list_users(admin_session, "estim")] == ["estimator"]
    assert [user.username for user in directory.list_users(admin_session, "ZESTO")] == ["admin"]
