"""Error taxonomy shared by the services.

Services raise these before mutating anything; routes turn them into HTTP
responses.
"""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from estimator.services.pricing import ValidationIssue


class EstimatorError(Exception):
    """Base class for all estimator errors."""


class PermissionDenied(EstimatorError):
    """The session lacks the permission an operation requires."""
    
    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(f"Not permitted: {permission}")


class IdentityConflict(EstimatorError):
    """A user with the same username or email already exists."""
    
    def __init__(self, message: str = "User with this username or email already exists"):
        super().__init__(message)


class InvalidCredentials(EstimatorError):
    """Login failed. Deliberately does not say whether username or password was wrong."""
    
    def __init__(self):
        super().__init__("Invalid username or password")


class UserNotFound(EstimatorError):
    """No user matches the given username or id."""
    
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"User '{identifier}' not found")


class SelfRemovalNotAllowed(EstimatorError):
    """A user tried to remove their own account."""
    
    def __init__(self):
        super().__init__("You cannot delete your own account")


class MaterialNotFound(EstimatorError):
    """No material carries the given item code."""
    
    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Material '{item_code}' not found")


class MaterialValidationError(EstimatorError):
    """A material candidate violated a catalog invariant."""
    
    def __init__(self, issue: "ValidationIssue"):
        self.issue = issue
        super().__init__(issue.message)


class UnreadableSource(EstimatorError):
    """Import content could not be decoded; no rows were processed."""
    
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to read CSV file: {reason}")
