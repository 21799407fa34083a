"""
Service error classes.

Routes never raise HTTPException for business rules; these are mapped to
status codes by the handlers registered in ``msdata.main``.
"""


class UserServiceError(Exception):
    """Base exception for user service errors."""
    pass


class ValidationError(UserServiceError):
    """Raised when caller-supplied data violates a business rule."""
    pass


class DuplicateEmailError(ValidationError):
    """Raised when an email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email already exists: {email}")


class NotFoundError(UserServiceError):
    """Raised when a referenced user does not exist."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ConflictError(UserServiceError):
    """Raised when an update loses an optimistic-locking race."""
    pass
