"""
Custom exceptions for the user store
"""


class UserStoreException(Exception):
    """Base exception for user store operations"""
    pass


class CapacityExceededError(UserStoreException):
    """Raised when a user is created while the store is at capacity"""

    def __init__(self, max_users: int):
        self.max_users = max_users
        super().__init__(f"Maximum user limit reached ({max_users})")


class EmailConflictError(UserStoreException):
    """Raised when an email is already claimed by another user"""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already exists")
