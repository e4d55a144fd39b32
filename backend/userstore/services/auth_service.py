import logging
from typing import Any, Dict, Optional, Tuple, Union

from userstore.core.exceptions import UserStoreException
from userstore.models.user import User, UserRole
from userstore.schemas.user import UserUpdate
from userstore.services.user_store import UserStore

logger = logging.getLogger(__name__)

AuthResult = Tuple[bool, Optional[User], str]


class AccountService:
    """Login, registration and session reattachment on top of the user store

    Passwords are compared as opaque strings; hashing is out of scope here.
    """

    def __init__(self, store: UserStore):
        self.store = store

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials, stamp last login and cache the session"""
        record = self.store.get_user_by_email(email)
        if not record or record.password != password:
            return False, None, "Invalid email or password"

        if not record.is_active:
            return False, None, "Account is deactivated. Please contact support."

        await self.store.update_last_login(record.id)
        user = self.store.get_user_by_id(record.id)
        await self.store.save_current_user(user)
        logger.info(f"User {user.id} logged in")
        return True, user, "Login successful"

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create a regular account and cache it as the current session"""
        if self.store.get_user_by_email(email):
            return False, None, "An account with this email already exists"

        try:
            user = await self.store.create_user(email=email, name=name, password=password, role=UserRole.USER)
        except UserStoreException as e:
            return False, None, str(e)

        await self.store.save_current_user(user)
        logger.info(f"Registered user {user.id}")
        return True, user, "Registration successful"

    async def logout(self):
        await self.store.clear_current_user()

    async def restore_session(self) -> Optional[User]:
        """Reattach the cached identity if it still exists and is active"""
        cached = await self.store.get_current_user()
        if not cached:
            return None

        user = self.store.get_user_by_id(cached.id)
        if user and user.is_active:
            return user

        await self.store.clear_current_user()
        return None

    async def update_profile(self, user_id: str, updates: Union[UserUpdate, Dict[str, Any]]) -> AuthResult:
        """Apply updates and refresh the cached session when it belongs to this user"""
        try:
            user = await self.store.update_user(user_id, updates)
        except (UserStoreException, ValueError) as e:
            return False, None, str(e)

        if not user:
            return False, None, "User not found"

        cached = await self.store.get_current_user()
        if cached and cached.id == user_id:
            await self.store.save_current_user(user)
        return True, user, "Profile updated"
