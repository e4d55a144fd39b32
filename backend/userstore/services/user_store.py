"""
Indexed user store persisted to a key-value backend.

The user table (id -> UserRecord) is the source of truth. Email, role and
name-token indexes are maintained incrementally on every write and rebuilt
from the table at startup. All writes run under one asyncio lock covering
"mutate table, update indexes, persist"; reads are synchronous and never
persist. The backup scheduler only reads through ``snapshot()``.
"""
import asyncio
import copy
import json
import logging
import uuid
from dataclasses import fields
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from userstore.core.config import Settings, settings as default_settings
from userstore.core.exceptions import CapacityExceededError, EmailConflictError, UserStoreException
from userstore.db.kv_store import KeyValueStore
from userstore.models.user import User, UserRecord, UserRole, UserPreferences, UserProfile, UserStats
from userstore.schemas.user import UserUpdate, UserStatsResponse, ImportResult
from userstore.services.backup_scheduler import BackupScheduler
from userstore.services.seed_users import DEFAULT_USERS, generate_avatar, generate_sample_users
from userstore.services.session_cache import CurrentUserCache
from userstore.services.user_indexes import UserIndexes, normalize_email
from userstore.services.user_transfer import ImportLineError, format_users_csv, parse_import_lines

logger = logging.getLogger(__name__)

STORAGE_VERSION = "2.0"


class UserStore:
    """Bounded, indexed collection of user records"""

    def __init__(self, kv: KeyValueStore, settings: Optional[Settings] = None):
        self.kv = kv
        self.settings = settings or default_settings
        self.max_users = self.settings.MAX_USERS

        self._users: Dict[str, UserRecord] = {}
        self._indexes = UserIndexes()
        self._write_lock = asyncio.Lock()
        self._cleaning_up = False
        self._initialized = False

        self.session_cache = CurrentUserCache(kv, self.settings.current_user_key)
        self.backup_scheduler = BackupScheduler(
            kv,
            self.snapshot,
            key_prefix=self.settings.backup_prefix,
            interval_seconds=self.settings.BACKUP_INTERVAL_SECONDS,
            retention=self.settings.BACKUP_RETENTION
        )

    async def initialize(self):
        """Load persisted state, heal indexes, seed baseline accounts, start backups"""
        if self._initialized:
            return

        await self._load_from_storage()
        self.rebuild_indexes()
        await self._initialize_default_users()
        await self.backup_scheduler.start()

        self._initialized = True
        logger.info(f"User store initialized with {len(self._users)}/{self.max_users} users")

    async def close(self):
        """Stop the backup timer; safe to call more than once"""
        await self.backup_scheduler.stop()
        self._initialized = False

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # Persistence

    def _serialize_users(self) -> List[list]:
        return [[user_id, user.to_dict()] for user_id, user in self._users.items()]

    async def _load_from_storage(self):
        """Load both blobs independently; an unreadable blob leaves its part empty"""
        try:
            stored = await self.kv.get(self.settings.users_key)
            if stored:
                data = json.loads(stored)
                self._users = {
                    user_id: UserRecord.from_dict(record)
                    for user_id, record in data.get("users") or []
                }
                if "emailIndex" in data:
                    self._indexes.load_email_index(data["emailIndex"])
                else:
                    self._indexes.email_index = {user.email: user_id for user_id, user in self._users.items()}
        except Exception as e:
            logger.error(f"Error loading user database: {e}")
            self._users = {}
            self._indexes.email_index = {}

        try:
            stored_indexes = await self.kv.get(self.settings.indexes_key)
            if stored_indexes:
                self._indexes.load_derived(json.loads(stored_indexes))
        except Exception as e:
            logger.error(f"Error loading user indexes: {e}")
            self._indexes.role_index = {}
            self._indexes.name_index = {}

    async def _save_to_storage(self):
        """Persist table and indexes; failures are logged and trigger cleanup"""
        if len(self._users) > self.max_users:
            logger.warning(f"User limit reached: {len(self._users)}/{self.max_users}, skipping save")
            return

        now = datetime.now().isoformat()
        data = {
            "users": self._serialize_users(),
            "emailIndex": self._indexes.email_index_to_pairs(),
            "lastUpdated": now,
            "version": STORAGE_VERSION
        }
        index_data = self._indexes.derived_to_dict()
        index_data["lastUpdated"] = now

        try:
            await self.kv.set(self.settings.users_key, json.dumps(data))
            await self.kv.set(self.settings.indexes_key, json.dumps(index_data))
        except Exception as e:
            logger.error(f"Error saving user database: {e}")
            if not self._cleaning_up:
                await self._cleanup_old_data()

    async def _cleanup_old_data(self) -> int:
        """Delete inactive users idle past the retention horizon, then save once"""
        self._cleaning_up = True
        try:
            cutoff = datetime.now() - timedelta(days=self.settings.INACTIVE_RETENTION_DAYS)
            stale = [
                user_id for user_id, user in self._users.items()
                if not user.is_active and user.last_activity < cutoff
            ]
            for user_id in stale:
                self._remove_user(user_id)

            if stale:
                logger.info(f"Cleanup removed {len(stale)} inactive users")
                await self._save_to_storage()
            return len(stale)
        finally:
            self._cleaning_up = False

    async def cleanup_inactive_users(self) -> int:
        """Run the inactive-user cleanup on demand"""
        async with self._write_lock:
            return await self._cleanup_old_data()

    # Indexes

    def rebuild_indexes(self):
        """Re-derive role and name-token indexes and heal the email index from the user table"""
        self._indexes.rebuild(self._users)
        self._indexes.reconcile_email_index(self._users)

    @property
    def email_index(self) -> Dict[str, str]:
        return dict(self._indexes.email_index)

    @property
    def role_index(self) -> Dict[str, set]:
        return {role: set(ids) for role, ids in self._indexes.role_index.items()}

    @property
    def name_index(self) -> Dict[str, set]:
        return {token: set(ids) for token, ids in self._indexes.name_index.items()}

    # Seeding

    async def _initialize_default_users(self):
        seeds = []
        if self.settings.SEED_DEFAULT_USERS:
            seeds.extend(DEFAULT_USERS)
        if self.settings.SAMPLE_USER_COUNT > 0:
            seeds.extend(generate_sample_users(self.settings.SAMPLE_USER_COUNT))
        if not seeds:
            return

        created = 0
        async with self._write_lock:
            for seed in seeds:
                if normalize_email(seed["email"]) in self._indexes.email_index:
                    continue
                try:
                    self._create_user(**seed)
                except CapacityExceededError as e:
                    logger.warning(f"Stopped seeding users: {e}")
                    break
                created += 1

            if created:
                await self._save_to_storage()
                logger.info(f"Seeded {created} users")

    # Writes

    def _generate_user_id(self) -> str:
        while True:
            user_id = f"user_{int(datetime.now().timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"
            if user_id not in self._users:
                return user_id

    def _create_user(
        self,
        email: str,
        name: str,
        password: str,
        role: Union[UserRole, str, None] = None,
        avatar: Optional[str] = None
    ) -> UserRecord:
        if len(self._users) >= self.max_users:
            raise CapacityExceededError(self.max_users)

        email = normalize_email(email)
        role = UserRole(role or UserRole.USER)
        if email in self._indexes.email_index:
            raise EmailConflictError(email)

        name = name.strip()
        user_id = self._generate_user_id()
        user = UserRecord(
            id=user_id,
            email=email,
            name=name,
            password=password,
            created_at=datetime.now(),
            is_active=True,
            role=role,
            avatar=avatar or generate_avatar(name),
            preferences=UserPreferences(
                currency=self.settings.DEFAULT_CURRENCY,
                language=self.settings.DEFAULT_LANGUAGE
            ),
            profile=UserProfile(),
            stats=UserStats()
        )

        self._users[user_id] = user
        self._indexes.add(user_id, user)
        logger.debug(f"Created user {user_id} ({role.value})")
        return user

    def _remove_user(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.pop(user_id, None)
        if user:
            self._indexes.remove(user_id, user)
        return user

    async def create_user(
        self,
        email: str,
        name: str,
        password: str,
        role: Union[UserRole, str] = UserRole.USER,
        avatar: Optional[str] = None
    ) -> User:
        """Create a user; raises CapacityExceededError or EmailConflictError"""
        async with self._write_lock:
            user = self._create_user(email, name, password, role, avatar)
            await self._save_to_storage()
        return user.to_user()

    async def update_user(self, user_id: str, updates: Union[UserUpdate, Dict[str, Any]]) -> Optional[User]:
        """Merge updates into a user; None if absent, EmailConflictError if the email is taken"""
        if not isinstance(updates, UserUpdate):
            updates = UserUpdate.model_validate(updates)
        changes = updates.model_dump(exclude_unset=True)

        async with self._write_lock:
            user = self._users.get(user_id)
            if not user:
                return None

            new_email = None
            if changes.get("email") is not None:
                new_email = normalize_email(changes["email"])
                owner = self._indexes.email_index.get(new_email)
                if owner is not None and owner != user_id:
                    raise EmailConflictError(new_email)

            if new_email and new_email != user.email:
                self._indexes.move_email(user_id, user.email, new_email)
                user.email = new_email

            new_role = changes.get("role")
            if new_role is not None and new_role != user.role:
                self._indexes.move_role(user_id, user.role.value, new_role.value)
                user.role = new_role

            new_name = changes.get("name")
            if new_name is not None and new_name != user.name:
                self._indexes.remove_name(user_id, user.name)
                self._indexes.add_name(user_id, new_name)
                user.name = new_name

            if "avatar" in changes:
                user.avatar = changes["avatar"]
            if changes.get("is_active") is not None:
                user.is_active = changes["is_active"]

            for section, factory in (("preferences", UserPreferences), ("profile", UserProfile), ("stats", UserStats)):
                values = changes.get(section)
                if not values:
                    continue
                target = getattr(user, section) or factory()
                nullable = {f.name for f in fields(factory) if f.default is None}
                for key, value in values.items():
                    if value is not None or key in nullable:
                        setattr(target, key, value)
                setattr(user, section, target)

            await self._save_to_storage()
            return user.to_user()

    async def update_user_role(self, user_id: str, role: Union[UserRole, str]) -> bool:
        return await self.update_user(user_id, UserUpdate(role=UserRole(role))) is not None

    async def delete_user(self, user_id: str) -> bool:
        """Remove a user and every index entry pointing at it"""
        async with self._write_lock:
            if not self._remove_user(user_id):
                return False
            await self._save_to_storage()
            return True

    async def _set_active(self, user_id: str, is_active: bool) -> bool:
        async with self._write_lock:
            user = self._users.get(user_id)
            if not user:
                return False
            user.is_active = is_active
            await self._save_to_storage()
            return True

    async def activate_user(self, user_id: str) -> bool:
        return await self._set_active(user_id, True)

    async def deactivate_user(self, user_id: str) -> bool:
        return await self._set_active(user_id, False)

    async def update_last_login(self, user_id: str):
        """Stamp the last login time; unknown ids are ignored"""
        async with self._write_lock:
            user = self._users.get(user_id)
            if user:
                user.last_login = datetime.now()
                await self._save_to_storage()

    # Reads

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.to_user() if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Full record including the password, for credential checks only"""
        user_id = self._indexes.email_index.get(normalize_email(email))
        if not user_id or user_id not in self._users:
            return None
        return copy.deepcopy(self._users[user_id])

    def get_all_users(self) -> List[User]:
        return [user.to_user() for user in self._users.values()]

    def get_user_count(self) -> int:
        return len(self._users)

    def _resolve(self, user_ids) -> List[User]:
        resolved = (self.get_user_by_id(user_id) for user_id in user_ids)
        return [user for user in resolved if user is not None]

    def search_users(self, query: str) -> List[User]:
        """Users whose name token or email contains any query term"""
        matches: Dict[str, None] = {}
        for term in query.lower().split():
            for token, user_ids in self._indexes.name_index.items():
                if term in token:
                    matches.update(dict.fromkeys(sorted(user_ids)))
            for email, user_id in self._indexes.email_index.items():
                if term in email:
                    matches[user_id] = None
        return self._resolve(matches)

    def get_users_by_role(self, role: Union[UserRole, str]) -> List[User]:
        key = role.value if isinstance(role, UserRole) else role
        return self._resolve(sorted(self._indexes.role_index.get(key, ())))

    def get_users_created_in_range(self, start: datetime, end: datetime) -> List[User]:
        """Linear scan, inclusive on both ends"""
        return [
            user.to_user() for user in self._users.values()
            if start <= user.created_at <= end
        ]

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time copy of the user table for backups"""
        return {
            "users": self._serialize_users(),
            "timestamp": datetime.now().isoformat(),
            "userCount": len(self._users)
        }

    def get_stats(self) -> UserStatsResponse:
        users = list(self._users.values())
        now = datetime.now()
        one_week_ago = now - timedelta(days=7)
        one_month_ago = now - timedelta(days=30)

        active_users = sum(1 for u in users if u.is_active)
        buyers = [u for u in users if u.stats and u.stats.total_orders > 0]
        total_revenue = sum(u.stats.total_spent for u in users if u.stats)
        buyer_spend = sum(u.stats.total_spent for u in buyers)
        storage_bytes = len(json.dumps(self._serialize_users()))

        return UserStatsResponse(
            total_users=len(users),
            active_users=active_users,
            inactive_users=len(users) - active_users,
            admin_users=sum(1 for u in users if u.role == UserRole.ADMIN),
            moderator_users=sum(1 for u in users if u.role == UserRole.MODERATOR),
            regular_users=sum(1 for u in users if u.role == UserRole.USER),
            new_users_this_week=sum(1 for u in users if u.created_at > one_week_ago),
            new_users_this_month=sum(1 for u in users if u.created_at > one_month_ago),
            users_with_orders=len(buyers),
            average_order_value=buyer_spend / max(len(buyers), 1),
            total_revenue=total_revenue,
            storage_used=round(storage_bytes / 1024 / 1024, 2),
            max_capacity=self.max_users,
            capacity_used=int(len(users) / self.max_users * 100 + 0.5)
        )

    # Import / export

    def export_users(self) -> str:
        return format_users_csv(self.get_all_users())

    async def import_users(self, csv_data: str) -> ImportResult:
        """Create users from CSV lines; bad lines are reported, never raised"""
        imported = 0
        errors: List[str] = []

        async with self._write_lock:
            for item in parse_import_lines(csv_data):
                if isinstance(item, ImportLineError):
                    errors.append(str(item))
                    continue

                email = normalize_email(item.email)
                if email in self._indexes.email_index:
                    errors.append(f"Line {item.line_number}: Email {email} already exists")
                    continue

                try:
                    role = UserRole(item.role) if item.role else UserRole.USER
                except ValueError:
                    errors.append(f"Line {item.line_number}: Unknown role {item.role}")
                    continue

                try:
                    self._create_user(email, item.name, self.settings.IMPORT_DEFAULT_PASSWORD, role)
                except UserStoreException as e:
                    errors.append(f"Line {item.line_number}: {e}")
                    continue
                imported += 1

            if imported:
                await self._save_to_storage()

        logger.info(f"Imported {imported} users with {len(errors)} errors")
        for error in errors:
            logger.warning(f"Import skipped: {error}")
        return ImportResult(imported=imported, errors=errors)

    # Session cache

    async def save_current_user(self, user: User):
        await self.session_cache.save(user)

    async def get_current_user(self) -> Optional[User]:
        return await self.session_cache.get()

    async def clear_current_user(self):
        await self.session_cache.clear()
