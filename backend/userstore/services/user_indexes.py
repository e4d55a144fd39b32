"""
Secondary indexes over the user table.

The user table (id -> record) is the source of truth. The email index is
persisted alongside it; the role and name-token indexes are caches that can
always be rebuilt from the table with ``rebuild_indexes``.
"""

from typing import Dict, Iterable, List, Set, Tuple

from userstore.models.user import UserRecord

RoleIndex = Dict[str, Set[str]]
NameIndex = Dict[str, Set[str]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def tokenize_name(name: str) -> List[str]:
    """Lower-cased, whitespace-delimited, non-empty name tokens"""
    return name.lower().split()


def rebuild_indexes(users: Iterable[Tuple[str, UserRecord]]) -> Tuple[RoleIndex, NameIndex]:
    """Derive fresh role and name-token indexes from (id, record) pairs"""
    role_index: RoleIndex = {}
    name_index: NameIndex = {}
    for user_id, user in users:
        role_index.setdefault(user.role.value, set()).add(user_id)
        for token in tokenize_name(user.name):
            name_index.setdefault(token, set()).add(user_id)
    return role_index, name_index


class UserIndexes:
    """Email, role and name-token indexes kept in step with the user table"""

    def __init__(self):
        self.email_index: Dict[str, str] = {}
        self.role_index: RoleIndex = {}
        self.name_index: NameIndex = {}

    def add(self, user_id: str, user: UserRecord):
        self.email_index[user.email] = user_id
        self.add_role(user_id, user.role.value)
        self.add_name(user_id, user.name)

    def remove(self, user_id: str, user: UserRecord):
        if self.email_index.get(user.email) == user_id:
            del self.email_index[user.email]
        self.remove_role(user_id, user.role.value)
        self.remove_name(user_id, user.name)

    def move_email(self, user_id: str, old_email: str, new_email: str):
        if self.email_index.get(old_email) == user_id:
            del self.email_index[old_email]
        self.email_index[new_email] = user_id

    def add_role(self, user_id: str, role: str):
        self.role_index.setdefault(role, set()).add(user_id)

    def remove_role(self, user_id: str, role: str):
        bucket = self.role_index.get(role)
        if bucket is not None:
            bucket.discard(user_id)

    def move_role(self, user_id: str, old_role: str, new_role: str):
        self.remove_role(user_id, old_role)
        self.add_role(user_id, new_role)

    def add_name(self, user_id: str, name: str):
        for token in tokenize_name(name):
            self.name_index.setdefault(token, set()).add(user_id)

    def remove_name(self, user_id: str, name: str):
        for token in tokenize_name(name):
            bucket = self.name_index.get(token)
            if bucket is None:
                continue
            bucket.discard(user_id)
            if not bucket:
                del self.name_index[token]

    def rebuild(self, users: Dict[str, UserRecord]):
        """Replace the role and name-token indexes with ones derived from users"""
        self.role_index, self.name_index = rebuild_indexes(users.items())

    def reconcile_email_index(self, users: Dict[str, UserRecord]):
        """Drop email entries that do not match a loaded user, then add missing ones"""
        healed = {
            email: user_id for email, user_id in self.email_index.items()
            if user_id in users and users[user_id].email == email
        }
        for user_id, user in users.items():
            healed.setdefault(user.email, user_id)
        self.email_index = healed

    def clear(self):
        self.email_index.clear()
        self.role_index.clear()
        self.name_index.clear()

    # Serialization: maps become [key, value] pair lists, sets become lists

    def email_index_to_pairs(self) -> List[list]:
        return [[email, user_id] for email, user_id in self.email_index.items()]

    def load_email_index(self, pairs: List[list]):
        self.email_index = {email: user_id for email, user_id in pairs}

    def derived_to_dict(self) -> dict:
        return {
            "roleIndex": [[role, sorted(ids)] for role, ids in self.role_index.items()],
            "nameIndex": [[token, sorted(ids)] for token, ids in self.name_index.items()],
        }

    def load_derived(self, data: dict):
        self.role_index = {role: set(ids) for role, ids in data.get("roleIndex") or []}
        self.name_index = {token: set(ids) for token, ids in data.get("nameIndex") or []}
