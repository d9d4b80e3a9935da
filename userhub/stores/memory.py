"""
Dict-backed UserStore.

Used two ways:
  - as the home of the MEMORY realm: accounts configured through
    settings.MEMORY_USERS are registered with ``add_account`` at startup;
  - as a fast test double honouring the full UserStore contract.

Records are copied on the way in and out, so mutating a returned record
has no effect until it is passed to ``upsert`` (same as a real database).
"""

import copy
import itertools
import logging
import threading

from userhub.exceptions import UniquenessViolationError, UserNotFoundError
from userhub.identity.credential import Credential
from userhub.identity.factories import FactoryRegistry
from userhub.identity.records import UserRecord
from userhub.identity.roles import Realm, UserRole
from userhub.stores.base import UserStore


logger = logging.getLogger(__name__)


class InMemoryUserStore(UserStore):

    def __init__(self):
        self._users: dict[tuple[str, Realm], UserRecord] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_username_and_realm(self, username, realm):
        with self._lock:
            user = self._users.get((username, realm))
            if user is not None:
                return copy.deepcopy(user)
        raise UserNotFoundError(f"No user {username} in realm {realm.value}")

    def find_all_by_username(self, username):
        with self._lock:
            return [copy.deepcopy(u) for (name, _), u in self._users.items() if name == username]

    def find_by_id(self, user_id):
        with self._lock:
            for user in self._users.values():
                if user.id == user_id:
                    return copy.deepcopy(user)
        raise UserNotFoundError(f"No user with id {user_id}")

    def find_all(self):
        with self._lock:
            return [copy.deepcopy(u) for u in self._users.values()]

    def find_all_in_realm(self, realm):
        with self._lock:
            return [copy.deepcopy(u) for (_, r), u in self._users.items() if r == realm]

    def exists(self, record):
        with self._lock:
            return (record.username, record.realm) in self._users

    def upsert(self, record):
        self.check_writable(record)
        self._put(record)

    def add_account(self, record: UserRecord) -> None:
        """Register a record without the persistability check (memory accounts)."""
        self._put(record)

    def _put(self, record):
        key = (record.username, record.realm)
        with self._lock:
            existing = self._users.get(key)
            if record.id is None:
                if existing is not None:
                    raise UniquenessViolationError(record.username, record.realm.value)
                record.id = next(self._ids)
            else:
                old_key = next(
                    (k for k, u in self._users.items() if u.id == record.id), None
                )
                if old_key is None:
                    raise UserNotFoundError(f"No user with id {record.id}")
                if existing is not None and existing.id != record.id:
                    raise UniquenessViolationError(record.username, record.realm.value)
                del self._users[old_key]
            self._users[key] = copy.deepcopy(record)

    def delete_by_username_and_realm(self, username, realm):
        with self._lock:
            if self._users.pop((username, realm), None) is None:
                raise UserNotFoundError(f"No user {username} in realm {realm.value}")


def load_memory_accounts(entries: list[str], factories: FactoryRegistry) -> InMemoryUserStore:
    """
    Build the MEMORY realm from ``"username:password:ROLE"`` entries.

    Passwords are hashed on load; the plaintext is not kept. The role part
    is optional and defaults to DEFAULT.

    Raises:
        ValueError: On a malformed entry or an unknown role name.
    """
    store = InMemoryUserStore()
    factory = factories.get_factory(Realm.MEMORY)
    for entry in entries:
        parts = entry.split(":")
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise ValueError("Memory accounts must look like 'username:password[:ROLE]'")
        username, password = parts[0], parts[1]
        role = UserRole(parts[2].upper()) if len(parts) == 3 else UserRole.DEFAULT
        store.add_account(factory.create(username, Credential.hash(password), role, True))
        logger.info("Registered memory account %s with role %s", username, role.value)
    return store
