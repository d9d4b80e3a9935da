"""
UserStore that serves the MEMORY realm from configured accounts and every
other realm from a persistent store.

Memory accounts are read-only through this store: writes and deletes
targeting the MEMORY realm raise NotPersistableError.
"""

from userhub.exceptions import NotPersistableError
from userhub.identity.roles import Realm
from userhub.stores.base import UserStore
from userhub.stores.memory import InMemoryUserStore


class RealmRoutingUserStore(UserStore):

    def __init__(self, persistent: UserStore, memory_accounts: InMemoryUserStore):
        self.persistent = persistent
        self.memory_accounts = memory_accounts

    def _store_for(self, realm: Realm) -> UserStore:
        return self.memory_accounts if realm is Realm.MEMORY else self.persistent

    def find_by_username_and_realm(self, username, realm):
        return self._store_for(realm).find_by_username_and_realm(username, realm)

    def find_all_by_username(self, username):
        # Persisted users first: they are the ones a realm-less lookup should prefer
        return (
            self.persistent.find_all_by_username(username)
            + self.memory_accounts.find_all_by_username(username)
        )

    def find_by_id(self, user_id):
        # Ids are only meaningful for persisted users
        return self.persistent.find_by_id(user_id)

    def find_all(self):
        return self.persistent.find_all() + self.memory_accounts.find_all()

    def find_all_in_realm(self, realm):
        return self._store_for(realm).find_all_in_realm(realm)

    def exists(self, record):
        return self._store_for(record.realm).exists(record)

    def upsert(self, record):
        if record.realm is Realm.MEMORY:
            raise NotPersistableError(record.username, record.realm.value)
        self.persistent.upsert(record)

    def delete_by_username_and_realm(self, username, realm):
        if realm is Realm.MEMORY:
            raise NotPersistableError(username, realm.value)
        self.persistent.delete_by_username_and_realm(username, realm)
