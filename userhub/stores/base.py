"""
UserStore: the storage interface the identity core depends on.

Matching is exact and case-sensitive. Implementations raise
StorageUnavailableError when their backend fails and never retry.

upsert semantics:
  - record.id is None: insert. A second record with the same
    (username, realm) fails with UniquenessViolationError. On success the
    store assigns record.id.
  - record.id is set: update the stored user with that id.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from userhub.exceptions import MissingDataError, NotPersistableError
from userhub.identity.roles import Realm

if TYPE_CHECKING:
    from userhub.identity.records import UserRecord


class UserStore(ABC):

    @abstractmethod
    def find_by_username_and_realm(self, username: str, realm: Realm) -> "UserRecord":
        """Return the user or raise UserNotFoundError."""

    @abstractmethod
    def find_all_by_username(self, username: str) -> list["UserRecord"]:
        """Return every user with this name, across realms (possibly empty)."""

    @abstractmethod
    def find_by_id(self, user_id: int) -> "UserRecord":
        """Return the user or raise UserNotFoundError."""

    @abstractmethod
    def find_all(self) -> list["UserRecord"]:
        """Return all users."""

    @abstractmethod
    def find_all_in_realm(self, realm: Realm) -> list["UserRecord"]:
        """Return all users of one realm."""

    @abstractmethod
    def exists(self, record: "UserRecord") -> bool:
        """True if a user with the record's (username, realm) is stored."""

    @abstractmethod
    def upsert(self, record: "UserRecord") -> None:
        """Insert or update ``record`` (see module docstring)."""

    @abstractmethod
    def delete_by_username_and_realm(self, username: str, realm: Realm) -> None:
        """Remove the user or raise UserNotFoundError."""

    @staticmethod
    def check_writable(record: "UserRecord") -> None:
        """
        Reject records that may not be written.

        Raises:
            NotPersistableError: Transient variants (memory, unknown).
            MissingDataError: Persisted local users without a credential.
        """
        if not record.persistable:
            raise NotPersistableError(record.username, record.realm.value)
        if record.realm is Realm.LOCAL and record.credential is None:
            raise MissingDataError(
                f"Local user {record.username} cannot be stored without a credential"
            )
