"""
User records: the canonical identity every other layer works with.

A UserRecord answers "who is this, where do they come from, and what may
they do" regardless of whether the user lives in the local database, in a
directory, or only in process memory. The realm-specific behaviour lives in
the variants below:

  LocalUser    LOCAL realm, persisted by this service, credential managed here
  ServiceUser  LocalUser with role SERVICE, used for machine principals
  LdapUser     LDAP realm, secret managed by the directory (no credential)
  MemoryUser   MEMORY realm, configured at startup, never persisted
  UnknownUser  UNKNOWN realm, placeholder built from unrecognised principals

Records are plain Python objects, not ORM rows. They are created by a
UserFactory (fresh, id unset) or by a UserStore lookup (id set), and are
never written back implicitly: callers mutate them and then call
``store.upsert(record)``.

Thread-safety: a record is meant to be owned by one request. Nothing in
here locks.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import ClassVar

from userhub.identity.credential import Credential
from userhub.identity.roles import Realm, UserRole
from userhub.schemas.user import ProfileSettingsDto, UserDto


logger = logging.getLogger(__name__)


@dataclass
class ProfileSettings:
    """Per-user preferences editable by the user."""
    email_address: str | None = None
    email_receive: bool = False
    payload: str | None = None

    def to_dto(self) -> ProfileSettingsDto:
        return ProfileSettingsDto(
            email_address=self.email_address,
            email_receive=self.email_receive,
            payload=self.payload,
        )


class UserRecord:
    """
    Base class of every user variant.

    Equality is defined over username, realm and credential; the hash
    covers username and realm only so records can live in sets and dict
    keys while their credential changes.
    """

    REALM: ClassVar[Realm] = Realm.UNKNOWN
    # Whether a UserStore may write this variant
    persistable: ClassVar[bool] = False

    def __init__(
        self,
        username: str,
        role: UserRole = UserRole.DEFAULT,
        active: bool = True,
        credential: Credential | None = None,
        profile: ProfileSettings | None = None,
        expiration_date: date | None = None,
        id: int | None = None,
    ):
        self.id = id
        self.username = username
        self.role = role
        self.active = active
        self._credential = credential
        # Defaulted here so reading the profile never mutates the record
        self.profile = profile if profile is not None else ProfileSettings()
        self.expiration_date = expiration_date

    # --- capabilities -----------------------------------------------------

    @property
    def realm(self) -> Realm:
        # Fixed by the variant; there is no setter
        return self.REALM

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def is_enabled(self) -> bool:
        return self.active

    @property
    def is_expired(self) -> bool:
        return self.expiration_date is not None and self.expiration_date < date.today()

    @property
    def is_locked(self) -> bool:
        return False

    @property
    def authorities(self) -> tuple[str, ...]:
        return (self.role.authority,)

    def can_authenticate(self) -> bool:
        """True when the account may log in or use a token."""
        return self.is_enabled and not self.is_expired and not self.is_locked

    def set_credential(self, credential: Credential | None) -> None:
        self._credential = credential

    def change_password(self, new_password: str) -> None:
        """Replace the credential with an Argon2 hash of ``new_password``."""
        self.set_credential(Credential.hash(new_password))

    def to_dto(self) -> UserDto:
        """Serializable view of the record. Never includes the credential."""
        return UserDto(
            username=self.username,
            realm=self.realm,
            role=self.role,
            is_active=self.active,
            expiration_date=self.expiration_date,
            settings=self.profile.to_dto(),
        )

    # --- identity ---------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, UserRecord):
            return NotImplemented
        return (
            self.username == other.username
            and self.realm == other.realm
            and self.credential == other.credential
        )

    def __hash__(self):
        return hash((self.username, self.realm))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(username={self.username!r}, "
            f"realm={self.realm.value}, role={self.role.value}, id={self.id})"
        )


class LocalUser(UserRecord):
    """User stored in and authenticated against the local database."""

    REALM = Realm.LOCAL
    persistable = True


class ServiceUser(LocalUser):
    """Machine principal kept in the local database with role SERVICE."""

    def __init__(self, username: str, **kwargs):
        kwargs.setdefault("role", UserRole.SERVICE)
        super().__init__(username, **kwargs)


class LdapUser(UserRecord):
    """
    Directory user. Role and activity come from the directory at login
    time; a store may keep a snapshot of them but never a credential.
    """

    REALM = Realm.LDAP
    persistable = True

    def set_credential(self, credential: Credential | None) -> None:
        if credential is not None:
            logger.debug("Ignoring credential change for directory user %s", self.username)

    def change_password(self, new_password: str) -> None:
        logger.debug("Ignoring password change for directory user %s", self.username)


class MemoryUser(UserRecord):
    """
    Account configured in process memory. Always usable, never persisted,
    and its credential cannot change after creation.
    """

    REALM = Realm.MEMORY

    @property
    def is_enabled(self) -> bool:
        return True

    @property
    def is_expired(self) -> bool:
        return False

    def set_credential(self, credential: Credential | None) -> None:
        logger.debug("Ignoring credential change for memory user %s", self.username)

    def change_password(self, new_password: str) -> None:
        logger.debug("Ignoring password change for memory user %s", self.username)


class UnknownUser(UserRecord):
    """Placeholder for principals whose source could not be determined."""

    REALM = Realm.UNKNOWN
