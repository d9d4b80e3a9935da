"""
User factories: one per realm, looked up through a FactoryRegistry.

Extraction code never instantiates record variants directly. It asks the
registry for the factory of a realm and lets the factory decide which
variant to build. Supporting a new realm means registering one more
factory; the extractor stays untouched.

The registry is an explicit object built once at startup
(``build_default_registry``) and handed to whoever needs it.
"""

from collections.abc import Iterator, Mapping

from userhub.exceptions import InvalidIdentityError, UnsupportedRealmError
from userhub.identity.credential import Credential
from userhub.identity.records import (
    LdapUser,
    LocalUser,
    MemoryUser,
    ServiceUser,
    UnknownUser,
    UserRecord,
)
from userhub.identity.roles import Realm, UserRole


class UserFactory:
    """Builds records of one realm."""

    realm: Realm
    record_class: type[UserRecord]

    def create(
        self,
        username: str,
        credential: Credential | None,
        role: UserRole,
        active: bool,
    ) -> UserRecord:
        """
        Create a fresh (unsaved) record of this factory's realm.

        Raises:
            InvalidIdentityError: If the username is empty.
        """
        if not username or not username.strip():
            raise InvalidIdentityError()
        return self.build(username, credential, role, active)

    def build(self, username, credential, role, active) -> UserRecord:
        return self.record_class(
            username, role=role, active=active, credential=credential
        )


class LocalUserFactory(UserFactory):
    realm = Realm.LOCAL
    record_class = LocalUser

    def build(self, username, credential, role, active):
        if role == UserRole.SERVICE:
            return ServiceUser(username, active=active, credential=credential)
        return super().build(username, credential, role, active)


class LdapUserFactory(UserFactory):
    realm = Realm.LDAP
    record_class = LdapUser

    def build(self, username, credential, role, active):
        # The directory owns the secret
        return super().build(username, None, role, active)


class MemoryUserFactory(UserFactory):
    realm = Realm.MEMORY
    record_class = MemoryUser


class UnknownUserFactory(UserFactory):
    realm = Realm.UNKNOWN
    record_class = UnknownUser


class FactoryRegistry(Mapping):
    """Read-only mapping Realm -> UserFactory."""

    def __init__(self, factories: Mapping[Realm, UserFactory] | None = None):
        self._factories = dict(factories or {})

    def get_factory(self, realm: Realm) -> UserFactory:
        """
        Return the factory registered for ``realm``.

        Raises:
            UnsupportedRealmError: If no factory is registered.
        """
        try:
            return self._factories[realm]
        except KeyError:
            raise UnsupportedRealmError(realm) from None

    def __getitem__(self, realm: Realm) -> UserFactory:
        return self._factories[realm]

    def __iter__(self) -> Iterator[Realm]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)


def build_default_registry() -> FactoryRegistry:
    """Registry with a factory for every built-in realm."""
    factories = [
        LocalUserFactory(),
        LdapUserFactory(),
        MemoryUserFactory(),
        UnknownUserFactory(),
    ]
    return FactoryRegistry({factory.realm: factory for factory in factories})
