"""
Identity extraction: turn an authenticated principal into a UserRecord.

Operations, cheapest first:

  extract_lightweight(principal)
      Pure in-memory conversion. Used on the hot path where a snapshot of
      the user is good enough.

  extract_with_refresh(principal)
      Lightweight first; if the principal does not carry enough data, one
      storage read fills the gap. Meant for edit and admin flows.

  extract_from_authentication_context(principal, credential_material, authorities)
      Builds a user from a bare username/credential pair plus the realm
      claim of the authentication context. No storage read.

  extract_from_transfer_object(dto)
      Storage lookup by (username, realm).

  extract_polymorphic(principal)
      Dispatches on the principal's shape. Returns None for shapes it does
      not know, leaving the error decision to the caller.

Roles are derived from exactly one authority claim; principals with zero or
several authorities are rejected with AmbiguousRoleError.

The extractor holds no mutable state. It is safe to share across threads
as long as its UserStore is.
"""

import logging
from collections.abc import Iterable
from typing import Any

from userhub.exceptions import (
    AmbiguousRoleError,
    IdentityNotFoundError,
    InvalidIdentityError,
    MissingDataError,
    UserNotFoundError,
)
from userhub.identity.credential import Credential, UNKNOWN_ALGORITHM
from userhub.identity.factories import FactoryRegistry
from userhub.identity.principals import PrincipalKind, classify_principal
from userhub.identity.records import UserRecord
from userhub.identity.roles import Realm, UserRole
from userhub.stores.base import UserStore


logger = logging.getLogger(__name__)


def derive_role(authorities: Iterable[str] | None) -> UserRole:
    """
    Map a single authority claim to a role.

    Raises:
        AmbiguousRoleError: On zero or several authorities, or when the
            only authority names no known role.
    """
    claims = [str(a) for a in (authorities or ())]
    if len(claims) != 1:
        raise AmbiguousRoleError(claims)
    try:
        return UserRole.from_authority(claims[0])
    except ValueError:
        raise AmbiguousRoleError(claims, f"Unknown authority {claims[0]!r}") from None


def _username_of(principal: Any) -> str:
    """Return the principal's username or raise IdentityNotFoundError."""
    if principal is None:
        raise IdentityNotFoundError("Principal is missing")
    username = principal if isinstance(principal, str) else getattr(principal, "username", None)
    if not username:
        raise IdentityNotFoundError("Principal carries no username")
    return username


class IdentityExtractor:
    """
    Converts principals into UserRecords.

    Args:
        store: Where refreshed and transfer-object lookups go.
        factories: Realm -> factory mapping used to build records.
        cross_realm_fallback: When a realm-scoped refresh lookup fails,
            return the first user with the same name from any realm. The
            result is ambiguous if usernames collide across realms.
    """

    def __init__(
        self,
        store: UserStore,
        factories: FactoryRegistry,
        cross_realm_fallback: bool = True,
    ):
        self.store = store
        self.factories = factories
        self.cross_realm_fallback = cross_realm_fallback

    # ------------------------------------------------------------------
    # 1. Lightweight
    # ------------------------------------------------------------------

    def extract_lightweight(self, principal: Any) -> UserRecord:
        """
        Convert ``principal`` without touching storage.

        Raises:
            IdentityNotFoundError: Principal is None or has no username.
            AmbiguousRoleError: Role cannot be derived from the authorities.
            MissingDataError: The shape needs a storage lookup to resolve.
            UnsupportedRealmError: No factory for the realm the shape maps to.
        """
        kind, principal = classify_principal(principal)

        if kind is PrincipalKind.CANONICAL:
            return principal

        username = _username_of(principal)

        if kind is PrincipalKind.DIRECTORY:
            role = derive_role(principal.authorities)
            return self.factories.get_factory(Realm.LDAP).create(
                username, None, role, principal.enabled
            )

        if kind is PrincipalKind.MEMORY:
            role = derive_role(principal.authorities)
            credential = (
                Credential(principal.password, UNKNOWN_ALGORITHM)
                if principal.password is not None
                else None
            )
            return self.factories.get_factory(Realm.MEMORY).create(
                username, credential, role, principal.enabled
            )

        if kind is PrincipalKind.GENERIC:
            role = derive_role(principal.authorities)
            logger.debug("Casting unrecognised principal %s into the UNKNOWN realm", username)
            return self.factories.get_factory(Realm.UNKNOWN).create(
                username, None, role, getattr(principal, "enabled", True)
            )

        # TRANSFER, or an object with a username but nothing else to go on
        raise MissingDataError(
            f"Cannot build user {username} from the provided information"
        )

    # ------------------------------------------------------------------
    # 2. Refresh
    # ------------------------------------------------------------------

    def extract_with_refresh(self, principal: Any) -> UserRecord:
        """
        Lightweight extraction, completed from storage when data is missing.

        Directory principals are looked up in the LDAP realm and transfer
        objects in their own realm. If that lookup fails (or the shape has
        no realm to go by) the first user with the same name in any realm
        is returned, unless cross-realm fallback is disabled.

        Raises:
            IdentityNotFoundError: Principal is None or has no username.
            UserNotFoundError: Nothing matched in storage.
            StorageUnavailableError: Propagated from the store.
        """
        kind, principal = classify_principal(principal)
        try:
            return self.extract_lightweight(principal)
        except (MissingDataError, InvalidIdentityError) as exc:
            logger.debug("Lightweight extraction incomplete (%s), consulting storage", exc.detail)

        username = _username_of(principal)
        realm = None
        if kind is PrincipalKind.DIRECTORY:
            realm = Realm.LDAP
        elif kind is PrincipalKind.TRANSFER:
            realm = getattr(principal, "realm", None)

        not_found = None
        if realm is not None:
            try:
                return self.store.find_by_username_and_realm(username, realm)
            except UserNotFoundError as exc:
                not_found = exc

        if not self.cross_realm_fallback:
            raise not_found or UserNotFoundError(
                f"User {username} cannot be resolved without a realm"
            )

        logger.warning(
            "Resolving %s without a definite realm; picking the first user with "
            "this name. Usernames shared across realms make this ambiguous.",
            username,
        )
        candidates = self.store.find_all_by_username(username)
        if not candidates:
            raise UserNotFoundError(f"No user named {username} in any realm")
        return candidates[0]

    # ------------------------------------------------------------------
    # 3. Authentication context
    # ------------------------------------------------------------------

    def extract_from_authentication_context(
        self,
        principal: Any,
        credential_material: Any,
        authorities: Iterable[str] | None,
    ) -> UserRecord:
        """
        Build a user from a username/credential pair and the context's realm.

        Args:
            principal: A username string or an object with ``username`` and,
                ideally, ``realm`` (and optionally ``enabled``).
            credential_material: The raw secret, if the context still has it.
            authorities: Authority claims of the context.

        Raises:
            IdentityNotFoundError: No username.
            AmbiguousRoleError: Not exactly one known authority.
            MissingDataError: The context names no realm.
            UnsupportedRealmError: No factory for that realm.
        """
        username = _username_of(principal)
        role = derive_role(authorities)
        realm = getattr(principal, "realm", None)
        if realm is None:
            raise MissingDataError(f"No realm known for {username}")
        credential = None
        if credential_material is not None:
            credential = Credential(str(credential_material), UNKNOWN_ALGORITHM)
        active = getattr(principal, "enabled", True)
        return self.factories.get_factory(realm).create(username, credential, role, active)

    # ------------------------------------------------------------------
    # 4. Transfer object
    # ------------------------------------------------------------------

    def extract_from_transfer_object(self, dto: Any) -> UserRecord:
        """
        Load the user a transfer object points at.

        Raises:
            MissingDataError: ``dto`` is None or lacks username or realm.
            UserNotFoundError: No stored user matches.
        """
        username = getattr(dto, "username", None)
        realm = getattr(dto, "realm", None)
        if not username or realm is None:
            raise MissingDataError("Username and realm are required to identify a user")
        return self.store.find_by_username_and_realm(username, realm)

    # ------------------------------------------------------------------
    # 5. Polymorphic
    # ------------------------------------------------------------------

    def extract_polymorphic(self, principal: Any) -> UserRecord | None:
        """
        Extract according to the principal's shape.

        Returns None when the shape is not recognised.
        """
        kind, principal = classify_principal(principal)
        if kind is PrincipalKind.DIRECTORY:
            return self.extract_with_refresh(principal)
        if kind is PrincipalKind.TRANSFER:
            return self.extract_from_transfer_object(principal)
        if kind in (PrincipalKind.CANONICAL, PrincipalKind.MEMORY, PrincipalKind.GENERIC):
            return self.extract_lightweight(principal)
        return None
