"""
Authentication service: login, token issuance and token inspection.

This module contains the auth logic, separated from HTTP concerns. The
router calls these functions and translates the results into responses.

Login flow:
  1. Pick the realms to try: the requested one, or MEMORY, the default
     realm and LDAP in that order
  2. MEMORY/LOCAL: look the user up and verify the password against the
     stored credential
     LDAP: ask the DirectoryAuthenticator, resolve the directory principal
     within the LDAP realm only and bring the stored snapshot in line
     with the role and activity the directory reports
  3. Reject disabled, expired and locked accounts
  4. Return a JWT naming the user, realm and role

Security notes:
  - "Unknown user", "wrong password" and "inactive account" all produce the
    same InvalidCredentialsError to prevent user enumeration
  - Passwords and tokens are never logged
"""

import logging

from jose import JWTError

from userhub.config import settings
from userhub.exceptions import (
    InvalidCredentialsError,
    MissingDataError,
    UserNotFoundError,
)
from userhub.identity.extractor import IdentityExtractor
from userhub.identity.principals import DirectoryAuthenticator, TokenPrincipal
from userhub.identity.records import UserRecord
from userhub.identity.roles import Realm
from userhub.schemas.auth import AuthenticationInfo, TokenInfo
from userhub.security import create_access_token, decode_access_token
from userhub.stores.base import UserStore


logger = logging.getLogger(__name__)


def _login_order(realm: Realm | None) -> list[Realm]:
    if realm is not None:
        return [realm]
    order = [Realm.MEMORY, Realm(settings.DEFAULT_REALM), Realm.LDAP]
    # Drop duplicates while keeping order
    return list(dict.fromkeys(order))


def issue_token(user: UserRecord) -> TokenInfo:
    """Sign an access token for ``user``."""
    token, expiration = create_access_token(
        data={
            "sub": user.username,
            "realm": user.realm.value,
            "role": user.role.authority,
        }
    )
    return TokenInfo(token=token, expiration=expiration)


def token_principal(token: str) -> TokenPrincipal:
    """
    Verify ``token`` and return the identity claims it carries.

    Raises:
        InvalidCredentialsError: Bad signature, expired, or malformed claims.
    """
    try:
        payload = decode_access_token(token)
        username = payload.get("sub")
        realm = Realm(payload["realm"]) if payload.get("realm") else None
    except (JWTError, ValueError):
        raise InvalidCredentialsError()
    if not username:
        raise InvalidCredentialsError()
    role = payload.get("role")
    return TokenPrincipal(
        username=username,
        realm=realm,
        authorities=(role,) if role else (),
    )


def _authenticate_stored(
    store: UserStore, username: str, password: str, realm: Realm
) -> UserRecord:
    user = store.find_by_username_and_realm(username, realm)
    if user.credential is None or not user.credential.verify(password):
        raise InvalidCredentialsError()
    return user


def _sync_directory_snapshot(store: UserStore, user: UserRecord) -> UserRecord:
    """
    Store ``user`` (built from the directory's claims) as the LDAP snapshot,
    or copy its role and activity onto the existing snapshot.
    """
    try:
        snapshot = store.find_by_username_and_realm(user.username, Realm.LDAP)
    except UserNotFoundError:
        store.upsert(user)
        logger.info("Stored directory snapshot for %s@%s", user.username, user.realm.value)
        return user
    if snapshot.role != user.role or snapshot.active != user.active:
        snapshot.role = user.role
        snapshot.active = user.active
        store.upsert(snapshot)
        logger.info(
            "Updated directory snapshot for %s@%s (role %s, active %s)",
            snapshot.username, snapshot.realm.value, snapshot.role.value, snapshot.active,
        )
    return snapshot


def _authenticate_directory(
    store: UserStore,
    extractor: IdentityExtractor,
    directory: DirectoryAuthenticator | None,
    username: str,
    password: str,
) -> UserRecord:
    """
    Log in through the directory.

    Only the LDAP realm is consulted: a directory principal whose role
    cannot be derived falls back to its own snapshot, never to a
    same-named user of another realm.

    Raises:
        InvalidCredentialsError: No directory, rejected password, or the
            principal resolves to something other than an LDAP user.
        UserNotFoundError: Role unknown and no snapshot to take it from.
    """
    if directory is None:
        raise InvalidCredentialsError()
    principal = directory.authenticate(username, password)
    resolver = IdentityExtractor(store, extractor.factories, cross_realm_fallback=False)
    user = resolver.extract_with_refresh(principal)
    if user.realm is not Realm.LDAP:
        raise InvalidCredentialsError()
    if user.id is None:
        # Built from the directory's claims, which are authoritative
        return _sync_directory_snapshot(store, user)
    if user.active != principal.enabled:
        # Role came from the snapshot; activity still comes from the directory
        user.active = principal.enabled
        store.upsert(user)
    return user


def login(
    store: UserStore,
    extractor: IdentityExtractor,
    username: str,
    password: str,
    realm: Realm | None = None,
    directory: DirectoryAuthenticator | None = None,
) -> AuthenticationInfo:
    """
    Authenticate a user and return their data plus a JWT.

    Args:
        store: User storage.
        extractor: Identity extractor bound to ``store``.
        username: Login name (case-sensitive).
        password: Plaintext password to verify.
        realm: Realm to authenticate in; None tries every realm.
        directory: Directory authenticator for LDAP logins, if configured.

    Raises:
        InvalidCredentialsError: No realm accepted the credentials, or the
            account may not authenticate.
    """
    for candidate in _login_order(realm):
        try:
            if candidate is Realm.LDAP:
                user = _authenticate_directory(store, extractor, directory, username, password)
            else:
                user = _authenticate_stored(store, username, password, candidate)
        except (InvalidCredentialsError, UserNotFoundError, MissingDataError):
            continue

        if not user.can_authenticate():
            logger.info("Rejected login for disabled or expired user %s@%s", username, user.realm.value)
            raise InvalidCredentialsError()

        logger.info("User %s@%s logged in", user.username, user.realm.value)
        return AuthenticationInfo(user=user.to_dto(), token=issue_token(user))

    raise InvalidCredentialsError()


def _describe(user: UserRecord, token: str) -> AuthenticationInfo:
    expiration = decode_access_token(token).get("exp")
    return AuthenticationInfo(
        user=user.to_dto(),
        token=TokenInfo(token=token, expiration=expiration),
    )


def check(user: UserRecord, token: str) -> AuthenticationInfo:
    """Authentication status for an already resolved bearer token."""
    return _describe(user, token)


def verify_token(extractor: IdentityExtractor, token: str) -> AuthenticationInfo:
    """
    Report what a token says about its owner, without a storage read.

    Raises:
        InvalidCredentialsError: The token is invalid or expired.
        MissingDataError / AmbiguousRoleError: The claims are incomplete.
    """
    principal = token_principal(token)
    user = extractor.extract_from_authentication_context(
        principal, None, principal.authorities
    )
    return _describe(user, token)
