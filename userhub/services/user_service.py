"""
User service: business logic for managing user accounts.

Authorization model:
  - ADMIN: may create local users, list and read any user, edit any field
    of any user (role, activity, expiration, settings, password without
    the current one) and delete users.
  - Everyone else: may read and edit only their own user, and only the
    profile settings and the password (current password required).

The router layer only enforces "admin-only" endpoints; ownership rules for
shared endpoints (read one, edit) live here.
"""

import logging

from userhub.exceptions import (
    AccessDeniedError,
    InvalidCredentialsError,
    UniquenessViolationError,
)
from userhub.identity.credential import Credential
from userhub.identity.extractor import IdentityExtractor
from userhub.identity.factories import FactoryRegistry
from userhub.identity.records import ProfileSettings, UserRecord
from userhub.identity.roles import Realm, UserRole
from userhub.schemas.user import UserDto
from userhub.stores.base import UserStore


logger = logging.getLogger(__name__)


def _is_self(actor: UserRecord, username: str | None, realm: Realm | None) -> bool:
    return actor.username == username and actor.realm == realm


def add_local_user(
    store: UserStore,
    factories: FactoryRegistry,
    username: str,
    password: str,
    role: UserRole = UserRole.DEFAULT,
) -> UserRecord:
    """
    Create and store a new LOCAL user.

    Raises:
        UniquenessViolationError: A LOCAL user with this name exists.
        InvalidIdentityError: The username is blank.
    """
    user = factories.get_factory(Realm.LOCAL).create(
        username, Credential.hash(password), role, True
    )
    if store.exists(user):
        logger.info("No user added: %s@%s already exists", username, Realm.LOCAL.value)
        raise UniquenessViolationError(username, Realm.LOCAL.value)
    store.upsert(user)
    logger.info("Created new user: %s@%s", user.username, user.realm.value)
    return user


def _apply_profile(target: UserRecord, dto: UserDto) -> None:
    if dto.settings is not None:
        target.profile = ProfileSettings(
            email_address=dto.settings.email_address,
            email_receive=dto.settings.email_receive,
            payload=dto.settings.payload,
        )


def _apply_self_edit(target: UserRecord, dto: UserDto) -> None:
    _apply_profile(target, dto)
    if dto.password is not None:
        current = target.credential
        if current is None or not current.verify(dto.password.current_password or ""):
            raise InvalidCredentialsError()
        target.change_password(dto.password.new_password)


def _apply_admin_edit(target: UserRecord, dto: UserDto) -> None:
    _apply_profile(target, dto)
    if dto.role is not None:
        target.role = dto.role
    if dto.is_active is not None:
        target.active = dto.is_active
    if "expiration_date" in dto.model_fields_set:
        target.expiration_date = dto.expiration_date
    if dto.password is not None:
        target.change_password(dto.password.new_password)


def edit_user(
    store: UserStore,
    extractor: IdentityExtractor,
    actor: UserRecord,
    dto: UserDto,
) -> UserRecord:
    """
    Apply ``dto`` to the user it identifies and store the result.

    Args:
        store: User storage.
        extractor: Resolves the edit target from the DTO.
        actor: The authenticated user performing the edit.
        dto: Identifies the target by (username, realm) and carries the
             new values. Fields left out are not changed.

    Raises:
        AccessDeniedError: A non-admin edits someone else.
        MissingDataError: The DTO lacks username or realm.
        UserNotFoundError: The target does not exist.
        InvalidCredentialsError: Self password change with a wrong current password.
        NotPersistableError: The target lives in the MEMORY realm.
    """
    if actor.role == UserRole.ADMIN:
        target = extractor.extract_from_transfer_object(dto)
        _apply_admin_edit(target, dto)
    elif _is_self(actor, dto.username, dto.realm):
        target = extractor.extract_from_transfer_object(dto)
        _apply_self_edit(target, dto)
    else:
        logger.info(
            "User %s@%s tried to modify another user without admin privileges",
            actor.username, actor.realm.value,
        )
        logger.debug("Edit target was %s@%s", dto.username, dto.realm)
        raise AccessDeniedError("Not allowed to modify other users' data")
    store.upsert(target)
    return target


def list_users(store: UserStore, realm: Realm | None = None) -> list[UserRecord]:
    """All users, or all users of one realm."""
    if realm is None:
        return store.find_all()
    return store.find_all_in_realm(realm)


def get_user(store: UserStore, actor: UserRecord, realm: Realm, username: str) -> UserRecord:
    """
    Read one user. Non-admins may only read themselves.

    Raises:
        AccessDeniedError: A non-admin reads someone else.
        UserNotFoundError: No such user.
    """
    if actor.role != UserRole.ADMIN and not _is_self(actor, username, realm):
        raise AccessDeniedError()
    return store.find_by_username_and_realm(username, realm)


def delete_user(store: UserStore, realm: Realm, username: str) -> None:
    """
    Remove a user.

    Raises:
        UserNotFoundError: No such user.
        NotPersistableError: Memory accounts cannot be deleted.
    """
    store.delete_by_username_and_realm(username, realm)
    logger.info("Deleted user %s@%s", username, realm.value)
