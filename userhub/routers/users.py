"""
Users router: user management.

Endpoints:
  PUT    /users                    [Admin] Create a local user
  PATCH  /users                    Edit a user (self, or anyone as admin)
  GET    /users                    [Admin] List users of all realms
  GET    /users/{realm}            [Admin] List users of one realm
  GET    /users/{realm}/{username} Read a user (self, or anyone as admin)
  DELETE /users/{realm}/{username} [Admin] Delete a user
"""

from fastapi import APIRouter, Depends, Response, status

from userhub.dependencies import (
    get_current_user,
    get_extractor,
    get_factories,
    get_user_store,
    require_admin,
)
from userhub.identity.extractor import IdentityExtractor
from userhub.identity.factories import FactoryRegistry
from userhub.identity.records import UserRecord
from userhub.identity.roles import Realm
from userhub.schemas.user import NewUserDto, UserDto
from userhub.services import user_service
from userhub.stores.base import UserStore

router = APIRouter()


@router.put(
    "",
    response_model=UserDto,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Create a local user",
)
def add_local_user(
    request: NewUserDto,
    admin: UserRecord = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
    factories: FactoryRegistry = Depends(get_factories),
):
    """
    Create a user in the LOCAL realm.

    - **username**: 1-50 characters, unique within the realm
    - **password**: Minimum 8 characters
    - **role**: DEFAULT when omitted
    """
    user = user_service.add_local_user(
        store, factories, request.username, request.password, request.role
    )
    return user.to_dto()


@router.patch(
    "",
    response_model=UserDto,
    summary="Edit a user",
)
def edit_user(
    request: UserDto,
    user: UserRecord = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
    extractor: IdentityExtractor = Depends(get_extractor),
):
    """
    Edit the user identified by **username** and **realm**.

    Admins may change role, activity, expiration, settings and password.
    Other users may change their own settings, and their own password when
    they supply the current one.
    """
    return user_service.edit_user(store, extractor, user, request).to_dto()


@router.get(
    "",
    response_model=list[UserDto],
    summary="[Admin] List all users",
)
def list_all_users(
    admin: UserRecord = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
):
    """List users from every realm."""
    return [u.to_dto() for u in user_service.list_users(store)]


@router.get(
    "/{realm}",
    response_model=list[UserDto],
    summary="[Admin] List the users of one realm",
)
def list_realm_users(
    realm: Realm,
    admin: UserRecord = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
):
    return [u.to_dto() for u in user_service.list_users(store, realm)]


@router.get(
    "/{realm}/{username}",
    response_model=UserDto,
    summary="Get a single user",
)
def get_user(
    realm: Realm,
    username: str,
    user: UserRecord = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Users may read themselves; admins may read anyone."""
    return user_service.get_user(store, user, realm, username).to_dto()


@router.delete(
    "/{realm}/{username}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user",
)
def delete_user(
    realm: Realm,
    username: str,
    admin: UserRecord = Depends(require_admin),
    store: UserStore = Depends(get_user_store),
):
    user_service.delete_user(store, realm, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
