"""
FastAPI dependencies for storage, identity resolution and authorization.

Dependency chain:

  get_db (Session)
    └── get_user_store (RealmRoutingUserStore: SQL + memory accounts)
          └── get_extractor (IdentityExtractor)
                └── get_current_user (bearer JWT -> UserRecord)
                      └── require_admin (UserRecord with role ADMIN)

The factory registry, the memory accounts and the optional directory
authenticator are built once at startup and kept on ``app.state``; the
dependencies only hand them out.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from userhub.config import settings
from userhub.database import get_db
from userhub.exceptions import (
    IdentityNotFoundError,
    InvalidCredentialsError,
    MissingDataError,
    UserNotFoundError,
)
from userhub.identity.extractor import IdentityExtractor
from userhub.identity.factories import FactoryRegistry
from userhub.identity.principals import DirectoryAuthenticator
from userhub.identity.records import UserRecord
from userhub.identity.roles import UserRole
from userhub.services.auth_service import token_principal
from userhub.stores.base import UserStore
from userhub.stores.routing import RealmRoutingUserStore
from userhub.stores.sql import SqlUserStore


# Where clients send "Authorization: Bearer <token>" credentials.
# tokenUrl points at the login endpoint for the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_factories(request: Request) -> FactoryRegistry:
    return request.app.state.factories


def get_directory_authenticator(request: Request) -> DirectoryAuthenticator | None:
    return getattr(request.app.state, "directory_authenticator", None)


def get_user_store(
    request: Request,
    db: Session = Depends(get_db),
    factories: FactoryRegistry = Depends(get_factories),
) -> UserStore:
    return RealmRoutingUserStore(
        SqlUserStore(db, factories),
        request.app.state.memory_accounts,
    )


def get_extractor(
    store: UserStore = Depends(get_user_store),
    factories: FactoryRegistry = Depends(get_factories),
) -> IdentityExtractor:
    return IdentityExtractor(
        store,
        factories,
        cross_realm_fallback=settings.ALLOW_CROSS_REALM_FALLBACK,
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    extractor: IdentityExtractor = Depends(get_extractor),
) -> UserRecord:
    """
    Resolve the bearer token to a fresh UserRecord.

    The token only names the user; the record is read from storage on every
    request so that deactivation, expiry and role changes take effect
    immediately instead of when the token runs out.

    Raises:
        HTTPException 401: Invalid token, unknown user, or an account that
            may no longer authenticate.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user = extractor.extract_polymorphic(token_principal(token))
    except (InvalidCredentialsError, IdentityNotFoundError, MissingDataError, UserNotFoundError):
        raise credentials_exception

    if user is None or not user.can_authenticate():
        raise credentials_exception

    return user


def require_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
