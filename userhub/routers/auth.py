"""
Authentication router: login and token inspection.

Endpoints:
  POST /auth/login   Authenticate and get a token
  GET  /auth/check   Who does my bearer token belong to (fresh from storage)
  GET  /auth/verify  What does a given token claim (no storage read)

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are compared against hashes and never logged.
  - Tokens appear only in response bodies, which are not logged.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from userhub.database import get_db
from userhub.dependencies import (
    get_current_user,
    get_directory_authenticator,
    get_extractor,
    get_user_store,
    oauth2_scheme,
)
from userhub.exceptions import InvalidCredentialsError
from userhub.identity.extractor import IdentityExtractor
from userhub.identity.principals import DirectoryAuthenticator
from userhub.identity.records import UserRecord
from userhub.schemas.auth import AuthenticationInfo, LoginRequest
from userhub.services import auth_service
from userhub.stores.base import UserStore

router = APIRouter()


@router.post(
    "/login",
    response_model=AuthenticationInfo,
    summary="Authenticate and get a token",
)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    store: UserStore = Depends(get_user_store),
    extractor: IdentityExtractor = Depends(get_extractor),
    directory: DirectoryAuthenticator | None = Depends(get_directory_authenticator),
):
    """
    Authenticate with username and password.

    Returns the user and a JWT bearer token that must be included in the
    Authorization header of subsequent requests:

        Authorization: Bearer <token>

    Without a realm the memory accounts, the default realm and the
    directory are tried in that order.
    """
    try:
        return auth_service.login(
            store=store,
            extractor=extractor,
            username=request.username,
            password=request.password,
            realm=request.realm,
            directory=directory,
        )
    except InvalidCredentialsError:
        # A directory login may have disabled the snapshot before failing;
        # keep that change instead of letting get_db roll it back
        db.commit()
        raise


@router.get(
    "/check",
    response_model=AuthenticationInfo,
    summary="Check the caller's authentication state",
)
def check(
    token: str = Depends(oauth2_scheme),
    user: UserRecord = Depends(get_current_user),
):
    """Return the stored data of the user the bearer token belongs to."""
    return auth_service.check(user, token)


@router.get(
    "/verify",
    response_model=AuthenticationInfo,
    summary="Verify a token",
)
def verify(
    token: str = Query(..., min_length=1),
    extractor: IdentityExtractor = Depends(get_extractor),
):
    """
    Check a token's signature and expiry and return the identity it
    claims. The user is rebuilt from the claims alone, so it reflects the
    state at issue time.
    """
    return auth_service.verify_token(extractor, token)
