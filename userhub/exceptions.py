"""
Custom exception classes and FastAPI exception handlers.

The identity core and the services raise these domain errors without
importing HTTP concepts. The handler layer at the bottom of this module
translates them into JSON responses.

Exception hierarchy:
    UserHubError (base)
    ├── IdentityNotFoundError     principal carries no resolvable username
    ├── MissingDataError          principal/DTO lacks fields needed to build a user
    │   └── AmbiguousRoleError    zero, several or unknown authority claims
    ├── UnsupportedRealmError     no factory registered for a realm
    ├── InvalidIdentityError      factory input violates identity rules
    ├── UserNotFoundError         storage lookup found nothing
    ├── StorageUnavailableError   backing store failed (never retried here)
    ├── UniquenessViolationError  (username, realm) already taken
    ├── NotPersistableError       record variant cannot be written to a store
    ├── InvalidCredentialsError   login failed
    └── AccessDeniedError         caller may not touch the target resource
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class UserHubError(Exception):
    """Base exception for all userhub domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Identity construction errors
# ---------------------------------------------------------------------------

class IdentityNotFoundError(UserHubError):
    """Raised when a principal is absent or carries no usable username."""

    def __init__(self, detail: str = "No identity could be resolved from the principal"):
        super().__init__(detail)


class MissingDataError(UserHubError):
    """
    Raised when a recognised principal or transfer object lacks the fields
    required to build a user (for example a DTO without a realm).
    """

    def __init__(self, detail: str = "Not enough information to resolve the user"):
        super().__init__(detail)


class AmbiguousRoleError(MissingDataError):
    """
    Raised when a role cannot be derived from a principal's authorities.

    Only single-role principals are supported: zero authorities, several
    authorities, or an authority string that names no known role all end
    up here.

    Attributes:
        authorities: The authority claims that were inspected.
    """

    def __init__(self, authorities, detail: str | None = None):
        self.authorities = tuple(authorities or ())
        super().__init__(
            detail
            or f"Cannot derive a single role from authorities {list(self.authorities)}"
        )


class UnsupportedRealmError(UserHubError):
    """Raised when no user factory is registered for the requested realm."""

    def __init__(self, realm):
        self.realm = realm
        super().__init__(f"Realm {realm} is not supported")


class InvalidIdentityError(UserHubError):
    """Raised when a factory receives identity data it cannot accept."""

    def __init__(self, detail: str = "Username must not be empty"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class UserNotFoundError(UserHubError):
    """Raised when a storage lookup finds no matching user."""

    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)


class StorageUnavailableError(UserHubError):
    """Raised when the backing store is unreachable or fails."""

    def __init__(self, detail: str = "User storage is unavailable"):
        super().__init__(detail)


class UniquenessViolationError(UserHubError):
    """Raised when a save would create a second user with the same (username, realm)."""

    def __init__(self, username: str, realm):
        self.username = username
        self.realm = realm
        super().__init__(f"User {username}@{realm} already exists")


class NotPersistableError(UserHubError):
    """Raised when a transient user variant (memory, unknown) is written to a store."""

    def __init__(self, username: str, realm):
        self.username = username
        self.realm = realm
        super().__init__(f"User {username}@{realm} cannot be persisted")


# ---------------------------------------------------------------------------
# Request-level errors
# ---------------------------------------------------------------------------

class InvalidCredentialsError(UserHubError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid username or password")


class AccessDeniedError(UserHubError):
    """Raised when a user attempts to read or modify a user they don't own."""

    def __init__(self, detail: str = "You are not allowed to access this user"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

# Exception class -> (HTTP status, error_type). Starlette resolves handlers
# along the MRO, so subclasses listed here win over their parents.
_ERROR_RESPONSES: dict[type[UserHubError], tuple[int, str]] = {
    IdentityNotFoundError: (401, "identity_not_found"),
    InvalidCredentialsError: (401, "invalid_credentials"),
    MissingDataError: (400, "missing_data"),
    AmbiguousRoleError: (400, "ambiguous_role"),
    UnsupportedRealmError: (400, "unsupported_realm"),
    NotPersistableError: (400, "not_persistable"),
    InvalidIdentityError: (422, "invalid_identity"),
    AccessDeniedError: (403, "access_denied"),
    UserNotFoundError: (404, "user_not_found"),
    UniquenessViolationError: (409, "duplicate_user"),
    StorageUnavailableError: (503, "storage_unavailable"),
}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and the
    consistent JSON response format: {"detail": ..., "error_type": ...}

    This is called once during app startup in main.py.
    """

    def make_handler(status_code: int, error_type: str):
        async def handler(request: Request, exc: UserHubError) -> JSONResponse:
            return JSONResponse(
                status_code=status_code,
                content={"detail": exc.detail, "error_type": error_type},
            )
        return handler

    for exc_class, (status_code, error_type) in _ERROR_RESPONSES.items():
        app.add_exception_handler(exc_class, make_handler(status_code, error_type))

    @app.exception_handler(UserHubError)
    async def userhub_error_handler(request: Request, exc: UserHubError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": exc.detail, "error_type": "user_error"},
        )
