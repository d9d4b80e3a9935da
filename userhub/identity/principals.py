"""
Principal shapes and their classification.

A "principal" is whatever an authentication mechanism hands over to say who
is calling. The identity layer accepts a closed set of shapes:

  CANONICAL     already a UserRecord
  DIRECTORY     DirectoryPrincipal, produced by a directory (LDAP) login
  MEMORY        MemoryPrincipal, a username/password/authorities triple as
                produced by in-process authentication and tests
  TRANSFER      an object naming (username, realm) that must be looked up:
                UserDto bodies and TokenPrincipal from a decoded JWT
  GENERIC       any other object exposing ``username`` and ``authorities``
  UNRECOGNIZED  everything else (including None)

``classify_principal`` is the only place that inspects types. Callers match
on the resulting ``PrincipalKind``.
"""

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol

from userhub.identity.records import UserRecord
from userhub.identity.roles import Realm
from userhub.schemas.user import UserDto


@dataclass(frozen=True)
class DirectoryPrincipal:
    """Principal returned by a directory login. Carries no secret."""
    username: str
    authorities: Sequence[str] = ()
    enabled: bool = True
    distinguished_name: str | None = None


@dataclass(frozen=True)
class MemoryPrincipal:
    """Username/password pair with authorities, held only in memory."""
    username: str
    password: str | None
    authorities: Sequence[str] = ()
    enabled: bool = True

    def __repr__(self) -> str:
        return f"MemoryPrincipal(username={self.username!r}, authorities={list(self.authorities)})"


@dataclass(frozen=True)
class TokenPrincipal:
    """Identity claims read from a verified access token."""
    username: str
    realm: Realm | None
    authorities: Sequence[str] = ()
    enabled: bool = True


class DirectoryAuthenticator(Protocol):
    """Verifies a username/password pair against a directory."""

    def authenticate(self, username: str, password: str) -> DirectoryPrincipal:
        """Return the directory principal or raise InvalidCredentialsError."""
        ...


class PrincipalKind(enum.Enum):
    CANONICAL = "canonical"
    DIRECTORY = "directory"
    MEMORY = "memory"
    TRANSFER = "transfer"
    GENERIC = "generic"
    UNRECOGNIZED = "unrecognized"


class ClassifiedPrincipal(NamedTuple):
    kind: PrincipalKind
    principal: Any


def classify_principal(principal: Any) -> ClassifiedPrincipal:
    """Tag ``principal`` with the shape it has."""
    if isinstance(principal, UserRecord):
        kind = PrincipalKind.CANONICAL
    elif isinstance(principal, DirectoryPrincipal):
        kind = PrincipalKind.DIRECTORY
    elif isinstance(principal, MemoryPrincipal):
        kind = PrincipalKind.MEMORY
    elif isinstance(principal, (UserDto, TokenPrincipal)):
        kind = PrincipalKind.TRANSFER
    elif principal is not None and hasattr(principal, "username") and hasattr(principal, "authorities"):
        kind = PrincipalKind.GENERIC
    else:
        kind = PrincipalKind.UNRECOGNIZED
    return ClassifiedPrincipal(kind, principal)
