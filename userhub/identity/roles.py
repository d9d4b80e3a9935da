"""
Roles and realms: the two closed enumerations every user record carries.

UserRole
  The capability level of a user. Each role maps to an authority string
  ("ROLE_ADMIN") which is what authentication mechanisms and tokens carry.

Realm
  Where a user's authoritative record lives. The realm selects the user
  factory and the store partition that apply to the user.

Both inherit from str so they serialize naturally to JSON and store as
plain strings in the database.
"""

import enum


AUTHORITY_PREFIX = "ROLE_"


class UserRole(str, enum.Enum):
    """Capability level of a user."""
    DEFAULT = "DEFAULT"   # Regular user, may only manage their own account
    ADMIN = "ADMIN"       # Full user management
    SERVICE = "SERVICE"   # Machine principal

    @property
    def authority(self) -> str:
        """The authority string for this role, e.g. ``"ROLE_ADMIN"``."""
        return AUTHORITY_PREFIX + self.value

    @classmethod
    def from_authority(cls, authority: str) -> "UserRole":
        """
        Map an authority string back to its role.

        Raises:
            ValueError: If the string names no known role. Unknown
                authorities are never silently mapped to DEFAULT.
        """
        if isinstance(authority, str) and authority.startswith(AUTHORITY_PREFIX):
            name = authority[len(AUTHORITY_PREFIX):]
            if name in cls.__members__:
                return cls[name]
        raise ValueError(f"Unknown authority: {authority!r}")


class Realm(str, enum.Enum):
    """Identity source that owns a user record."""
    LOCAL = "LOCAL"       # Relational user table managed by this service
    LDAP = "LDAP"         # Directory; secrets are managed externally
    MEMORY = "MEMORY"     # Configured in-process accounts, never persisted
    UNKNOWN = "UNKNOWN"   # Best-effort placeholder for unrecognised principals


# Realm used when a caller does not specify one
DEFAULT_REALM = Realm.LOCAL
