"""
Security utilities: password hashing and JWT tokens.

This module centralizes the cryptographic operations so they're easy to
audit and update. Two concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext gives high-level Argon2 hashing and lets the
     identity layer recognise hashes produced by other schemes

2. JWT TOKENS (JSON Web Tokens)
   - After login, the user receives a signed JWT naming the user, the
     realm that owns the user, and the user's role authority
   - The token is signed with SECRET_KEY using HS256 (HMAC-SHA256)
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30 min)
"""

from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from userhub.config import settings


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

# "argon2" is the active scheme. deprecated="auto" means hashes from any
# scheme added later are still verified but new hashes use argon2.
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Algorithm tag stored next to every hash this module produces
PASSWORD_ALGORITHM = "argon2"


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Args:
        plain_password: The user's raw password input.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored hash.

    Args:
        plain_password: The password the user just typed.
        hashed_password: The stored hash.

    Returns:
        True if the password matches, False otherwise.
    """
    return pwd_context.verify(plain_password, hashed_password)


def identify_hash(value: str) -> str | None:
    """Return the passlib scheme name that produced ``value``, or None."""
    return pwd_context.identify(value)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(
    data: dict, expires_delta: timedelta | None = None
) -> tuple[str, datetime]:
    """
    Create a signed JWT access token.

    The token payload contains the given claims plus:
      - "exp": Expiration timestamp, after which the token is rejected

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        Tuple of (encoded JWT string, expiration datetime).
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expire


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.

    Returns:
        The decoded payload dictionary (contains "sub", "realm", "role", "exp").
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
