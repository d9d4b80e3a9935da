"""
Pydantic schemas for the authentication endpoints.

Pydantic validates incoming data automatically: if a required field is
missing or has the wrong type, FastAPI returns a 422 error before our code
runs.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from userhub.identity.roles import Realm
from userhub.schemas.user import UserDto


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)
    # Omit to try the realms in the configured order
    realm: Realm | None = None


class TokenInfo(BaseModel):
    """A signed access token and when it stops being valid."""
    token: str
    token_type: str = "bearer"
    expiration: datetime | None = None


class AuthenticationInfo(BaseModel):
    """Response of login, check and verify: who the token belongs to."""
    user: UserDto
    token: TokenInfo
