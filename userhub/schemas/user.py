"""
Pydantic schemas for user data.

UserDto is both the public representation of a user and the transfer
object clients send to edit one. A user is identified by the pair
(username, realm); every other field is editable data.

Credentials are NEVER part of a response schema. Password changes travel
in the separate ChangePasswordDto and are write-only.
"""

from datetime import date

from pydantic import BaseModel, EmailStr, Field

from userhub.identity.roles import Realm, UserRole


class ProfileSettingsDto(BaseModel):
    """User-editable preferences."""
    email_address: EmailStr | None = None
    email_receive: bool = False
    payload: str | None = None

    model_config = {"from_attributes": True}


class ChangePasswordDto(BaseModel):
    """
    Password change request embedded in a UserDto.

    current_password is required when users change their own password;
    administrators may leave it out.
    """
    current_password: str | None = None
    new_password: str = Field(min_length=8)


class UserDto(BaseModel):
    """Public representation / edit request for a user."""
    username: str | None = Field(default=None, max_length=50)
    realm: Realm | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    expiration_date: date | None = None
    settings: ProfileSettingsDto | None = None
    # Write-only: never populated in responses
    password: ChangePasswordDto | None = Field(default=None, exclude=True)


class NewUserDto(BaseModel):
    """Request body for PUT /users (admin creates a local user)."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=8)
    role: UserRole = UserRole.DEFAULT
