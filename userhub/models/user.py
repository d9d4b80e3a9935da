"""
User table: persisted form of LOCAL (including SERVICE) and LDAP users.

The identity layer never sees these rows. SqlUserStore converts between a
UserRow and the realm-specific UserRecord variant.

Uniqueness:
  A username is unique per realm, not globally. The same name may exist
  once as a LOCAL user and once as an LDAP snapshot. The composite
  UNIQUE constraint enforces this at the database level.

Credentials:
  password_hash/password_algorithm are NULL for directory users, whose
  secret is managed by the directory.
"""

from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from userhub.database import Base
from userhub.identity.roles import Realm, UserRole


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", "realm", name="uq_users_username_realm"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Case-sensitive, unique per realm (see module docstring)
    username: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    realm: Mapped[Realm] = mapped_column(Enum(Realm), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.DEFAULT,
        nullable=False,
    )

    # Soft-disable: inactive users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_algorithm: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Accounts past this date can no longer authenticate
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # One-to-one; deleting a user deletes their settings
    profile: Mapped["ProfileSettingsRow"] = relationship(
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
