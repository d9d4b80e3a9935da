"""
Profile settings table: per-user preferences, one row per user.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from userhub.database import Base


class ProfileSettingsRow(Base):
    __tablename__ = "profile_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # UNIQUE enforces the one-to-one relationship
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    email_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_receive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Free-form client data (JSON or similar), opaque to the service
    payload: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["UserRow"] = relationship(back_populates="profile")
