"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
when create_all runs at startup.
"""

from userhub.models.user import UserRow  # noqa: F401
from userhub.models.profile import ProfileSettingsRow  # noqa: F401
