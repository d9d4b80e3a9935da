"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored, so secrets never live in source code.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from userhub.config import settings
    print(settings.SECRET_KEY)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the user service.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "userhub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for development; any synchronous SQLAlchemy URL works here
    DATABASE_URL: str = "sqlite:///./userhub.db"

    # --- Authentication ---
    # REQUIRED: No default, forces the operator to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Identity resolution ---
    # Realm used when a caller does not name one (must be a Realm value)
    DEFAULT_REALM: str = "LOCAL"
    # When a realm-scoped lookup fails, fall back to the first user with the
    # same name in any realm. Usernames colliding across realms make this
    # resolution ambiguous, so deployments can switch it off.
    ALLOW_CROSS_REALM_FALLBACK: bool = True

    # In-memory accounts, one "username:password:ROLE" entry each.
    # Example: MEMORY_USERS='["gateway:s3cret:SERVICE"]'
    MEMORY_USERS: list[str] = []

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
