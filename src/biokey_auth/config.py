"""Configuration module for BioKey Auth.

Settings are loaded with pydantic-settings from the environment or from a
config file discovered in this order:

1. the path in the `BIOKEY_AUTH_CONFIG_PATH` environment variable,
2. `.biokey` in the project root,
3. `.env` in the project root,
4. environment variables only.

Secrets (JWT key, database URL) are never hardcoded. When they are provided
they are checked by validators at startup; an unset secret is reported by the
component that needs it (see `TokenIssuer`).

How to extend/maintain:
-----------------------
- Add new config fields to the `Settings` class, and document them.
- If you change the config discovery logic, update this docstring.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
BIOKEY_FILENAME: str = ".biokey"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "BIOKEY_AUTH_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parents[2]


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """Determine the config file path to use, in order of precedence:
    1. Environment variable BIOKEY_AUTH_CONFIG_PATH
    2. .biokey in project root
    3. .env in project root
    4. None (fallback to environment variables only)

    Returns:
        Optional[str]: Path to config file, or None if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    biokey_path: Path = PROJECT_ROOT / BIOKEY_FILENAME
    if biokey_path.exists():
        return str(biokey_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """Application settings with environment variable support.
    All fields are loaded from the environment or the .biokey/.env file.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DEBUG: bool = True

    # JWT configuration
    SECRET_KEY: SecretStr = SecretStr("")  # Must be set in .biokey or environment
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # MongoDB configuration
    MONGODB_URL: str = ""  # Must be set in .biokey or environment
    MONGODB_DATABASE: str = "biokey_auth"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    # Collections
    USERS_COLLECTION: str = "users"
    SESSIONS_COLLECTION: str = "auth_sessions"

    # Authentication policy
    CHALLENGE_EXPIRY_MINUTES: int = 5
    PASSWORD_MIN_LENGTH: int = 8
    BCRYPT_ROUNDS: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    APP_NAME: str = "BioKey_Auth"
    ENV: str = "dev"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    @field_validator("SECRET_KEY", mode="before")
    @classmethod
    def no_hardcoded_secrets(cls, v, info):
        if not v or "change" in str(v).lower() or "0000" in str(v) or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .biokey and not hardcoded!")
        return v

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v, info):
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .biokey and not empty!")
        return v

    @field_validator("CHALLENGE_EXPIRY_MINUTES", "PASSWORD_MIN_LENGTH", "BCRYPT_ROUNDS", mode="before")
    @classmethod
    def validate_positive_integers(cls, v, info):
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return not self.DEBUG


# Global settings instance
settings: Settings = Settings()
