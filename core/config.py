"""
core/config.py -- RentAdmin settings, read once from the environment and .env.

Every environment read goes through get_settings(); nothing else touches
os.environ. Field names map to upper-cased variables (api_url -> API_URL).

SECRET_KEY signs the Starlette session cookie that carries flash messages.
With DEBUG=true a missing key is generated at startup (flashes are lost on
restart); otherwise startup fails. The rental API bearer token is issued
upstream and never signed here.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or client/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import PAGE_SIZES

logger = logging.getLogger("rentadmin.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "*.localhost", "testserver"])

    # ------------------------------------------------------------------
    # Upstream rental API
    # ------------------------------------------------------------------

    api_url: str = "http://localhost:7000/api"
    request_timeout: float = 15.0

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    # Cookie lifetime used when the upstream token carries no exp claim.
    token_expire_seconds: int = 8 * 3600
    login_rate_limit: str = "10/minute"
    # Bearer token for main.py when --email/--password are not given.
    rentadmin_token: str = ""

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    business_name: str = "Rent Management System"
    default_page_size: int = 25

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("default_page_size")
    @classmethod
    def known_page_size(cls, value: int) -> int:
        if value not in PAGE_SIZES:
            raise ValueError(f"DEFAULT_PAGE_SIZE must be one of {PAGE_SIZES}.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Flash messages will not survive a restart -- fine for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
