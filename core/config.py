"""
core/config.py -- Forum settings, read once from the environment and .env.

Every module gets configuration through get_settings(); nothing else reads
os.environ. Field names map to upper-case env vars (upload_dir -> UPLOAD_DIR)
and pydantic coerces the values ("false" -> False, "8" -> 8).

get_settings() is wrapped in lru_cache, so the first call builds Settings and
later calls share that instance. Tests set env vars before the first import.

Secret key rules, checked once after all fields load:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key makes tokens forgeable.

  [M7] Without DEBUG=true a missing SECRET_KEY stops startup. A random
       per-process key would log every user out on each restart.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or forum/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("fightclub.config")

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Forum configuration. Every field has a default except the production
    SECRET_KEY, which the validator below insists on."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    environment: str = "development"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = f"sqlite:///{_PROJECT_ROOT / 'fightclub.db'}"
    # Seconds a SQLite connection waits on a locked database before the
    # statement fails with OperationalError.
    db_busy_timeout: float = 10.0
    denylist_path: str = str(_PROJECT_ROOT / "fightclub_denylist.db")
    upload_dir: str = str(_PROJECT_ROOT / "uploads")
    max_upload_bytes: int = 10 * 1024 * 1024

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl_days: int = 7
    remember_token_ttl_days: int = 30
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    self_registration_enabled: bool = True

    # ------------------------------------------------------------------
    # Listing and statistics
    # ------------------------------------------------------------------

    default_page_size: int = 30
    max_page_size: int = 100
    online_window_minutes: int = 5

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    frontend_url: str = "http://localhost:8080"
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    api_rate_limit: str = "100/15minutes"
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    maintenance_interval_seconds: int = 6 * 60 * 60

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not verify across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is not set. Export a key of 32+ characters, "
                    "or set DEBUG=true for a throwaway development key."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Shared Settings instance. Call get_settings.cache_clear() after changing env vars."""
    return Settings()
