"""
Settings for the marketplace web service.

Read from the environment (and a local .env file) by pydantic-settings and
checked once when the app module is imported, so a bad value stops the
service before it accepts traffic.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from src.common.repositories import GatewayConfig

load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "staging", "production")
LOG_FORMATS = ("simple", "json")
WEAK_SECRETS = {"secret", "password", "changeme", "change-me", "session-secret"}


class MarketplaceSettings(BaseSettings):
    """
    Environment-driven settings. Field names map to upper-case variables
    (BACKEND_URL -> backend_url).
    """

    environment: str = Field(default="development", description="development, staging or production")

    # Hosted backend
    backend_url: str = Field(default="http://localhost:54321", description="Auth + data API base URL")
    backend_anon_key: str = Field(default="", description="Public API key sent on every backend call")
    gateway_timeout_seconds: float = Field(default=10.0, ge=1, le=60)
    gateway_max_retries: int = Field(default=3, ge=1, le=10, description="Attempts per call")
    gateway_retry_backoff_seconds: float = Field(default=0.5, ge=0, le=10)

    # Session cookie
    session_secret: Optional[str] = Field(default=None, min_length=16)
    session_max_age_seconds: int = Field(default=31 * 24 * 3600, ge=300)

    cors_origins: str = Field(default="", description="Comma-separated origins")

    log_level: str = "INFO"
    log_format: str = "simple"

    @field_validator("environment", "log_format")
    @classmethod
    def check_choice(cls, v: str, info: ValidationInfo) -> str:
        choices = ENVIRONMENTS if info.field_name == "environment" else LOG_FORMATS
        value = v.strip().lower()
        if value not in choices:
            raise ValueError(f"{info.field_name} must be one of: {', '.join(choices)}")
        return value

    @field_validator("backend_url")
    @classmethod
    def check_backend_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"backend_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("session_secret")
    @classmethod
    def check_session_secret(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (v.lower() in WEAK_SECRETS or len(set(v)) < 4):
            raise ValueError("session_secret is too weak, use a long random string")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def gateway_config(self) -> GatewayConfig:
        """Connection settings for the data-access gateway."""
        return GatewayConfig(
            base_url=self.backend_url,
            anon_key=self.backend_anon_key,
            timeout_seconds=self.gateway_timeout_seconds,
            max_retries=self.gateway_max_retries,
            retry_backoff_seconds=self.gateway_retry_backoff_seconds,
        )

    def validate_production_config(self) -> List[str]:
        """
        Problems that only matter in production.

        Entries starting with CRITICAL stop startup; WARNING entries are logged.
        """
        if not self.is_production:
            return []

        issues = []
        if not self.session_secret:
            issues.append("CRITICAL: SESSION_SECRET required in production")
        if not self.backend_anon_key:
            issues.append("CRITICAL: BACKEND_ANON_KEY required in production")
        if not self.backend_url.startswith("https://"):
            issues.append("WARNING: BACKEND_URL is not HTTPS in production")
        if not self.cors_origins_list:
            issues.append("WARNING: CORS_ORIGINS not configured")
        return issues

    class Config:
        env_prefix = ""
        case_sensitive = False


@lru_cache()
def get_settings() -> MarketplaceSettings:
    """Settings singleton; built on first call."""
    return MarketplaceSettings()


def validate_config_on_startup() -> None:
    """
    Load settings and refuse to start on a critical problem.

    Raises:
        ValueError: If a variable fails validation or a CRITICAL issue is found
    """
    try:
        current = get_settings()
    except Exception as e:
        raise ValueError(f"Invalid marketplace configuration: {e}") from e

    issues = current.validate_production_config()
    critical = [issue for issue in issues if issue.startswith("CRITICAL")]
    if critical:
        raise ValueError("; ".join(critical))
    for issue in issues:
        logger.warning(issue)

    # Never log secret values
    logger.info(
        f"Marketplace config: environment={current.environment} "
        f"backend_url={current.backend_url} "
        f"timeout={current.gateway_timeout_seconds}s retries={current.gateway_max_retries} "
        f"session_secret={'set' if current.session_secret else 'ephemeral'}"
    )


settings = get_settings()
