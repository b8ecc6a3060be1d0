"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings

# ===========================================
# Product Branding
# ===========================================
PRODUCT_NAME = "Remote Config"
PRODUCT_TAGLINE = "Tune your game live, one rule at a time."
PRODUCT_VERSION = "1.0.0"
PRODUCT_DESCRIPTION = "Typed key/value settings for game clients with prioritized audience overrides."

# Environments a configuration can be scoped to
ENVIRONMENTS = ("development", "staging", "production")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./remote_config.db"

    # Deployment environment of this server (not of a configuration)
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"

    # API Security
    api_key: str = ""  # Set in .env for production

    # Lets clients pin the evaluation instant (testing date-windowed rules)
    allow_evaluation_time_override: bool = False

    # Rules
    max_rules_per_config: int = 30
    slow_evaluation_ms: float = 50.0

    # Public fetch rate limit (slowapi syntax)
    fetch_rate_limit: str = "120/minute"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def evaluation_time_override_enabled(self) -> bool:
        """Whether a caller-supplied evaluation instant may be honoured."""
        if self.app_env == "production":
            return False
        return self.allow_evaluation_time_override


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
