import logging
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Placeholder key shipped in sample env files; treated as "no key configured".
PLACEHOLDER_API_KEYS = {"", "test-key", "changeme"}


class Settings(BaseSettings):
    APP_NAME: str = "Wellness Analytics Engine"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # AI narrative generator (Gemini over HTTP)
    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_AI_API_KEY"),
    )
    GEMINI_MODEL: str = "gemini-pro"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    AI_TIMEOUT_SECONDS: float = Field(default=20.0, gt=0)

    # Internal features / flags
    INSIGHTS_FEATURE_ENABLED: bool = True

    # Analytics windows
    DEFAULT_LOOKBACK_DAYS: int = Field(default=30, ge=1)
    DAY_BOUNDARY_TZ: str = "UTC"
    STABILITY_TREND_THRESHOLD: float = Field(default=0.5, ge=0)
    PROMPT_MAX_RECORDS: int = Field(default=50, ge=1)

    # Pydantic v2 settings config
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def ai_enabled(self) -> bool:
        """True when an AI key is present and the insights feature flag is on."""
        key = (self.GEMINI_API_KEY or "").strip()
        return self.INSIGHTS_FEATURE_ENABLED and key not in PLACEHOLDER_API_KEYS

    @property
    def day_boundary_zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.DAY_BOUNDARY_TZ)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown DAY_BOUNDARY_TZ '{self.DAY_BOUNDARY_TZ}', using UTC")
            return ZoneInfo("UTC")


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Load settings from the environment on first use and cache them."""
    s = Settings()
    if not s.ai_enabled:
        logger.warning("GEMINI_API_KEY not set - AI insights will use the deterministic fallback")
    return s


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for a host application (never called on import)."""
    name = (level or get_settings().LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
