# movequote/core/settings.py
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === Pricing ===
    DEFAULT_MARGIN_RATE: float = Field(0.30, ge=0, le=1)
    SCENARIO_CATALOGUE_PATH: Optional[str] = None  # None -> bundled catalogue
    STRICT_MODULE_REGISTRY: bool = True

    # === Secured price ===
    PRICE_SIGNATURE_SECRET: Optional[str] = None
    PRICE_SIGNATURE_MAX_AGE_HOURS: int = 24

    # === Logging ===
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
