"""
Configuration Management for Finance Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what the engine depends on (the remote store,
the default transfer category, chart window sizes) and ensures every
value is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Remote entity store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the entity store REST API"
    )
    user_id: int = Field(
        default=1,
        ge=1,
        description="The single user context all entities belong to"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )
    
    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined with a leading slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Store URL must be http(s): {v}")
        return v.rstrip("/")


class LedgerSettings(BaseSettings):
    """
    Main engine settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    
    # Charting
    balance_history_points: int = Field(
        default=12,
        ge=1,
        le=1000,
        description="How many points of reconstructed balance history to keep"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=1,
        le=500,
        description="How many transactions the dashboard lists as recent"
    )
    
    # Money movement
    transfer_category_id: int = Field(
        default=1,
        ge=1,
        description="Category both legs of a transfer are filed under"
    )


class Settings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    @property
    def store(self) -> StoreSettings:
        return StoreSettings()
    
    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.
    
    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for sections that failed to load.
    Useful for startup checks.
    """
    results = {}
    
    settings = get_settings()
    
    sections = {
        "store": lambda: settings.store,
        "ledger": lambda: settings.ledger,
    }
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
