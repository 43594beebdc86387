"""
Configuration Management for TimeLedger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The transfer engine itself has very few knobs - precision rules and the
resolver's state machine are fixed - so what lives here is the behaviour
around it: which transfers are allowed, how exchange rates are refreshed,
and how loudly we log.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransferSettings(BaseSettings):
    """Transfer entry behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="TIMELEDGER_TRANSFER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    allow_cross_currency: bool = Field(
        default=True,
        description=(
            "Allow the two legs of a transfer to use different currencies. "
            "When disabled, picking an account whose currency differs from "
            "the other leg clears the other leg's selection."
        )
    )


class RateSettings(BaseSettings):
    """Exchange rate table configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TIMELEDGER_RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_currency: str = Field(
        default="CNY",
        description="Currency every stored rate is expressed in"
    )
    refresh_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a rate refresh is attempted before giving up"
    )
    refresh_wait_min: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum back-off between refresh attempts (seconds)"
    )
    refresh_wait_max: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum back-off between refresh attempts (seconds)"
    )

    @field_validator('base_currency')
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        """Currency codes are always compared upper-case."""
        code = v.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid base currency code: {v!r}")
        return code

    @model_validator(mode='after')
    def validate_backoff(self) -> 'RateSettings':
        if self.refresh_wait_max < self.refresh_wait_min:
            raise ValueError("refresh_wait_max cannot be below refresh_wait_min")
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def transfer(self) -> TransferSettings:
        return TransferSettings()

    @property
    def rates(self) -> RateSettings:
        return RateSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("transfer", "rates", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
