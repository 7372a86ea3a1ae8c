"""Application configuration."""
from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Horizon used when the caller does not provide an end date
    DEFAULT_HORIZON_DAYS: int = 90

    # Metrics
    # Worst-day balance below this floor marks a forecast as medium risk
    # when no weekly-spend figure is available.
    LOW_BALANCE_THRESHOLD: Decimal = Decimal("500")
    # Relative change between the first and last windows before the trend
    # is reported as up/down instead of flat.
    TREND_TOLERANCE: Decimal = Decimal("0.01")
    TREND_WINDOW_FRACTION: Decimal = Decimal("0.2")

    # Key event detection on the daily series
    KEY_EVENT_SALARY_THRESHOLD: Decimal = Decimal("2000")
    KEY_EVENT_LARGE_EXPENSE_THRESHOLD: Decimal = Decimal("1000")

    # Projection cache
    PROJECTION_CACHE_TTL_SECONDS: int = 300
    PROJECTION_CACHE_MAX_ENTRIES: int = 128

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FLUXO_",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
