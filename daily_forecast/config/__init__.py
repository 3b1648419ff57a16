"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from daily_forecast.domain.models import ForecastThresholds


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Database
    # ======================
    DATABASE_URL: str = "sqlite+aiosqlite:///./daily_forecast.db"
    DB_ECHO: bool = False

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "America/Mexico_City"

    # ======================
    # Monetary mirror
    # ======================
    DEFAULT_AOV: float = 6500.0
    AOV_LOOKBACK_DAYS: int = 30

    # ======================
    # Uncertainty cone
    # ======================
    BASE_UNCERTAINTY: float = 0.15
    MAX_UNCERTAINTY: float = 0.60

    # ======================
    # Dynamic correction
    # ======================
    MAX_CORRECTION: float = 0.30
    MIN_CORRECTION_SAMPLES: int = 5
    HIGH_CONFIDENCE_SAMPLES: int = 10
    RECENCY_DECAY_DAYS: float = 7.0

    # ======================
    # Month summary
    # ======================
    TREND_SHIFT_THRESHOLD: float = 2.0

    # ======================
    # Early-month mode
    # ======================
    EARLY_MONTH_LAST_DAY: int = 2
    MOMENTUM_WEIGHT: float = 0.30

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def effective_log_level(self) -> str:
        """DEBUG forces debug logging regardless of LOG_LEVEL"""
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL

    def forecast_thresholds(self) -> ForecastThresholds:
        """Build the immutable threshold set handed to the domain engines"""
        return ForecastThresholds(
            base_uncertainty=self.BASE_UNCERTAINTY,
            max_uncertainty=self.MAX_UNCERTAINTY,
            max_correction=self.MAX_CORRECTION,
            min_correction_samples=self.MIN_CORRECTION_SAMPLES,
            high_confidence_samples=self.HIGH_CONFIDENCE_SAMPLES,
            recency_decay_days=self.RECENCY_DECAY_DAYS,
            trend_shift_threshold=self.TREND_SHIFT_THRESHOLD,
            early_month_last_day=self.EARLY_MONTH_LAST_DAY,
            momentum_weight=self.MOMENTUM_WEIGHT,
        )


settings = Settings()
