"""
Application Settings for ThreadBot

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Classification and arbitration thresholds live here so they can be
    injected into the services instead of being read as module constants.
    """
    
    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.7
    gemini_max_output_tokens: int = 2048
    
    # Telegram Configuration
    telegram_bot_token: Optional[str] = None
    telegram_api_url: str = "https://api.telegram.org"
    telegram_webhook_secret: Optional[str] = None
    
    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    
    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False
    
    # Thread classification
    min_match_probability: float = 0.5
    max_active_threads: int = 10
    summary_refresh_interval: int = 5  # re-summarize every Nth message
    summary_window: int = 10
    fallback_theme: str = "New conversation"
    fallback_summary_length: int = 100
    
    # Response arbitration
    suggestion_bonus: float = 0.3
    context_window: int = 10
    
    # Per-message deadline
    processing_timeout_seconds: float = 300.0
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """Normalize API keys and check numeric ranges."""
        # Normalize gemini_api_key to google_api_key
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key
        
        if not 0.0 <= self.min_match_probability <= 1.0:
            raise ValueError("MIN_MATCH_PROBABILITY must be between 0.0 and 1.0")
        if not 0.0 <= self.suggestion_bonus <= 1.0:
            raise ValueError("SUGGESTION_BONUS must be between 0.0 and 1.0")
        if self.summary_refresh_interval < 1:
            raise ValueError("SUMMARY_REFRESH_INTERVAL must be at least 1")
        
        return self
    
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"
    
    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
