"""
Configuration management for the FilmWatch worker
Uses pydantic-settings for type-safe environment variable handling
"""
from typing import Optional, Dict, Any
from apscheduler.triggers.cron import CronTrigger
from pydantic_settings import BaseSettings
from pydantic import Field, validator
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation and type safety"""

    # Application
    APP_NAME: str = Field(default="FilmWatch Worker", description="Application name")
    VERSION: str = Field(default="1.0.0", description="Application version")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: str = Field(default="logs", description="Directory for rotating log files")

    # Scraping
    LISTING_URL: str = Field(
        default="https://www.1tamilmv.haus/index.php?/forums/forum/9-tamil-language/",
        description="Forum listing page to discover new topics on"
    )
    MAX_FILMS: int = Field(default=20, description="Maximum entries taken from the listing per run")
    SCRAPE_TIMEOUT: float = Field(default=30.0, description="Per-fetch timeout (seconds)")
    SCRAPER_USER_AGENT: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        description="User agent for scraping"
    )
    DETAIL_DELAY_SECONDS: float = Field(default=2.0, description="Delay between detail page fetches (seconds)")
    PUBLISH_DELAY_SECONDS: float = Field(default=1.0, description="Delay between published messages (seconds)")
    LOOKBACK_WINDOW: int = Field(default=500, description="Characters scanned before a link for its caption")
    DEFAULT_LANGUAGE: str = Field(default="Tamil", description="Language assumed when a post names none")

    # Storage
    DATA_PATH: str = Field(default="./data/seen_films.json", description="Seen-set JSON file")
    MAX_TRACKED_FILMS: int = Field(default=500, description="Maximum ids kept in the seen-set")

    # Telegram
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(default=None, description="Telegram bot token")
    TELEGRAM_CHAT_ID: Optional[str] = Field(default=None, description="Chat that receives new films")
    TELEGRAM_API_URL: str = Field(default="https://api.telegram.org", description="Telegram Bot API base URL")
    WEBHOOK_SECRET: Optional[str] = Field(default=None, description="Expected X-Telegram-Bot-Api-Secret-Token")

    # Scheduling
    ENABLE_SCHEDULER: bool = Field(default=True, description="Run the pipeline periodically")
    CRON_SCHEDULE: str = Field(default="0 */2 * * *", description="Crontab expression for scheduled runs")

    # API
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")

    @validator('LISTING_URL', 'TELEGRAM_API_URL')
    def validate_http_url(cls, v):
        """Validate URL format"""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('must be a valid HTTP(S) URL')
        return v

    @validator('LOG_LEVEL')
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'LOG_LEVEL must be one of: {valid_levels}')
        return v.upper()

    @validator('DETAIL_DELAY_SECONDS', 'PUBLISH_DELAY_SECONDS')
    def validate_delays(cls, v):
        """Validate delays are not negative"""
        if v < 0:
            raise ValueError('Delays must be positive')
        return v

    @validator('CRON_SCHEDULE')
    def validate_cron_schedule(cls, v):
        """Validate the crontab expression"""
        try:
            CronTrigger.from_crontab(v)
        except ValueError as e:
            raise ValueError(f'Invalid cron schedule "{v}": {e}')
        return v

    @validator('MAX_FILMS', 'MAX_TRACKED_FILMS', 'LOOKBACK_WINDOW')
    def validate_positive(cls, v):
        """Validate counts and sizes are positive"""
        if v <= 0:
            raise ValueError('must be greater than zero')
        return v

    def get_pipeline_config(self) -> Dict[str, Any]:
        """Get pipeline configuration as dict"""
        return {
            "listing_url": self.LISTING_URL,
            "max_films": self.MAX_FILMS,
            "timeout": self.SCRAPE_TIMEOUT,
            "max_tracked_films": self.MAX_TRACKED_FILMS,
            "detail_delay": self.DETAIL_DELAY_SECONDS,
            "publish_delay": self.PUBLISH_DELAY_SECONDS,
            "lookback_window": self.LOOKBACK_WINDOW,
            "default_language": self.DEFAULT_LANGUAGE,
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars without validation errors


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (dependency injection compatible)"""
    return settings
