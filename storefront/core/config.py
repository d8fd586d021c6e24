# storefront/core/config.py

import os
from functools import lru_cache
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./storefront.db"
    CREATE_TABLES_ON_STARTUP: bool = False

    # Security - signs the opaque access tokens issued by the auth service
    SECRET_KEY: str

    # Cart rate limiting (reads and writes share one counter per identity)
    CART_RATE_LIMIT: int = 10
    CART_RATE_WINDOW_SECONDS: float = 60.0

    # Real-time cart channel
    WS_HEARTBEAT_INTERVAL: float = 25.0
    WS_LIVENESS_TIMEOUT: float = 60.0
    REALTIME_REQUIRE_TOKEN: bool = False

    # Seller analytics
    DASHBOARD_TOP_PRODUCTS: int = 5
    DASHBOARD_RECENT_ORDERS: int = 5
    SALES_HISTORY_PAGE_SIZE: int = 20

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
