# app/config.py
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Any, Dict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Connection pool settings per deployment tier
POOL_TIERS: Dict[str, Dict[str, int]] = {
    "production": {"pool_size": 20, "pool_timeout": 30, "pool_recycle": 1800},
    "staging": {"pool_size": 10, "pool_timeout": 30, "pool_recycle": 1800},
    "test": {"pool_size": 2, "pool_timeout": 5, "pool_recycle": 300},
    "development": {"pool_size": 5, "pool_timeout": 15, "pool_recycle": 300},
}


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    # Deployment tier: development, staging, production or test
    ENVIRONMENT: str = "development"

    # API configuration
    API_PREFIX: str = "/api/v1"

    # Auth
    JWT_SECRET: str = "dev-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Geo
    DISTANCE_FORMULA: str = "flat"

    # Nearby posts paging
    NEARBY_POSTS_DEFAULT_LIMIT: int = 20
    NEARBY_POSTS_MAX_LIMIT: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for create_engine() based on the environment tier."""
        options: Dict[str, Any] = {"echo": self.DATABASE_ECHO}
        if self.is_sqlite:
            # SQLite uses its own pool classes
            options["connect_args"] = {"check_same_thread": False}
            return options

        tier = POOL_TIERS.get(self.ENVIRONMENT, POOL_TIERS["development"])
        options.update(tier)
        options["pool_pre_ping"] = True
        return options


@lru_cache()
def get_settings():
    return Settings()
