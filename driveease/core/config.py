from functools import lru_cache
from typing import List, Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "DriveEase"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str = "mongodb://127.0.0.1:27017"
    MONGO_DB: str = "driveease"

    # Redis (empty -> caching disabled)
    REDIS_URL: str = ""
    redis_max_retries: int = 10                 # reconnect attempts before caching is disabled
    redis_max_backoff_s: float = 2.0

    # Response cache
    cache_prefix: str = "driveease:cache"       # redis key namespace for catalog reads
    cars_cache_ttl: int = 5 * 60                # car list changes often
    featured_cache_ttl: int = 3600
    categories_cache_ttl: int = 24 * 3600
    locations_cache_ttl: int = 24 * 3600

    # Catalog
    cars_page_size: int = 24
    featured_limit: int = 6
    recommendation_limit: int = 4
    locations: List[str] = ["Nairobi", "Mombasa"]

    # Admin writes
    ADMIN_API_KEY: Optional[str] = None

    # OpenAI (chat assistant)
    OPENAI_API_KEY: Optional[str] = None
    openai_timeout_s: int = 30
    OPENAI_CHAT_MODELS: List[str] = ["gpt-4o-mini", "gpt-4o"]
    chat_max_tokens: int = 1000

    # Company info exposed to the chat assistant
    company_name: str = "Dacad Motors"
    company_phone: str = "0722344116"
    company_email: str = "info@dacadmotors.com"
    company_location: str = "Nairobi, Kenya"

    # API
    api_prefix: str = "/api"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
