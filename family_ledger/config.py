from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    telegram_bot_token: str = ""
    db_path: str = "family_ledger.json"
    timezone: str = "Asia/Taipei"
    reference_ttl_seconds: int = 600
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
