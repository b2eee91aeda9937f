import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CHOREPOINTS_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./chorepoints.db"
    SQL_ECHO: bool = False

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24
    PASSWORD_HASH_ROUNDS: int = 12

    # "today", week and month windows are computed in this zone
    TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"

    HOST: str = "127.0.0.1"
    PORT: int = 8000
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
