from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    PORT: int = 8787
    DB_PATH: str = "/data/sitedir.db"
    LOG_LEVEL: str = "info"

    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"
    # Written alongside the token but never enforced.
    ADMIN_TOKEN_TTL_HOURS: int = 24


settings = Settings()
