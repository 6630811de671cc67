"""
Docstring for app.config

Конфигурация приложения.
Всё берется из .env файла.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic Settings конфиг
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "postgresql://blog_user:blog_password@db:5432/blog_db"

    # JWT (токены выдает внешний сервис авторизации, мы только проверяем)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Server
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Лента постов
    POSTS_PAGE_SIZE: int = 20

# Создаем глобальный объект settings
settings = Settings()
