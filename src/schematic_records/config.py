# Файл: src/schematic_records/config.py

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


# --- 1. Подключение к PostgreSQL ---
class PostgresConfig(BaseModel):
    user: str = "postgres"
    password: str = ""
    host: str = "localhost"
    port: int = 5432
    db: str = "arkitektonika"

    # Пул ограничен 5 соединениями, без overflow
    pool_size: int = 5
    max_overflow: int = 0
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "schematic_records"

    def get_pg_url(self) -> URL:
        """Собирает URL для SQLAlchemy из полей этого объекта."""
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.db,
        )


# --- 2. Статический JSON-конфиг сервиса (config.json) ---
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LimiterConfig(_CamelModel):
    window_ms: int = 60_000
    delay_after: int = 30
    delay_ms: int = 500


class ServiceConfig(_CamelModel):
    port: int = 3000
    # Интервал (и возраст) для чистки устаревших записей, в миллисекундах
    prune: int = Field(1_800_000, gt=0)
    max_iterations: int = Field(20, ge=1)
    # Проверяется HTTP-слоем, здесь только хранится
    max_schematic_size: int = 1_000_000
    allowed_origin: str = "*"
    limiter: LimiterConfig = Field(default_factory=LimiterConfig)


def load_service_config(path: str | Path) -> ServiceConfig:
    """
    Читает config.json. Если файла нет, возвращаются значения по умолчанию.
    Битый JSON или неверные значения -> ConfigError.
    """
    path = Path(path)
    if not path.is_file():
        logger.warning(f"Service config {path} not found, using defaults.")
        return ServiceConfig()
    try:
        return ServiceConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid service config {path}: {e}") from e


# --- 3. Настройки окружения (.env / переменные) ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="_",
        env_nested_max_split=1,
        extra="ignore",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    service_config: Path = Field(Path("config.json"), alias="SERVICE_CONFIG")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)

    def get_service_config(self) -> ServiceConfig:
        return load_service_config(self.service_config)


_cached_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    Это предотвращает ошибки валидации при импорте.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings


def reset_settings() -> None:
    """Сбрасывает кэш настроек (нужно тестам, меняющим окружение)."""
    global _cached_settings
    _cached_settings = None
