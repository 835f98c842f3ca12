# Файл: src/schematic_records/__init__.py

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from .client import SchematicClient
from .config import get_settings, PostgresConfig, ServiceConfig, LimiterConfig
from .models import SchematicRecord, SchematicRecordCreate
from .repositories import SchematicRecordRepository
from .exceptions import *


def create_schematic_client(
    postgres: Optional[PostgresConfig] = None,
    service: Optional[ServiceConfig] = None,
    engine: Optional[AsyncEngine] = None,
) -> SchematicClient:
    """
    Фабричная функция для создания и конфигурации SchematicClient.

    :param postgres: Настройки подключения. Если не переданы, читаются из окружения.
    :param service: Содержимое config.json. Если не передано, читается файл из SERVICE_CONFIG.
    :param engine: Готовый движок (например, в тестах). Клиент станет его владельцем.
    :return: Сконфигурированный SchematicClient. Таблицу создает `await client.init_storage()`.
    """
    if postgres is None or service is None:
        s = get_settings()
        postgres = postgres or s.postgres
        service = service or s.get_service_config()

    if engine is None:
        engine = create_async_engine(
            postgres.get_pg_url(),
            pool_size=postgres.pool_size,
            max_overflow=postgres.max_overflow,
            pool_timeout=postgres.pool_timeout,
            pool_recycle=postgres.pool_recycle,
            pool_pre_ping=postgres.pool_pre_ping,
            connect_args={
                "server_settings": {
                    "application_name": postgres.application_name
                }
            }
        )

    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    records = SchematicRecordRepository(session_factory)
    return SchematicClient(engine=engine, records=records, service=service)


__all__ = [
    "SchematicClient", "create_schematic_client",
    "PostgresConfig", "ServiceConfig", "LimiterConfig",
    "SchematicRecord", "SchematicRecordCreate", "SchematicRecordRepository",
    "RecordStoreError", "DatabaseError", "RecordNotFoundError", "KeyGenerationError", "ConfigError",
]
