import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from schematic_records.config import ServiceConfig
from schematic_records.exceptions import DatabaseError
from schematic_records.models import SchematicRecord, SchematicRecordCreate
from schematic_records.repositories import SchematicRecordRepository

logger = logging.getLogger(__name__)


class SchematicClient:
    """
    Единая точка доступа к учету схем для HTTP-слоя и CLI.
    Владеет движком (пулом соединений) и закрывает его в `aclose()`.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        records: SchematicRecordRepository,
        service: ServiceConfig | None = None,
    ):
        self._engine = engine
        self.records = records
        self.service = service or ServiceConfig()

    async def init_storage(self) -> None:
        """Создает таблицу, если ее нет. Вызывать до приема трафика."""
        await self.records.migrate()
        logger.debug("Database migration completed.")

    async def check_connections(self) -> dict[str, str]:
        statuses = {}
        try:
            await self.records.check_connection()
            statuses["database"] = "ok"
        except DatabaseError as e:
            statuses["database"] = f"failed: {e}"
        return statuses

    async def issue_keys(self) -> tuple[str, str]:
        """Возвращает пару (download_key, delete_key), уникальных на момент проверки."""
        max_iterations = self.service.max_iterations
        download_key = await self.records.generate_download_key(max_iterations)
        delete_key = await self.records.generate_deletion_key(max_iterations)
        return download_key, delete_key

    async def register_upload(
        self,
        file_name: str,
        uploader: Optional[str] = None,
        schem_type: Optional[str] = None,
        pos1: Optional[str] = None,
        pos2: Optional[str] = None,
    ) -> SchematicRecord:
        download_key, delete_key = await self.issue_keys()
        record = SchematicRecordCreate(
            download_key=download_key,
            delete_key=delete_key,
            file_name=file_name,
            uploader=uploader,
            schem_type=schem_type,
            pos1=pos1,
            pos2=pos2,
        )
        stored = await self.records.store_record(record)
        logger.info(f"Registered schematic '{file_name}' as record {stored.id}")
        return stored

    async def prune(self, older_than_ms: Optional[int] = None) -> list[SchematicRecord]:
        if older_than_ms is None:
            older_than_ms = self.service.prune
        expired = await self.records.expire_records_older_than(older_than_ms)
        if expired:
            logger.info(f"Pruned {len(expired)} schematic record(s)")
        else:
            logger.debug("Nothing to prune")
        return expired

    async def aclose(self) -> None:
        await self._engine.dispose()
