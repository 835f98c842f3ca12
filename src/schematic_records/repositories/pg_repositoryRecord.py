# schematic_records/repositories/pg_repositoryRecord.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, List

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import InstrumentedAttribute

from schematic_records.db.accounting_orm import AccountingORM
from schematic_records.db.base import Base, get_session, utcnow
from schematic_records.exceptions import DatabaseError, KeyGenerationError, RecordNotFoundError
from schematic_records.models.record import SchematicRecord, SchematicRecordCreate

logger = logging.getLogger(__name__)


def generate_key() -> str:
    """32 символа из алфавита 0-9a-f."""
    return secrets.token_hex(16)


class SchematicRecordRepository:
    """
    Репозиторий учетных записей схем (таблица `accounting`).

    Записи никогда не удаляются физически: единственная мутация - однократная
    установка `expired`. Ключи download/delete уникальны и после вставки не меняются.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        key_factory: Callable[[], str] = generate_key,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._key_factory = key_factory
        self._clock = clock

    async def migrate(self) -> None:
        """Идемпотентно создает таблицу (CREATE IF NOT EXISTS)."""
        async with get_session(self._session_factory) as session:
            try:
                conn = await session.connection()
                await conn.run_sync(Base.metadata.create_all, tables=[AccountingORM.__table__])
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create accounting table: {e}") from e

    async def check_connection(self) -> None:
        logger.debug("Checking database connection...")
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(text("SELECT 1"))
                logger.debug("Database connection successful.")
            except SQLAlchemyError as e:
                logger.error(f"Database connection failed: {e}")
                raise DatabaseError("Failed to connect to the database.") from e

    async def get_all_records(self) -> List[SchematicRecord]:
        return await self._select_many(select(AccountingORM).order_by(AccountingORM.id))

    async def get_all_unexpired_records(self) -> List[SchematicRecord]:
        stmt = select(AccountingORM).where(AccountingORM.expired.is_(None)).order_by(AccountingORM.id)
        return await self._select_many(stmt)

    async def get_by_delete_key(self, delete_key: str) -> SchematicRecord:
        record = await self._select_one(AccountingORM.delete_key, delete_key)
        if record is None:
            raise RecordNotFoundError("No data found for passed delete key")
        return record

    async def get_by_download_key(self, download_key: str) -> SchematicRecord:
        record = await self._select_one(AccountingORM.download_key, download_key)
        if record is None:
            raise RecordNotFoundError("No data found for passed download key")
        return record

    async def expire_record(self, record_id: int) -> None:
        """
        Помечает запись истекшей. Уже истекшая запись не трогается:
        первая отметка `expired` остается окончательной.
        """
        async with get_session(self._session_factory) as session:
            try:
                res = await session.execute(
                    update(AccountingORM)
                    .where(AccountingORM.id == record_id, AccountingORM.expired.is_(None))
                    .values(expired=self._clock())
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount < 1:
                    found = await session.scalar(select(AccountingORM.id).where(AccountingORM.id == record_id))
                    if found is None:
                        await session.rollback()
                        raise RecordNotFoundError(
                            f"Failed to expire schematic - no schematic exists with id {record_id}"
                        )
                    logger.debug(f"Record {record_id} is already expired, leaving it untouched.")
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to expire record {record_id}: {e}") from e

    async def store_record(self, record: SchematicRecordCreate) -> SchematicRecord:
        orm = AccountingORM(**record.model_dump(), last_accessed=self._clock())
        async with get_session(self._session_factory) as session:
            try:
                session.add(orm)
                await session.commit()
                await session.refresh(orm)
                return orm.to_pydantic()
            except IntegrityError as e:
                await session.rollback()
                raise DatabaseError(f"Record with the same download or delete key already exists: {e}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to store record: {e}") from e

    async def expire_records_older_than(self, duration_ms: int) -> List[SchematicRecord]:
        """
        Помечает истекшими все активные записи, к которым не обращались
        дольше `duration_ms`, и возвращает именно их.

        Чтение и обновление идут отдельными запросами без общей изоляции:
        параллельные чистки могут выбрать одни и те же строки, но условие
        `expired IS NULL` в UPDATE не дает перезаписать уже выставленную отметку.
        """
        if duration_ms < 0:
            raise ValueError("duration_ms must be non-negative")
        now = self._clock()
        cutoff = now - timedelta(milliseconds=duration_ms)
        async with get_session(self._session_factory) as session:
            try:
                res = await session.execute(
                    select(AccountingORM)
                    .where(AccountingORM.last_accessed <= cutoff, AccountingORM.expired.is_(None))
                    .order_by(AccountingORM.id)
                )
                stale = [orm.to_pydantic() for orm in res.scalars().all()]
                if not stale:
                    return []

                await session.execute(
                    update(AccountingORM)
                    .where(AccountingORM.id.in_([r.id for r in stale]), AccountingORM.expired.is_(None))
                    .values(expired=now)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to expire records older than {duration_ms} ms: {e}") from e

        logger.info(f"Expired {len(stale)} record(s) last accessed before {cutoff.isoformat()}")
        return [r.model_copy(update={"expired": now}) for r in stale]

    async def generate_deletion_key(self, max_iterations: int) -> str:
        return await self._generate_unique_key(AccountingORM.delete_key, max_iterations)

    async def generate_download_key(self, max_iterations: int) -> str:
        return await self._generate_unique_key(AccountingORM.download_key, max_iterations)

    # ――― helpers ――― #

    async def _generate_unique_key(self, column: InstrumentedAttribute, max_iterations: int) -> str:
        async with get_session(self._session_factory) as session:
            for attempt in range(1, max_iterations + 1):
                key = self._key_factory()
                try:
                    res = await session.execute(select(AccountingORM.id).where(column == key).limit(1))
                except SQLAlchemyError as e:
                    raise DatabaseError(f"Failed to check {column.key} uniqueness: {e}") from e
                if res.first() is None:
                    return key
                logger.warning(f"Generated {column.key} collided with an existing one (attempt {attempt}/{max_iterations})")
        raise KeyGenerationError(f"Failed to generate unique {column.key} after {max_iterations} attempts")

    async def _select_one(self, column: InstrumentedAttribute, value: str) -> SchematicRecord | None:
        async with get_session(self._session_factory) as session:
            try:
                res = await session.execute(select(AccountingORM).where(column == value).limit(1))
            except SQLAlchemyError as e:
                raise DatabaseError(f"Failed to look up record by {column.key}: {e}") from e
            orm = res.scalar_one_or_none()
            return orm.to_pydantic() if orm else None

    async def _select_many(self, stmt) -> List[SchematicRecord]:
        async with get_session(self._session_factory) as session:
            try:
                res = await session.execute(stmt)
            except SQLAlchemyError as e:
                raise DatabaseError(f"Failed to list records: {e}") from e
            return [orm.to_pydantic() for orm in res.scalars().all()]
