# schematic_records/db/accounting_orm.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CHAR, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from schematic_records.db.base import Base, UTCDateTime
from schematic_records.models.record import SchematicRecord


class AccountingORM(Base):
    __tablename__ = "accounting"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    download_key: Mapped[str] = mapped_column(CHAR(32), unique=True, nullable=False)
    delete_key: Mapped[str] = mapped_column(CHAR(32), unique=True, nullable=False)
    # Имена колонок сохранены как в исходной таблице
    file_name: Mapped[str] = mapped_column("filename", String(255), nullable=False)
    last_accessed: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expired: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True) # NULL = запись активна
    uploader: Mapped[str | None] = mapped_column("uploaded_by", String(36), nullable=True)
    schem_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    pos1: Mapped[str | None] = mapped_column(String(35), nullable=True)
    pos2: Mapped[str | None] = mapped_column(String(35), nullable=True)

    def to_pydantic(self) -> SchematicRecord:
        return SchematicRecord.model_validate(self)
