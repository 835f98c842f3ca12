# Файл: schematic_records/models/record.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

KEY_PATTERN = r"^[0-9a-f]{32}$"


# Схема для создания записи (то, что приходит при загрузке схемы)
class SchematicRecordCreate(BaseModel):
    download_key: str = Field(..., pattern=KEY_PATTERN)
    delete_key: str = Field(..., pattern=KEY_PATTERN)
    file_name: str = Field(..., min_length=1, max_length=255)
    uploader: Optional[str] = Field(None, max_length=36)
    schem_type: Optional[str] = Field(None, max_length=10)
    pos1: Optional[str] = Field(None, max_length=35)
    pos2: Optional[str] = Field(None, max_length=35)

    # Наружу поля отдаются в camelCase: downloadKey, fileName, lastAccessed...
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Запись, как она лежит в БД
class SchematicRecord(SchematicRecordCreate):
    id: int
    last_accessed: datetime
    expired: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        return self.expired is not None
