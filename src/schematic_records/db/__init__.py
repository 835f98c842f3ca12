# schematic_records/db/__init__.py

from .base import Base, UTCDateTime, get_session, utcnow
from .accounting_orm import AccountingORM

__all__ = [
    "Base",
    "UTCDateTime",
    "AccountingORM",
    "get_session",
    "utcnow",
]
