from .record import KEY_PATTERN, SchematicRecordCreate, SchematicRecord

__all__ = [
    "KEY_PATTERN", "SchematicRecordCreate", "SchematicRecord"
]
