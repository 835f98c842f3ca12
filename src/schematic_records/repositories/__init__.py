from .pg_repositoryRecord import SchematicRecordRepository, generate_key

__all__ = [
    "SchematicRecordRepository",
    "generate_key",
]
