class RecordStoreError(Exception):
    """Base class."""


class DatabaseError(RecordStoreError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class KeyGenerationError(RecordStoreError):
    pass


class ConfigError(RecordStoreError):
    pass
