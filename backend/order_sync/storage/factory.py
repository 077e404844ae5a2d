from __future__ import annotations

from ..db import build_engine, build_session_factory
from ..exceptions import ConfigurationError
from .base import InMemoryStorage, KeyValueStorage
from .file import FileStorage


def build_storage(settings) -> KeyValueStorage:
    """Pick a storage backend from `STORAGE_BACKEND`."""
    backend = (settings.STORAGE_BACKEND or "").strip().lower()

    if backend == "memory":
        return InMemoryStorage()

    if backend == "file":
        return FileStorage(settings.STORAGE_DIR)

    if backend == "sql":
        from .sql import SqlStorage

        engine = build_engine(settings.DATABASE_URL)
        return SqlStorage(engine, build_session_factory(engine))

    if backend == "s3":
        from .s3 import S3Storage, build_s3_client

        return S3Storage(build_s3_client(settings), settings.S3_BUCKET_NAME, settings.S3_KEY_PREFIX)

    raise ConfigurationError(f"Unknown storage backend '{settings.STORAGE_BACKEND}'")
