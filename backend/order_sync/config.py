from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_VERSION: str = "1.0.1"
    LOG_LEVEL: str = "INFO"

    # memory | file | sql | s3
    STORAGE_BACKEND: str = "sql"
    STORAGE_DIR: str = "./data"

    DATABASE_URL: str = "sqlite+aiosqlite:///./order_sync.db"

    AWS_ENDPOINT_URL: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION_NAME: str = "ru-1"
    S3_BUCKET_NAME: str = "order-sync"
    S3_KEY_PREFIX: str = "kv/"

    SYNCED_STATUSES_KEY: str = "synced_order_statuses_v1"
    LEGACY_ORDERS_KEY: str = "orders"

    STRICT_STATUS_KEYS: bool = False
    SERIALIZE_STATUS_WRITES: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
