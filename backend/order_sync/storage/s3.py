from __future__ import annotations

import asyncio
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StorageError
from ..logger import logger
from .base import KeyValueStorage


def build_s3_client(settings) -> Any:
    return boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION_NAME,
        endpoint_url=settings.AWS_ENDPOINT_URL,
    )


def _is_missing(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in ("NoSuchKey", "404", "NotFound") or status == 404


class S3Storage(KeyValueStorage):
    """
    Stores each key as a JSON object in a bucket:
      s3://{bucket}/{prefix}{key}.json
    """

    def __init__(self, client: Any, bucket: str, prefix: str = "") -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix

    def object_key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def _read(self, key: str) -> Optional[str]:
        object_key = self.object_key(key)
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=object_key)
        except ClientError as e:
            if _is_missing(e):
                return None
            raise
        return obj["Body"].read().decode("utf-8")

    def _write(self, key: str, value: str) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=self.object_key(key),
            Body=value.encode("utf-8"),
            ContentType="application/json",
            CacheControl="no-store",
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to read S3 key '{self.object_key(key)}': {e}")
            raise StorageError(f"Failed to read key '{key}' from S3: {e}")

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to write S3 key '{self.object_key(key)}': {e}")
            raise StorageError(f"Failed to write key '{key}' to S3: {e}")
