from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from ..exceptions import StorageError
from ..logger import logger
from .base import KeyValueStorage


class FileStorage(KeyValueStorage):
    """
    One JSON file per key inside `directory`.

    Writes go to a temp file in the same directory and are moved into place
    with `os.replace`, so readers never observe a half-written value.
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            logger.error(f"Failed to read key '{key}' from {self.directory}: {e}")
            raise StorageError(f"Failed to read key '{key}': {e}")

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            logger.error(f"Failed to write key '{key}' to {self.directory}: {e}")
            raise StorageError(f"Failed to write key '{key}': {e}")
