from __future__ import annotations

import abc
from typing import Dict, Mapping, Optional


class KeyValueStorage(abc.ABC):
    """
    String-keyed, string-valued persistence port.

    Implementations write whole values (never partially) and raise
    `StorageError` when the underlying backend rejects an operation.
    """

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abc.abstractmethod
    async def set(self, key: str, value: str) -> None: ...


class InMemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)
