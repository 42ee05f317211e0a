"""
gatorpay/db/token_store.py

Purpose: Bearer token persistence

- Holds exactly one opaque token string under a fixed key
- File-backed store for real use, in-memory store for tests and embedding
- Written on successful verification, removed on logout / failed restore
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from gatorpay.core.config import settings
from gatorpay.core.logging import get_logger

logger = get_logger(__name__)


class TokenStore(ABC):
    """
    Storage for the session token. Operations are synchronous so a store
    transition is complete before control returns to the caller.
    """

    def __init__(self, key: Optional[str] = None):
        self.key = key or settings.TOKEN_STORAGE_KEY

    @abstractmethod
    def get(self) -> Optional[str]:
        """Returns the persisted token, or None."""

    @abstractmethod
    def set(self, token: str) -> None:
        """Persists `token`, replacing any previous one."""

    @abstractmethod
    def remove(self) -> None:
        """Removes the token. Removing an absent token is a no-op."""


class MemoryTokenStore(TokenStore):
    """Token store that lives as long as the process."""

    def __init__(self, key: Optional[str] = None, token: Optional[str] = None):
        super().__init__(key)
        self._items: Dict[str, str] = {}
        if token:
            self._items[self.key] = token

    def get(self) -> Optional[str]:
        return self._items.get(self.key)

    def set(self, token: str) -> None:
        self._items[self.key] = token

    def remove(self) -> None:
        self._items.pop(self.key, None)


class FileTokenStore(TokenStore):
    """
    Key/value JSON file, the on-disk counterpart of browser local storage.
    Other keys in the file are preserved.
    """

    def __init__(self, path: Optional[str] = None, key: Optional[str] = None):
        super().__init__(key)
        self.path = Path(path or settings.TOKEN_STORAGE_PATH)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token storage {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get(self) -> Optional[str]:
        token = self._read().get(self.key)
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self._write(data)
        logger.debug(f"Token persisted under '{self.key}'")

    def remove(self) -> None:
        data = self._read()
        if self.key not in data:
            return
        del data[self.key]
        self._write(data)
        logger.debug(f"Token removed from '{self.key}'")
