"""
Key-value string storage - the server-side stand-in for browser localStorage.
Holds the guest conversation blob, the deleted-conversation tombstones and the API key.
"""

import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import Dict, Optional

from utils.logging_config import get_logger


class KeyValueStore:
    """
    Minimal string-to-string store with an explicit lifecycle.
    """

    def init(self) -> None:
        """Prepare the store for use"""

    def dispose(self) -> None:
        """Release any resources held by the store"""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and throwaway sessions"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def dispose(self) -> None:
        self._data.clear()


class FileKeyValueStore(KeyValueStore):
    """
    One file per key under a base directory.
    Writes go through a temporary file and os.replace.
    """

    _SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)
        self.logger = get_logger(__name__)

    def init(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.logger.debug(f"Key-value store ready at {self.base_dir}")

    def _path_for(self, key: str) -> Path:
        return self.base_dir / f"{self._SAFE_KEY.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_path, self._path_for(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            pass


_SESSION_TOKEN = re.compile(r"[A-Za-z0-9-]{16,64}")


def new_session_token() -> str:
    return uuid.uuid4().hex


def is_valid_session_token(token: Optional[str]) -> bool:
    return bool(token) and _SESSION_TOKEN.fullmatch(token) is not None


def open_session_store(base_dir: str, session_token: str) -> FileKeyValueStore:
    """
    Store private to one browser: its own subdirectory of `base_dir`.

    Raises:
        ValueError: If the token could be used to leave `base_dir`
    """
    if not is_valid_session_token(session_token):
        raise ValueError("Invalid browser session token")
    store = FileKeyValueStore(str(Path(base_dir) / "sessions" / session_token))
    store.init()
    return store
