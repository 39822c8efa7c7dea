"""
Key-Value State Persistence

Small persistence layer for the error tracker and the quality log. Each
well-known key maps to one JSON document; the encrypted variant keeps
documents at rest with Fernet symmetric encryption since quality log
entries carry full email bodies.

Design Considerations:
- Atomic writes through a temp file and os.replace
- Persistence failures are logged and absorbed, never raised to callers
- Missing or unreadable documents load as the caller's default
"""

import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from reply_core.exceptions import StateStoreError

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')


class StateStore:
    """
    Base class for state persistence backends.

    Subclasses implement `_read`, `_write` and `_remove`; the public methods
    wrap them so a failing backend degrades to in-process state only.
    """

    def load(self, key: str, default: Any = None) -> Any:
        try:
            value = self._read(key)
            return default if value is None else value
        except StateStoreError as e:
            logger.error(f"Failed to load state '{key}': {e}")
            return default

    def save(self, key: str, value: Any) -> bool:
        try:
            self._write(key, value)
            return True
        except StateStoreError as e:
            logger.error(f"Failed to save state '{key}': {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            self._remove(key)
            return True
        except StateStoreError as e:
            logger.error(f"Failed to delete state '{key}': {e}")
            return False

    def _read(self, key: str) -> Any:
        raise NotImplementedError

    def _write(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    """Process-local store, used by default and in tests."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def _read(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def _write(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStateStore(StateStore):
    """Stores each key as a plain JSON file in one directory."""

    suffix = ".json"

    def __init__(self, storage_path: Union[str, Path] = "data/state"):
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise StateStoreError(f"Invalid state key: {key!r}")
        return self.storage_path / f"{key}{self.suffix}"

    def _encode(self, payload: bytes) -> bytes:
        return payload

    def _decode(self, payload: bytes) -> bytes:
        return payload

    def _read(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'rb') as f:
                return json.loads(self._decode(f.read()).decode('utf-8'))
        except (OSError, ValueError) as e:
            raise StateStoreError(f"Unreadable state file {path}: {e}") from e

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        temp_file = path.with_suffix('.tmp')
        try:
            payload = self._encode(json.dumps(value, default=str).encode('utf-8'))
            with open(temp_file, 'wb') as f:
                f.write(payload)
            os.replace(temp_file, path)
        except (OSError, TypeError, ValueError) as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StateStoreError(f"Could not write state file {path}: {e}") from e

    def _remove(self, key: str) -> None:
        path = self._path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise StateStoreError(f"Could not remove state file {path}: {e}") from e


class EncryptedFileStateStore(JsonFileStateStore):
    """
    JSON file store with Fernet encryption at rest.

    Without a configured key a fresh one is generated, which keeps data
    readable only for the lifetime of this process.
    """

    suffix = ".bin"

    def __init__(self, storage_path: Union[str, Path] = "data/secure",
                 encryption_key: Optional[Union[str, bytes]] = None):
        super().__init__(storage_path)
        if encryption_key is None:
            logger.warning(
                "Using dynamically generated state encryption key. Set STATE_ENCRYPTION_KEY "
                "for persistent encrypted state."
            )
            encryption_key = Fernet.generate_key()
        if isinstance(encryption_key, str):
            encryption_key = encryption_key.encode('utf-8')
        self.cipher_suite = Fernet(encryption_key)

    def _encode(self, payload: bytes) -> bytes:
        return self.cipher_suite.encrypt(payload)

    def _decode(self, payload: bytes) -> bytes:
        try:
            return self.cipher_suite.decrypt(payload)
        except InvalidToken as e:
            raise ValueError("state file cannot be decrypted with the configured key") from e
