"""
Flat key-value persistence for LingAI.

Each logical collection (words, passages, completed sessions) lives under
one key and is written as a whole JSON document on every change. There are
no partial writes and no transactions.

Backends:
- MemoryStore: process-local dict, used by tests and as a scratch store
- JSONFileStore: one file per key in a data directory
- FirestoreStore (firestore.py): one Firestore document per key
"""

import json
import os
import re
import tempfile
from typing import Callable, Dict, List, Optional, TypeVar, Any

from .errors import PersistenceFailure
from .logger import logger

WORDS_KEY = "SavedWords"
PASSAGES_KEY = "readingPassages"
SESSIONS_KEY = "readingSessions"

T = TypeVar("T")


class KeyValueStore:
    """Interface: bytes in, bytes out, addressed by a string key."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JSONFileStore(KeyValueStore):
    """
    Stores each key as <directory>/<key>.json.

    Writes go to a temp file in the same directory and are moved into place,
    so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, directory: str):
        self.directory = os.path.expanduser(directory)
        os.makedirs(self.directory, exist_ok=True)
        logger.store(f"Using file store at {self.directory}")

    def _path(self, key: str) -> str:
        if not _SAFE_KEY.match(key):
            raise PersistenceFailure(f"Invalid store key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceFailure(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceFailure(f"Could not write {path}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceFailure(f"Could not delete {key}: {e}") from e


# ---------------------------------------------------------------------------
# Whole-collection helpers
# ---------------------------------------------------------------------------

def save_collection(store: KeyValueStore, key: str, items: List[Any]) -> None:
    """Serialize every item (via to_dict) and write the list under `key`."""
    try:
        payload = json.dumps([item.to_dict() for item in items], ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise PersistenceFailure(f"Could not encode {key}: {e}") from e
    store.set(key, payload)


def load_collection(
    store: KeyValueStore,
    key: str,
    from_dict: Callable[[Dict[str, Any]], T],
) -> List[T]:
    """Read and decode the list stored under `key`; missing key → []."""
    raw = store.get(key)
    if raw is None:
        return []
    try:
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [from_dict(item) for item in data]
    except (UnicodeDecodeError, ValueError, TypeError, KeyError) as e:
        raise PersistenceFailure(f"Could not decode {key}: {e}") from e
