"""
Firebase Firestore backend for the key-value store.

Collection structure:
- <collection>/<key> -> {"payload": <bytes>, "updated_at": <server timestamp>}

Selected by the composition root when FIREBASE_CREDENTIALS_PATH is set.
"""

import os
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .errors import PersistenceFailure
from .logger import logger
from .storage import KeyValueStore

DEFAULT_COLLECTION = "lingai"


def _firebase_app(credentials_path: str):
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if not os.path.exists(credentials_path):
        raise PersistenceFailure(f"Credentials file not found at: {credentials_path}")

    logger.debug(f"[DB] Loading Firebase credentials from {credentials_path}")
    cred = credentials.Certificate(credentials_path)
    logger.debug("[DB] Initializing Firebase app...")
    return firebase_admin.initialize_app(cred)


class FirestoreStore(KeyValueStore):
    def __init__(
        self,
        credentials_path: Optional[str] = None,
        collection: str = DEFAULT_COLLECTION,
        client: Optional[Any] = None,
    ):
        self.collection = collection
        if client is not None:
            self.db = client
        else:
            creds_path = credentials_path or os.getenv("FIREBASE_CREDENTIALS_PATH")
            if not creds_path:
                raise PersistenceFailure("FIREBASE_CREDENTIALS_PATH not set")
            try:
                app = _firebase_app(creds_path)
                self.db = firestore.client(app)
            except PersistenceFailure:
                raise
            except Exception as e:
                # firebase-admin raises a mix of ValueError, IOError and google.auth errors
                logger.error(f"[DB] Failed to initialize Firebase: {e}")
                raise PersistenceFailure(f"Failed to initialize Firebase: {e}") from e
        logger.success(f"[DB] Firestore store ready (collection: {self.collection})")

    def _doc(self, key: str):
        return self.db.collection(self.collection).document(key)

    def get(self, key: str) -> Optional[bytes]:
        try:
            doc = self._doc(key).get()
        except Exception as e:
            raise PersistenceFailure(f"Error reading {key}: {e}") from e
        if not doc.exists:
            return None
        payload = (doc.to_dict() or {}).get("payload")
        if payload is None:
            return None
        return bytes(payload)

    def set(self, key: str, value: bytes) -> None:
        try:
            self._doc(key).set({"payload": bytes(value), "updated_at": firestore.SERVER_TIMESTAMP})
        except Exception as e:
            raise PersistenceFailure(f"Error writing {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._doc(key).delete()
        except Exception as e:
            raise PersistenceFailure(f"Error deleting {key}: {e}") from e
