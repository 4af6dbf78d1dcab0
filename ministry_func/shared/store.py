"""Namespaced key-value content storage.

One :class:`ContentStore` instance wraps one namespace (a blob container in
Azure, a dict in memory). Values are JSON text and come back byte-identical.
Per-key expiration is honoured on read: expired keys are invisible to
``get``/``list`` and are removed lazily.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from .logging_utils import get_json_logger

EXPIRES_AT_META = "expires_at"


class ContentStoreError(RuntimeError):
    """Raised when the storage backend fails."""


class ContentStore:
    """Contract shared by every storage backend."""

    namespace: str = ""

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def list(self, prefix: str = "", limit: Optional[int] = None) -> List[str]:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    # --- JSON helpers -------------------------------------------------------

    def put_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> str:
        text = json.dumps(value, ensure_ascii=False)
        self.put(key, text, ttl_seconds=ttl_seconds)
        return text

    def get_json(self, key: str) -> Optional[Any]:
        text = self.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise ContentStoreError(f"Stored value for {key!r} is not valid JSON") from exc

    def load_all(self, prefix: str, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        """Return ``(key, decoded value)`` pairs for every live key under *prefix*."""
        pairs: List[Tuple[str, Any]] = []
        for key in self.list(prefix, limit=limit):
            value = self.get_json(key)
            # Expired or deleted between list and get
            if value is None:
                continue
            pairs.append((key, value))
        return pairs


class MemoryContentStore(ContentStore):
    """Process-local store used for local development and tests."""

    def __init__(self, namespace: str = "memory", clock: Callable[[], float] = time.time) -> None:
        self.namespace = namespace
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key)

    def list(self, prefix: str = "", limit: Optional[int] = None) -> List[str]:
        with self._lock:
            keys = sorted(k for k in list(self._data) if k.startswith(prefix) and self._live(k) is not None)
        return keys[:limit] if limit else keys

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None and self._data.pop(key, None) is not None

    def expiry_of(self, key: str) -> Optional[float]:
        with self._lock:
            entry = self._data.get(key)
        return entry[1] if entry else None


class BlobContentStore(ContentStore):
    """Azure Blob Storage backed store: one container per namespace."""

    def __init__(
        self,
        service_client: BlobServiceClient,
        container_name: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.namespace = container_name
        self._clock = clock
        self._logger = get_json_logger("ministry.store")
        self._container: ContainerClient = service_client.get_container_client(container_name)
        self._ensure_container()

    @classmethod
    def from_connection_string(cls, conn_str: str, container_name: str) -> "BlobContentStore":
        return cls(BlobServiceClient.from_connection_string(conn_str), container_name)

    def _ensure_container(self) -> None:
        try:
            self._container.create_container()
            self._logger.info("Container created", extra={"event": "store_container_created", "container": self.namespace})
        except ResourceExistsError:
            pass
        except AzureError as exc:
            self._logger.exception("Container init failed", extra={"event": "store_init_error", "container": self.namespace})
            raise ContentStoreError(f"Cannot initialise container {self.namespace}") from exc

    def _expired(self, metadata: Optional[Dict[str, str]]) -> bool:
        raw = (metadata or {}).get(EXPIRES_AT_META)
        if not raw:
            return False
        try:
            return float(raw) <= self._clock()
        except ValueError:
            return False

    def _drop_expired(self, key: str) -> None:
        try:
            self._container.delete_blob(key)
        except ResourceNotFoundError:
            pass
        except AzureError:
            self._logger.warning("Expired blob cleanup failed", extra={"event": "store_expire_error", "container": self.namespace, "key": key})

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        metadata = {}
        if ttl_seconds:
            metadata[EXPIRES_AT_META] = str(int(self._clock() + ttl_seconds))
        try:
            self._container.upload_blob(
                name=key,
                data=value.encode("utf-8"),
                overwrite=True,
                metadata=metadata,
                content_settings=ContentSettings(content_type="application/json"),
            )
        except AzureError as exc:
            self._logger.exception("Blob write failed", extra={"event": "store_put_error", "container": self.namespace, "key": key})
            raise ContentStoreError(f"Failed to write {key}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            downloader = self._container.download_blob(key)
            if self._expired(downloader.properties.metadata):
                self._drop_expired(key)
                return None
            return downloader.readall().decode("utf-8")
        except ResourceNotFoundError:
            return None
        except AzureError as exc:
            self._logger.exception("Blob read failed", extra={"event": "store_get_error", "container": self.namespace, "key": key})
            raise ContentStoreError(f"Failed to read {key}") from exc

    def list(self, prefix: str = "", limit: Optional[int] = None) -> List[str]:
        keys: List[str] = []
        try:
            for blob in self._container.list_blobs(name_starts_with=prefix or None, include=["metadata"]):
                if self._expired(blob.metadata):
                    self._drop_expired(blob.name)
                    continue
                keys.append(blob.name)
                if limit and len(keys) >= limit:
                    break
        except AzureError as exc:
            self._logger.exception("Blob list failed", extra={"event": "store_list_error", "container": self.namespace, "prefix": prefix})
            raise ContentStoreError(f"Failed to list {prefix!r}") from exc
        return keys

    def delete(self, key: str) -> bool:
        try:
            self._container.delete_blob(key)
            return True
        except ResourceNotFoundError:
            return False
        except AzureError as exc:
            self._logger.exception("Blob delete failed", extra={"event": "store_delete_error", "container": self.namespace, "key": key})
            raise ContentStoreError(f"Failed to delete {key}") from exc
