"""In-memory blob storage"""

import threading
from typing import Dict

from diary_vault.errors import BlobNotFoundError
from diary_vault.storage.base import BlobStorage, validate_identifier


class MemoryBlobStorage(BlobStorage):
    """Dict-backed storage for tests and single-process tools."""

    def __init__(self, blobs: Dict[str, bytes] = None):
        self._blobs: Dict[str, bytes] = dict(blobs or {})
        self._lock = threading.Lock()
        self.write_count = 0

    def read(self, identifier: str) -> bytes:
        validate_identifier(identifier)
        with self._lock:
            try:
                return self._blobs[identifier]
            except KeyError:
                raise BlobNotFoundError(f"Blob not found: {identifier}") from None

    def write(self, identifier: str, data: bytes) -> None:
        validate_identifier(identifier)
        with self._lock:
            self._blobs[identifier] = bytes(data)
            self.write_count += 1

    def exists(self, identifier: str) -> bool:
        validate_identifier(identifier)
        with self._lock:
            return identifier in self._blobs
