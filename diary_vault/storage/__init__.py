"""Storage module - where encrypted image blobs live"""

from diary_vault.storage.base import BlobStorage, validate_identifier
from diary_vault.storage.file_storage import FileBlobStorage
from diary_vault.storage.memory_storage import MemoryBlobStorage

__all__ = ["BlobStorage", "validate_identifier", "FileBlobStorage", "MemoryBlobStorage"]
