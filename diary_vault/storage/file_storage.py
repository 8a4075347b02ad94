"""Filesystem blob storage"""

import os
import tempfile
from pathlib import Path

from diary_vault.errors import BlobNotFoundError, StorageError
from diary_vault.storage.base import BlobStorage, validate_identifier


class FileBlobStorage(BlobStorage):
    """
    Blobs as files in a single upload directory.

    Writes go to a temporary file in the same directory followed by
    ``os.replace``, so an interrupted rewrite never leaves a torn blob.
    """

    def __init__(self, root, mode: int = 0o644):
        """
        Initialize storage.

        Args:
            root: Upload directory (created if missing)
            mode: Permissions for written blobs
        """
        self.root = Path(root)
        self.mode = mode
        self.root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config) -> "FileBlobStorage":
        return cls(config.upload_dir)

    def path_for(self, identifier: str) -> Path:
        return self.root / validate_identifier(identifier)

    def read(self, identifier: str) -> bytes:
        path = self.path_for(identifier)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {identifier}") from e
        except OSError as e:
            raise StorageError(f"Failed to read blob {identifier}: {e}") from e

    def write(self, identifier: str, data: bytes) -> None:
        path = self.path_for(identifier)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{identifier}.", suffix=".tmp", dir=self.root)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, self.mode)
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise StorageError(f"Failed to write blob {identifier}: {e}") from e

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()
