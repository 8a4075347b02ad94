"""Blob storage interface"""

from abc import ABC, abstractmethod

from diary_vault.errors import InvalidIdentifierError


def validate_identifier(identifier: str) -> str:
    """
    Check that an identifier is a single, safe file name.

    Raises:
        InvalidIdentifierError: Empty, a dot name, or contains separators
    """
    if (
        not isinstance(identifier, str)
        or not identifier
        or identifier in (".", "..")
        or "/" in identifier
        or "\\" in identifier
        or "\x00" in identifier
    ):
        raise InvalidIdentifierError(f"Invalid blob identifier: {identifier!r}")
    return identifier


class BlobStorage(ABC):
    """
    Store of opaque blobs keyed by file name.

    Identifiers are the file names embedded in diary HTML.
    """

    @abstractmethod
    def read(self, identifier: str) -> bytes:
        """
        Read a blob.

        Raises:
            BlobNotFoundError: If nothing is stored under identifier
        """

    @abstractmethod
    def write(self, identifier: str, data: bytes) -> None:
        """Create or replace a blob. Readers see either old or new bytes."""

    @abstractmethod
    def exists(self, identifier: str) -> bool:
        """Whether a blob is stored under identifier."""
