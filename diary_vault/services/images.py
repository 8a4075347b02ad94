"""
Image upload and serving

Uploads are encrypted under the owner's key when one exists and stored
as plaintext otherwise. On read, a blob that does not decrypt to an image
is served as stored: it may predate encryption or still be under an older
key.
"""

import mimetypes
import re
import time
from dataclasses import dataclass
from typing import Optional

from diary_vault.errors import DecryptionError
from diary_vault.log import Logger, get_logger
from diary_vault.rotation.locks import KeyedLocks
from diary_vault.rotation.scanner import DEFAULT_MANAGED_PREFIX
from diary_vault.security.image_cipher import ImageCipher, sniff_image
from diary_vault.security.user_key import Key, NoKey, UserKey
from diary_vault.storage.base import BlobStorage, validate_identifier

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.]")


def make_upload_name(original_name: str, now: Optional[float] = None) -> str:
    """``<epoch millis>-<original name reduced to [A-Za-z0-9.]>``"""
    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis}-{_UNSAFE_NAME_CHARS.sub('', original_name or '')}"


@dataclass(frozen=True)
class StoredUpload:
    filename: str
    url: str
    encrypted: bool


@dataclass(frozen=True)
class ServedImage:
    data: bytes
    content_type: str
    decrypted: bool


class ImageVault:
    """Stores and serves diary images through the image cipher."""

    def __init__(
        self,
        storage: BlobStorage,
        cipher: ImageCipher = None,
        locks: KeyedLocks = None,
        url_prefix: str = DEFAULT_MANAGED_PREFIX,
        logger: Optional[Logger] = None,
    ):
        self.storage = storage
        self.cipher = cipher or ImageCipher()
        self.locks = locks or KeyedLocks()
        self.url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"
        self.logger = logger or get_logger("images")

    def url_for(self, filename: str) -> str:
        return self.url_prefix + filename

    def store_upload(
        self,
        user_key: UserKey,
        original_name: str,
        data: bytes,
        now: Optional[float] = None,
    ) -> StoredUpload:
        """
        Validate, encrypt and store an upload.

        Args:
            user_key: Uploader's key; NoKey stores plaintext
            original_name: Client supplied file name
            data: Uploaded bytes

        Returns:
            Where the blob was stored and whether it was encrypted

        Raises:
            InvalidImageError: If data is not a PNG, JPEG, GIF or WEBP
        """
        kind = sniff_image(data)
        filename = validate_identifier(make_upload_name(original_name, now))

        if isinstance(user_key, Key):
            payload = self.cipher.encrypt(data, user_key)
            encrypted = True
        else:
            self.logger.warn("No security key, storing upload unencrypted", filename=filename)
            payload = bytes(data)
            encrypted = False

        with self.locks.hold(filename):
            self.storage.write(filename, payload)

        self.logger.info(
            "Upload stored", filename=filename, kind=kind, size=len(data), encrypted=encrypted
        )
        return StoredUpload(filename=filename, url=self.url_for(filename), encrypted=encrypted)

    def open_image(self, filename: str, user_key: UserKey = NoKey()) -> ServedImage:
        """
        Read an image for serving.

        Raises:
            BlobNotFoundError: If no blob is stored under filename
        """
        data = self.storage.read(filename)
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        if not isinstance(user_key, Key):
            return ServedImage(data, content_type, decrypted=False)

        try:
            plain = self.cipher.decrypt_image(data, user_key)
        except DecryptionError as e:
            self.logger.warn("Serving image without decryption", filename=filename, reason=str(e))
            return ServedImage(data, content_type, decrypted=False)
        return ServedImage(plain, content_type, decrypted=True)
