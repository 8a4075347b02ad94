"""Encryption of uploaded image blobs"""

from diary_vault.errors import DecryptionError, InvalidImageError
from diary_vault.security.cbc import IV_SIZE, decrypt_cbc, encrypt_cbc, generate_iv
from diary_vault.security.kdf import IMAGE_SALT, KeyDerivation
from diary_vault.security.user_key import require_raw_key

# Leading bytes of accepted formats. WEBP is only checked as RIFF.
IMAGE_SIGNATURES = {
    "png": bytes.fromhex("89504e47"),
    "jpeg": bytes.fromhex("ffd8ff"),
    "gif": bytes.fromhex("47494638"),
    "webp": bytes.fromhex("52494646"),
}


def sniff_image(data: bytes) -> str:
    """
    Identify an image by its magic number.

    Returns:
        "png", "jpeg", "gif" or "webp"

    Raises:
        InvalidImageError: If no signature matches
    """
    for kind, signature in IMAGE_SIGNATURES.items():
        if data[:len(signature)] == signature:
            return kind
    raise InvalidImageError(f"Invalid image signature: {bytes(data[:4]).hex()}")


def is_image(data: bytes) -> bool:
    try:
        sniff_image(data)
    except InvalidImageError:
        return False
    return True


class ImageCipher:
    """
    Encrypts image bytes as ``iv || ciphertext``.

    No delimiter and no encoding: the first 16 bytes are always the IV.
    The working key is scrypt(RawKey, "image-salt"), unrelated to the
    text key of the same RawKey.
    """

    def __init__(self, kdf: KeyDerivation = None):
        self._kdf = kdf or KeyDerivation()

    def encrypt(self, data: bytes, raw_key) -> bytes:
        key = self._kdf.derive(require_raw_key(raw_key), IMAGE_SALT)
        iv = generate_iv()
        return iv + encrypt_cbc(key, iv, bytes(data))

    def decrypt(self, data: bytes, raw_key) -> bytes:
        """
        Decrypt a blob.

        Raises:
            DecryptionError: Blob too short, ciphertext not whole blocks,
                or bad padding (blob is plaintext or under another key)
        """
        key = self._kdf.derive(require_raw_key(raw_key), IMAGE_SALT)
        if len(data) < IV_SIZE:
            raise DecryptionError(f"Blob is shorter than the {IV_SIZE}-byte IV")
        return decrypt_cbc(key, bytes(data[:IV_SIZE]), bytes(data[IV_SIZE:]))

    def decrypt_image(self, data: bytes, raw_key) -> bytes:
        """
        Decrypt a blob that must hold an uploaded image.

        Padding alone accepts roughly one in 256 foreign blobs, so the
        plaintext must also carry a known image signature.

        Raises:
            DecryptionError: As decrypt, or the plaintext is not an image
        """
        plain = self.decrypt(data, raw_key)
        if not is_image(plain):
            raise DecryptionError("not an image after decrypt")
        return plain
