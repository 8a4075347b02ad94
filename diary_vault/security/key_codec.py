"""Wrapping of user keys with the server secret"""

from diary_vault.errors import DecryptionError
from diary_vault.security.cbc import (
    decode_envelope,
    decrypt_cbc,
    encode_envelope,
    encrypt_cbc,
    generate_iv,
)
from diary_vault.security.kdf import SERVER_KEY_SALT, ScryptParams, derive_key
from diary_vault.security.user_key import Key, require_raw_key


class KeyCodec:
    """
    Wraps RawKeys for storage on the user record.

    The working key is scrypt(server_secret, "salt") and depends on
    nothing else, so it is derived once per codec.
    """

    def __init__(self, server_secret: str, params: ScryptParams = ScryptParams()):
        """
        Initialize codec.

        Args:
            server_secret: Process-wide secret loaded at startup
            params: scrypt cost parameters
        """
        if not server_secret:
            raise ValueError("server_secret is required")
        self._key = derive_key(server_secret, SERVER_KEY_SALT, params)

    @classmethod
    def from_config(cls, config) -> "KeyCodec":
        return cls(config.server_secret, ScryptParams.from_config(config))

    def wrap(self, raw_key) -> str:
        """
        Encrypt a RawKey for storage.

        Args:
            raw_key: RawKey string or Key

        Returns:
            WrappedKey ``hex(iv):hex(ciphertext)``
        """
        iv = generate_iv()
        plaintext = require_raw_key(raw_key).encode("utf-8")
        return encode_envelope(iv, encrypt_cbc(self._key, iv, plaintext))

    def unwrap(self, wrapped: str) -> str:
        """
        Recover the RawKey from a WrappedKey.

        Raises:
            KeyFormatError: Malformed WrappedKey
            DecryptionError: Wrapped under a different server secret
        """
        iv, ciphertext = decode_envelope(wrapped)
        plaintext = decrypt_cbc(self._key, iv, ciphertext)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Unwrapped key is not valid UTF-8") from e

    def unwrap_key(self, wrapped: str) -> Key:
        return Key(self.unwrap(wrapped))
