"""Encryption of secret diary text"""

from diary_vault.errors import DecryptionError
from diary_vault.security.cbc import (
    decode_envelope,
    decrypt_cbc,
    encode_envelope,
    encrypt_cbc,
    generate_iv,
)
from diary_vault.security.kdf import TEXT_SALT, KeyDerivation
from diary_vault.security.user_key import require_raw_key


class TextCipher:
    """
    Encrypts entry content into ``hex(iv):hex(ciphertext)`` envelopes.

    The working key is scrypt(RawKey, "text-salt").
    """

    def __init__(self, kdf: KeyDerivation = None):
        self._kdf = kdf or KeyDerivation()

    def encrypt(self, plaintext: str, raw_key) -> str:
        """
        Encrypt text.

        Args:
            plaintext: Entry content
            raw_key: RawKey string or UserKey

        Returns:
            Envelope string

        Raises:
            MissingKeyError: If no key is given
        """
        key = self._kdf.derive(require_raw_key(raw_key), TEXT_SALT)
        iv = generate_iv()
        return encode_envelope(iv, encrypt_cbc(key, iv, plaintext.encode("utf-8")))

    def decrypt(self, envelope: str, raw_key) -> str:
        """
        Decrypt an envelope.

        Raises:
            DecryptionError: Malformed envelope (KeyFormatError) or wrong key
            MissingKeyError: If no key is given
        """
        key = self._kdf.derive(require_raw_key(raw_key), TEXT_SALT)
        iv, ciphertext = decode_envelope(envelope)
        plaintext = decrypt_cbc(key, iv, ciphertext)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted text is not valid UTF-8") from e
