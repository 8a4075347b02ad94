"""AES-256-CBC with PKCS7 padding, plus the hex envelope codec"""

import binascii
import os
from typing import Tuple

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from diary_vault.errors import DecryptionError, KeyFormatError

IV_SIZE = 16
BLOCK_SIZE = 16
ENVELOPE_SEPARATOR = ":"


def generate_iv() -> bytes:
    return os.urandom(IV_SIZE)


def encrypt_cbc(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """Encrypt using AES-256-CBC with PKCS7 padding."""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded_data = padder.update(plaintext) + padder.finalize()

    cipher = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend())
    encryptor = cipher.encryptor()
    return encryptor.update(padded_data) + encryptor.finalize()


def decrypt_cbc(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypt using AES-256-CBC and strip PKCS7 padding.

    Raises:
        DecryptionError: If the ciphertext is not whole blocks or the
            padding is invalid (usually a wrong key)
    """
    if len(iv) != IV_SIZE:
        raise DecryptionError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise DecryptionError(
            f"Ciphertext length {len(ciphertext)} is not a positive multiple of {BLOCK_SIZE}"
        )

    try:
        cipher = Cipher(algorithms.AES(key), modes.CBC(iv), backend=default_backend())
        decryptor = cipher.decryptor()
        padded_data = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        return unpadder.update(padded_data) + unpadder.finalize()
    except ValueError as e:
        raise DecryptionError(f"Decryption failed: {e}") from e


def encode_envelope(iv: bytes, ciphertext: bytes) -> str:
    """Format: ``hex(iv):hex(ciphertext)``"""
    return iv.hex() + ENVELOPE_SEPARATOR + ciphertext.hex()


def decode_envelope(envelope: str) -> Tuple[bytes, bytes]:
    """
    Split an envelope into IV and ciphertext.

    Only the first separator counts; hex never contains one, so anything
    after a second separator fails hex decoding.

    Raises:
        KeyFormatError: Missing separator, invalid hex or wrong IV size
    """
    if not isinstance(envelope, str) or ENVELOPE_SEPARATOR not in envelope:
        raise KeyFormatError("Envelope is missing the ':' separator")

    iv_hex, cipher_hex = envelope.split(ENVELOPE_SEPARATOR, 1)
    try:
        iv = binascii.unhexlify(iv_hex)
        ciphertext = binascii.unhexlify(cipher_hex)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(f"Envelope is not valid hex: {e}") from e

    if len(iv) != IV_SIZE:
        raise KeyFormatError(f"Envelope IV must be {IV_SIZE} bytes, got {len(iv)}")
    return iv, ciphertext
